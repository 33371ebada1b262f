"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1"
    openai_timeout_seconds: float = 120.0
    openai_max_tokens: int = 8000

    # Database
    database_url: str = "sqlite:///./ni43101.db"

    # File storage (private, owner-prefixed paths)
    storage_dir: Path = Path("./storage")
    storage_bucket: str = "ni43101-pdfs"

    # Auth (Supabase-style HS256 access tokens)
    jwt_secret: str = "change-me"
    jwt_audience: str = "authenticated"

    # Limits
    max_upload_bytes: int = 50 * 1024 * 1024
    max_text_chars: int = 150_000

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Debug flags
    sql_debug: bool = False
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the package directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()

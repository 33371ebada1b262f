"""Pytest configuration and fixtures."""

import json
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.ni43101.auth import create_access_token
from app.ni43101.config import Settings
from app.ni43101.database import create_db_engine, create_session_factory, init_db
from app.ni43101.main import create_app
from app.ni43101.services.ai.client import mock_reply

TEST_JWT_SECRET = "test-secret-key-with-at-least-32-bytes!"
USER_A = "11111111-1111-1111-1111-111111111111"
USER_B = "22222222-2222-2222-2222-222222222222"


class FakeAIClient:
    """
    Stand-in for ``AIClient`` that records calls.

    Set ``document_error`` / ``text_error`` to an exception to raise it from
    the matching call; set ``document_reply`` / ``text_reply`` to control the
    reply text.
    """

    use_mock = False

    def __init__(self, reply: str | None = None):
        self.document_reply = reply or mock_reply()
        self.text_reply = reply or mock_reply()
        self.document_error: Exception | None = None
        self.text_error: Exception | None = None
        self.document_calls: list[dict] = []
        self.text_calls: list[dict] = []

    def complete_with_document(self, pdf_bytes, filename, system_prompt, prompt) -> str:
        self.document_calls.append({"filename": filename, "size": len(pdf_bytes)})
        if self.document_error is not None:
            raise self.document_error
        return self.document_reply

    def complete_with_text(self, system_prompt, prompt) -> str:
        self.text_calls.append({"prompt": prompt})
        if self.text_error is not None:
            raise self.text_error
        return self.text_reply


class FakePDFService:
    """Returns fixed text instead of parsing the PDF."""

    def __init__(self, text: str = "Indicated 25 Mt at 1.2% Li2O"):
        self.text = text
        self.calls = 0

    def extract_truncated_text(self, file_bytes) -> str:
        self.calls += 1
        return self.text


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings for an isolated app: in-memory database, temp storage, mock AI."""
    return Settings(
        openai_api_key=None,
        database_url="sqlite://",
        storage_dir=tmp_path / "storage",
        jwt_secret=TEST_JWT_SECRET,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def test_app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(test_app: FastAPI) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
def fake_ai_client(client: TestClient) -> FakeAIClient:
    """Replace the running app's AI client with a ``FakeAIClient``."""
    fake = FakeAIClient()
    client.app.state.ai_service.client = fake
    return fake


def bearer(user_id: str, secret: str = TEST_JWT_SECRET) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, secret)}"}


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return bearer(USER_A)


@pytest.fixture
def other_auth_headers() -> dict[str, str]:
    return bearer(USER_B)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Session on a fresh in-memory database."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def valid_payload() -> dict:
    """A complete, well-formed extraction reply."""
    return json.loads(mock_reply())


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a one-page PDF with a text layer.

    Built with PyMuPDF so the text can be extracted back.
    """
    import fitz

    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "NI 43-101 Technical Report - Mock Lake Project")
    page.insert_text((72, 96), "Indicated resource 25 Mt at 1.2% Li2O")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    """A valid PDF whose only page has no text (like a scanned report)."""
    import fitz

    doc = fitz.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"


@pytest.fixture
def fake_client() -> FakeAIClient:
    """A standalone ``FakeAIClient`` for pipeline tests."""
    return FakeAIClient()


@pytest.fixture
def fake_pdf_service() -> FakePDFService:
    return FakePDFService()


@pytest.fixture
def owner_id() -> str:
    """User id carried by ``auth_headers``."""
    return USER_A


@pytest.fixture
def token_headers():
    """Build bearer headers for any user id and signing secret."""
    return bearer

"""
FastAPI application for NI 43-101 technical report extraction.

Provides endpoints for:
- Uploading report PDFs into private per-user storage
- Extracting investment metrics from a report with AI
- Listing, filtering, exporting and annotating stored extractions
- Health and reachability checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import Settings, get_settings
from .database import create_db_engine, create_session_factory, init_db
from .models import HealthResponse
from .routers import debug, extract, extractions, files
from .services.ai import AIClient, AIService, AIServiceError, PayloadValidationError
from .services.pdf_service import PDFProcessingError, PDFService
from .services.repository import RecordAccessDeniedError, RecordNotFoundError, RecordSaveError
from .services.storage import StorageError, StorageService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler: build shared services on startup."""
    settings: Settings = app.state.settings
    logger.info("Starting NI 43-101 Extraction Service...")

    engine = create_db_engine(settings.database_url, echo=settings.sql_debug)
    # Note: In production, use Alembic migrations instead of init_db()
    init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    pdf_service = PDFService(max_text_chars=settings.max_text_chars)
    ai_client = AIClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.openai_timeout_seconds,
        max_tokens=settings.openai_max_tokens,
    )
    app.state.pdf_service = pdf_service
    app.state.ai_service = AIService(ai_client, pdf_service)

    storage = StorageService(settings.storage_dir, settings.storage_bucket)
    storage.ensure_bucket()
    app.state.storage = storage

    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down NI 43-101 Extraction Service...")
    engine.dispose()


# =============================================================================
# Exception Handlers
# =============================================================================


async def ai_service_error_handler(request: Request, exc: AIServiceError) -> JSONResponse:
    """Handle AI service errors with their mapped status and user message."""
    logger.error("Extraction failed (%s): %s", type(exc).__name__, exc)
    # Typed subclasses answer with their fixed message; the base class
    # carries the provider's own description.
    detail = str(exc) if type(exc) is AIServiceError else exc.user_message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


async def status_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle domain errors that carry their own HTTP status."""
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database failures not translated by the repository."""
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: keep the JSON error shape for unexpected failures."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application for ``settings`` (default: environment)."""
    settings = settings or get_settings()

    app = FastAPI(
        title="NI 43-101 Extraction API",
        description="AI extraction and screening of NI 43-101 mining technical reports",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    # Configure CORS for frontend development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Health Endpoints
    # =========================================================================

    @app.get("/", response_model=HealthResponse)
    async def root() -> HealthResponse:
        """Root endpoint - health check."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            message="NI 43-101 Extraction API is running",
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", version=__version__, message="Service is healthy")

    # =========================================================================
    # Include Routers
    # =========================================================================

    app.include_router(files.router)
    app.include_router(extract.router)
    app.include_router(extractions.router)
    app.include_router(debug.router)

    app.add_exception_handler(AIServiceError, ai_service_error_handler)
    for exc_class in (
        PDFProcessingError,
        PayloadValidationError,
        RecordNotFoundError,
        RecordAccessDeniedError,
        RecordSaveError,
        StorageError,
    ):
        app.add_exception_handler(exc_class, status_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    return app


app = create_app()

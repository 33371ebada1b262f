"""
FastAPI dependencies for the services built at startup.

The lifespan handler in ``main`` puts one instance of each service on
``app.state``; these functions hand them to route handlers.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .auth import CurrentUser, get_current_user
from .config import Settings
from .database import get_db
from .services.ai import AIService
from .services.pdf_service import PDFService
from .services.repository import ExtractionRepository
from .services.storage import StorageService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_pdf_service(request: Request) -> PDFService:
    return request.app.state.pdf_service


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage


def get_repository(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> ExtractionRepository:
    """Repository scoped to the authenticated caller."""
    return ExtractionRepository(db, user.id)

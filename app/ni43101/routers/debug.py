"""
Router for the reachability report.

Reports who the caller is and whether storage and the database answer.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user
from ..database import get_db
from ..dependencies import get_ai_service, get_storage
from ..models import DebugResponse
from ..services.ai import AIService
from ..services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["debug"])


@router.get("/debug", response_model=DebugResponse)
async def debug(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service),
) -> DebugResponse:
    """Check auth, storage and database reachability for the caller."""
    storage_error = None
    files_in_folder = 0
    try:
        files_in_folder = len(storage.list_folder(user.id))
    except OSError as e:
        logger.warning("Storage listing failed: %s", e)
        storage_error = str(e)

    db_error = None
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database check failed: %s", e)
        db_error = str(e)

    return DebugResponse(
        status="ok",
        user_id=user.id,
        bucket_exists=storage.bucket_exists(),
        files_in_folder=files_in_folder,
        storage_error=storage_error,
        db_connected=db_error is None,
        db_error=db_error,
        ai_mock_mode=ai_service.use_mock,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

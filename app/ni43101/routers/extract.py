"""
Router for the extraction endpoint.

Runs the AI extraction on a previously uploaded PDF, derives the local
metrics and stores the resulting record for the caller.
"""

import logging

from fastapi import APIRouter, Depends, status

from ..auth import CurrentUser, get_current_user
from ..dependencies import get_ai_service, get_repository, get_storage
from ..models import ExtractionResponse, ExtractRequest
from ..services.ai import AIService
from ..services.repository import ExtractionRepository
from ..services.storage import StorageService
from ..services.transform import transform_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["extract"])


@router.post(
    "/extract",
    response_model=ExtractionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def extract(
    request: ExtractRequest,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service),
    repository: ExtractionRepository = Depends(get_repository),
) -> ExtractionResponse:
    """
    Extract an NI 43-101 report that was uploaded through ``POST /files``.

    The stored file stays in place when extraction fails. Provider, parse
    and validation failures surface through the application's exception
    handlers with their mapped status codes.
    """
    pdf_bytes = storage.read(user.id, request.path)
    logger.info(
        "Extracting %s for user %s (%d bytes)",
        request.filename,
        user.id,
        len(pdf_bytes),
    )

    payload = await ai_service.extract_report(pdf_bytes, request.filename)

    record = transform_payload(
        payload,
        owner_id=user.id,
        pdf_filename=request.filename,
        pdf_url=storage.url_for(request.path),
    )
    row = repository.insert(record)

    return ExtractionResponse.model_validate(row)

"""
Router for PDF upload and retrieval.

Handles:
- PDF upload into the caller's private storage folder
- PDF download for preview, restricted to the owner
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from ..auth import CurrentUser, get_current_user
from ..config import Settings
from ..dependencies import get_app_settings, get_pdf_service, get_storage
from ..models import StoredFileResponse
from ..services.pdf_service import PDFProcessingError, PDFService, validate_pdf_bytes
from ..services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

_PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf", "application/octet-stream"}


def _check_upload_type(file: UploadFile) -> None:
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file provided",
        )

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if not file.filename.lower().endswith(".pdf") or (
        content_type and content_type not in _PDF_CONTENT_TYPES
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Please upload a PDF.",
        )


@router.post("", response_model=StoredFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: Annotated[UploadFile, File(description="NI 43-101 report (PDF)")],
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    storage: StorageService = Depends(get_storage),
    pdf_service: PDFService = Depends(get_pdf_service),
) -> StoredFileResponse:
    """
    Upload a PDF into the caller's storage folder.

    Rejects non-PDF files, empty files and files over the upload limit
    before anything is stored.
    """
    _check_upload_type(file)

    try:
        # Read one byte past the limit so oversized files are detected
        # without buffering all of them.
        file_bytes = await file.read(settings.max_upload_bytes + 1)
    finally:
        await file.close()

    if not file_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file provided",
        )

    if len(file_bytes) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {limit_mb}MB.",
        )

    validate_pdf_bytes(file_bytes)

    try:
        page_count = pdf_service.get_page_count(file_bytes)
    except PDFProcessingError as e:
        logger.warning("Page count unavailable for %s: %s", file.filename, e)
        page_count = None

    key = storage.save(user.id, file_bytes, "pdf")
    logger.info(
        "Uploaded %s (%d bytes, %s pages) as %s",
        file.filename,
        len(file_bytes),
        page_count,
        key,
    )

    return StoredFileResponse(
        path=key,
        url=storage.url_for(key),
        filename=file.filename,
        size_bytes=len(file_bytes),
        page_count=page_count,
    )


@router.get("/{path:path}")
async def get_file(
    path: str,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
) -> Response:
    """
    Retrieve a stored PDF.

    Only the owner (first path segment) may read it.
    """
    content = storage.read(user.id, path)
    filename = path.rsplit("/", 1)[-1]
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{filename}"',
        },
    )

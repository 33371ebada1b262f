"""
Router for stored extraction records.

Handles:
- Filtered, searched and sorted listing
- Dropdown filter options
- CSV export of the filtered view
- Record detail, notes editing and deletion
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_repository
from ..models import (
    ExtractionFilters,
    ExtractionListResponse,
    ExtractionResponse,
    FilterOptionsResponse,
    Priority,
    ReportStage,
    SortDirection,
    SortField,
    Status,
    UpdateExtractionRequest,
)
from ..services.export import export_filename, records_to_csv
from ..services.filtering import filter_options
from ..services.repository import ExtractionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extractions", tags=["extractions"])


def get_filters(
    status: Status | None = None,
    priority: Priority | None = None,
    commodity: str | None = None,
    country: str | None = None,
    stage: ReportStage | None = None,
    search: str | None = None,
    sort: SortField = SortField.CREATED_AT,
    direction: SortDirection = SortDirection.DESC,
) -> ExtractionFilters:
    """Query-string filters shared by the listing and the export."""
    return ExtractionFilters(
        status=status,
        priority=priority,
        commodity=commodity,
        country=country,
        stage=stage,
        search=search,
        sort=sort,
        direction=direction,
    )


@router.get("", response_model=ExtractionListResponse)
async def list_extractions(
    filters: ExtractionFilters = Depends(get_filters),
    repository: ExtractionRepository = Depends(get_repository),
) -> ExtractionListResponse:
    """List the caller's extractions."""
    rows = repository.list(filters)
    return ExtractionListResponse(
        extractions=[ExtractionResponse.model_validate(r) for r in rows],
        total=len(rows),
    )


@router.get("/filters", response_model=FilterOptionsResponse)
async def get_filter_options(
    repository: ExtractionRepository = Depends(get_repository),
) -> FilterOptionsResponse:
    """Distinct commodities, countries and stages across the caller's records."""
    return filter_options(repository.list())


@router.get("/export.csv")
async def export_extractions(
    filters: ExtractionFilters = Depends(get_filters),
    repository: ExtractionRepository = Depends(get_repository),
) -> Response:
    """Download the filtered, sorted view as CSV."""
    rows = repository.list(filters)
    filename = export_filename(date.today())
    logger.info("Exporting %d extractions to %s", len(rows), filename)
    return Response(
        content=records_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{extraction_id}", response_model=ExtractionResponse)
async def get_extraction(
    extraction_id: str,
    repository: ExtractionRepository = Depends(get_repository),
) -> ExtractionResponse:
    """Get one extraction."""
    return ExtractionResponse.model_validate(repository.get(extraction_id))


@router.patch("/{extraction_id}", response_model=ExtractionResponse)
async def update_extraction(
    extraction_id: str,
    request: UpdateExtractionRequest,
    repository: ExtractionRepository = Depends(get_repository),
) -> ExtractionResponse:
    """Update the caller's notes on an extraction."""
    changes = request.model_dump(exclude_unset=True)
    row = repository.update(extraction_id, changes)
    return ExtractionResponse.model_validate(row)


@router.delete("/{extraction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_extraction(
    extraction_id: str,
    repository: ExtractionRepository = Depends(get_repository),
) -> Response:
    """Delete an extraction. The stored PDF is left in place."""
    repository.delete(extraction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

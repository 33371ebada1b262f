"""
Pydantic models for the NI 43-101 extraction service.

Defines the enumerations shared by the extraction payload, the stored
record and the API, plus the request/response bodies of every endpoint.
"""

import uuid
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(str, Enum):
    """Risk rating used by the four risk-assessment fields."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class Priority(str, Enum):
    """Investigation priority assigned by the model."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    PASS = "pass"


class ReportStage(str, Enum):
    """Study stage of a technical report."""

    PRELIMINARY_ASSESSMENT = "Preliminary Assessment"
    PEA = "PEA"
    PRE_FEASIBILITY = "Pre-Feasibility"
    PFS = "PFS"
    FEASIBILITY = "Feasibility"
    FS = "FS"
    RESOURCE_UPDATE = "Resource Update"
    TECHNICAL_REPORT = "Technical Report"


class ResourceConfidence(str, Enum):
    """Bucket derived from the Indicated/Inferred ratio."""

    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class Status(str, Enum):
    """Three-way classification computed from the record's fields."""

    INVESTIGATE = "INVESTIGATE"
    WATCH = "WATCH"
    PASS = "PASS"


class SortField(str, Enum):
    """Columns the results table can be sorted by."""

    CREATED_AT = "created_at"
    PROJECT_NAME = "project_name"
    ISSUER_NAME = "issuer_name"
    PRIMARY_COMMODITY = "primary_commodity"
    COUNTRY = "country"
    REPORT_STAGE = "report_stage"
    IND_INF_RATIO = "ind_inf_ratio"
    INVESTIGATION_PRIORITY = "investigation_priority"
    STATUS = "status"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Rank used when sorting by priority or status (lower sorts first).
PRIORITY_ORDER: dict[str, int] = {
    Priority.HIGH.value: 1,
    Priority.MEDIUM.value: 2,
    Priority.LOW.value: 3,
    Priority.PASS.value: 4,
}

STATUS_ORDER: dict[str, int] = {
    Status.INVESTIGATE.value: 1,
    Status.WATCH.value: 2,
    Status.PASS.value: 3,
}


# =============================================================================
# Extraction Record Models
# =============================================================================


class ExtractionRecordCreate(BaseModel):
    """
    Flat record produced from an AI extraction payload.

    This is what the transformer hands to the repository for insertion.
    Identity (``id``, ``created_at``) is assigned by the database.
    """

    model_config = ConfigDict(use_enum_values=True)

    user_id: str = Field(..., min_length=1, description="Owner of the record")
    pdf_filename: str | None = Field(default=None, description="Original filename")
    pdf_url: str | None = Field(default=None, description="Location of the stored PDF")

    # Metadata
    issuer_name: str | None = None
    project_name: str | None = None
    effective_date: date | None = None
    report_stage: ReportStage | None = None

    # Project basics
    primary_commodity: str | None = None
    secondary_commodities: list[str] | None = None
    country: str | None = None
    province_state: str | None = None

    # Resource estimate
    total_indicated_mt: float | None = None
    indicated_avg_grade: str | None = None
    total_inferred_mt: float | None = None
    inferred_avg_grade: str | None = None
    total_measured_mt: float | None = None
    measured_avg_grade: str | None = None
    cutoff_grade: str | None = None
    resource_date: date | None = None

    # Economics
    has_economic_study: bool | None = None
    npv_aftertax_musd: float | None = None
    npv_discount_rate: float | None = None
    irr_aftertax_percent: float | None = None
    capex_musd: float | None = None
    opex_per_unit: str | None = None
    payback_years: float | None = None
    mine_life_years: float | None = None
    commodity_price_assumption: str | None = None

    # Risk assessment
    metallurgy_risk: RiskLevel | None = None
    metallurgy_notes: str | None = None
    permitting_risk: RiskLevel | None = None
    permitting_notes: str | None = None
    infrastructure_risk: RiskLevel | None = None
    geopolitical_risk: RiskLevel | None = None

    # Investment analysis
    investigation_priority: Priority | None = None
    priority_rationale: str | None = None
    next_catalyst: str | None = None
    catalyst_timeline: str | None = None
    red_flags: list[str] | None = None
    positive_signals: list[str] | None = None
    magellan_score: int | None = Field(default=None, ge=1, le=10)

    # Derived metrics
    ind_inf_ratio: float | None = None
    resource_confidence: ResourceConfidence | None = None

    notes: str | None = None
    status: Status | None = None


class ExtractionResponse(ExtractionRecordCreate):
    """A stored extraction record as returned by the API."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: uuid.UUID = Field(..., description="Extraction ID (UUID)")
    created_at: datetime = Field(..., description="Creation timestamp")


class ExtractionListResponse(BaseModel):
    """Response model for listing extractions."""

    extractions: list[ExtractionResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Number of records returned")


class UpdateExtractionRequest(BaseModel):
    """
    Request model for updating a record.

    Unknown fields are kept so the repository can reject edits to
    non-editable columns by name.
    """

    model_config = ConfigDict(extra="allow")

    notes: str | None = Field(
        default=None,
        max_length=10_000,
        description="Free-text user annotation",
    )


class ExtractionFilters(BaseModel):
    """Filter, search and sort options for the results table and CSV export."""

    status: Status | None = None
    priority: Priority | None = None
    commodity: str | None = None
    country: str | None = None
    stage: ReportStage | None = None
    search: str | None = None
    sort: SortField = SortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC


class FilterOptionsResponse(BaseModel):
    """Distinct values available for the table's dropdown filters."""

    commodities: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    stages: list[str] = Field(default_factory=list)


# =============================================================================
# Upload / Extract Models
# =============================================================================


class StoredFileResponse(BaseModel):
    """Response model for an uploaded PDF."""

    path: str = Field(..., description="Storage key: {owner}/{timestamp}-{random}.pdf")
    url: str = Field(..., description="URL the owner can fetch the file from")
    filename: str = Field(..., description="Original filename")
    size_bytes: int = Field(..., ge=1)
    page_count: int | None = Field(default=None, ge=0)


class ExtractRequest(BaseModel):
    """Request model for running extraction on a stored file."""

    path: str = Field(..., min_length=1, description="Storage key returned by /files")
    filename: str = Field(..., min_length=1, description="Original filename")


# =============================================================================
# Health / Debug Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")
    message: str | None = None


class DebugResponse(BaseModel):
    """Reachability report for auth, storage and database."""

    status: str
    user_id: str
    bucket_exists: bool
    files_in_folder: int = 0
    storage_error: str | None = None
    db_connected: bool
    db_error: str | None = None
    ai_mock_mode: bool
    timestamp: str

"""
Validation and data normalization for the AI extraction payload.

Handles:
- Number parsing ("1,234.5", "$450M", "8%") via price-parser
- Date normalization to ``datetime.date`` via python-dateutil
- Case-insensitive mapping of risk, priority and stage labels
- Typed section models for the seven-section extraction reply
"""

import logging
import re
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...models import Priority, ReportStage, RiskLevel
from .exceptions import ExtractionValidationError

logger = logging.getLogger(__name__)

_NULL_STRINGS = {"", "null", "none", "n/a", "na", "not available", "not reported", "-"}

# Alternate spellings the model uses for report stages.
_STAGE_ALIASES: dict[str, ReportStage] = {
    "preliminary economic assessment": ReportStage.PEA,
    "pea": ReportStage.PEA,
    "preliminary assessment": ReportStage.PRELIMINARY_ASSESSMENT,
    "pre-feasibility": ReportStage.PRE_FEASIBILITY,
    "prefeasibility": ReportStage.PRE_FEASIBILITY,
    "pre-feasibility study": ReportStage.PRE_FEASIBILITY,
    "prefeasibility study": ReportStage.PRE_FEASIBILITY,
    "pfs": ReportStage.PFS,
    "feasibility": ReportStage.FEASIBILITY,
    "feasibility study": ReportStage.FEASIBILITY,
    "definitive feasibility study": ReportStage.FEASIBILITY,
    "fs": ReportStage.FS,
    "dfs": ReportStage.FS,
    "resource update": ReportStage.RESOURCE_UPDATE,
    "mineral resource update": ReportStage.RESOURCE_UPDATE,
    "mineral resource estimate": ReportStage.RESOURCE_UPDATE,
    "technical report": ReportStage.TECHNICAL_REPORT,
}

_RISK_ALIASES: dict[str, RiskLevel] = {
    "low": RiskLevel.LOW,
    "moderate": RiskLevel.MODERATE,
    "medium": RiskLevel.MODERATE,
    "high": RiskLevel.HIGH,
}


# "2-3", "8-10%", "1.5 - 2.0", "$10-$12M"
_RANGE_PATTERN = re.compile(r"\d\s*[-\u2013\u2014]\s*(?:US)?\$?\s*\d")
_LEADING_MINUS = re.compile(r"^\s*[-\u2212]\s*(?:US)?\$?\s*\d")


def _is_null(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip().lower() in _NULL_STRINGS)


def parse_number(value: Any) -> float | None:
    """
    Parse a numeric value the model may have returned as text.

    Plain numbers are returned as floats. Strings are tried as plain
    numbers first ("-12.5", "1,234"), then with price-parser, which copes
    with units and currency marks ("$450M", "-$12M", "8%"). Scale words
    ("million", "billion") are not applied.

    Raises:
        ValueError: If a non-null value contains no number or is a range
            ("2-3 years", "10 - 12 Mt").
    """
    if _is_null(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got boolean {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"expected a number, got {type(value).__name__}")

    text = value.strip()
    try:
        return float(text.replace(",", ""))
    except ValueError:
        pass

    if _RANGE_PATTERN.search(text):
        raise ValueError(f"expected a single number, got range {value!r}")

    from price_parser import Price

    price = Price.fromstring(text)
    if price.amount_float is None:
        raise ValueError(f"could not parse number from {value!r}")
    if _LEADING_MINUS.match(text) and price.amount_float > 0:
        return -price.amount_float
    return price.amount_float


def parse_date(value: Any) -> date | None:
    """
    Parse various date formats to a ``date``.

    Returns None if parsing fails; a missing day or month defaults to the
    first ("March 2024" -> 2024-03-01).
    """
    if _is_null(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        value = str(value)

    value = value.strip()

    # ISO format first (YYYY-MM-DD)
    if re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None

    # Written and regional formats
    try:
        from dateutil import parser

        return parser.parse(value, default=datetime(2000, 1, 1)).date()
    except (ValueError, OverflowError):
        return None


def parse_boolean(value: Any) -> bool | None:
    """Parse a yes/no style value; raises ValueError if ambiguous."""
    if _is_null(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lower = value.lower().strip()
        if lower in ("true", "yes", "y", "1", "on"):
            return True
        if lower in ("false", "no", "n", "0", "off"):
            return False
    raise ValueError(f"ambiguous boolean value: {value!r}")


def parse_string_list(value: Any) -> list[str] | None:
    """Normalize a list field, dropping null items and blank strings."""
    if value is None:
        return None
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        raise ValueError(f"expected a list, got {type(value).__name__}")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def normalize_stage(value: Any) -> ReportStage | None:
    """Map a report stage label onto ``ReportStage``, case-insensitively."""
    if _is_null(value):
        return None
    if isinstance(value, ReportStage):
        return value
    key = str(value).strip().lower()
    stage = _STAGE_ALIASES.get(key)
    if stage is None:
        raise ValueError(f"unknown report stage: {value!r}")
    return stage


def normalize_risk(value: Any) -> RiskLevel | None:
    """Map a risk label onto ``RiskLevel``; 'medium' is read as moderate."""
    if _is_null(value):
        return None
    if isinstance(value, RiskLevel):
        return value
    level = _RISK_ALIASES.get(str(value).strip().lower())
    if level is None:
        raise ValueError(f"unknown risk level: {value!r}")
    return level


def normalize_priority(value: Any) -> Priority | None:
    """Map a priority label onto ``Priority``."""
    if _is_null(value):
        return None
    if isinstance(value, Priority):
        return value
    try:
        return Priority(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"unknown investigation priority: {value!r}") from None


# =============================================================================
# AI Response Models (the seven-section extraction reply)
# =============================================================================


class _Section(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class MetadataSection(_Section):
    issuer_name: str | None = None
    project_name: str | None = None
    effective_date: date | None = None
    report_stage: ReportStage | None = None

    @field_validator("effective_date", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> date | None:
        parsed = parse_date(v)
        if parsed is None and not _is_null(v):
            logger.warning("Dropping unparseable effective_date: %r", v)
        return parsed

    @field_validator("report_stage", mode="before")
    @classmethod
    def _parse_stage(cls, v: Any) -> ReportStage | None:
        return normalize_stage(v)


class ProjectBasicsSection(_Section):
    primary_commodity: str | None = None
    secondary_commodities: list[str] | None = None
    country: str | None = None
    province_state: str | None = None

    @field_validator("secondary_commodities", mode="before")
    @classmethod
    def _parse_list(cls, v: Any) -> list[str] | None:
        return parse_string_list(v)


class ResourceEstimateSection(_Section):
    """Tonnages are in million tonnes; grades keep their units as text."""

    total_indicated_mt: float | None = None
    indicated_avg_grade: str | None = None
    total_inferred_mt: float | None = None
    inferred_avg_grade: str | None = None
    total_measured_mt: float | None = None
    measured_avg_grade: str | None = None
    cutoff_grade: str | None = None
    resource_date: date | None = None

    @field_validator(
        "total_indicated_mt", "total_inferred_mt", "total_measured_mt", mode="before"
    )
    @classmethod
    def _parse_tonnage(cls, v: Any) -> float | None:
        return parse_number(v)

    @field_validator("resource_date", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> date | None:
        parsed = parse_date(v)
        if parsed is None and not _is_null(v):
            logger.warning("Dropping unparseable resource_date: %r", v)
        return parsed


class EconomicsSection(_Section):
    has_economic_study: bool | None = None
    npv_aftertax_musd: float | None = None
    npv_discount_rate: float | None = None
    irr_aftertax_percent: float | None = None
    capex_musd: float | None = None
    opex_per_unit: str | None = None
    payback_years: float | None = None
    mine_life_years: float | None = None
    commodity_price_assumption: str | None = None

    @field_validator("has_economic_study", mode="before")
    @classmethod
    def _parse_flag(cls, v: Any) -> bool | None:
        return parse_boolean(v)

    @field_validator(
        "npv_aftertax_musd",
        "npv_discount_rate",
        "irr_aftertax_percent",
        "capex_musd",
        "payback_years",
        "mine_life_years",
        mode="before",
    )
    @classmethod
    def _parse_amount(cls, v: Any) -> float | None:
        return parse_number(v)


class RiskAssessmentSection(_Section):
    metallurgy_risk: RiskLevel | None = None
    metallurgy_notes: str | None = None
    permitting_risk: RiskLevel | None = None
    permitting_notes: str | None = None
    infrastructure_risk: RiskLevel | None = None
    geopolitical_risk: RiskLevel | None = None

    @field_validator(
        "metallurgy_risk",
        "permitting_risk",
        "infrastructure_risk",
        "geopolitical_risk",
        mode="before",
    )
    @classmethod
    def _parse_risk(cls, v: Any) -> RiskLevel | None:
        return normalize_risk(v)


class InvestmentAnalysisSection(_Section):
    investigation_priority: Priority | None = None
    priority_rationale: str | None = None
    next_catalyst: str | None = None
    catalyst_timeline: str | None = None
    red_flags: list[str] | None = None
    positive_signals: list[str] | None = None
    magellan_score: int | None = Field(default=None, ge=1, le=10)

    @field_validator("investigation_priority", mode="before")
    @classmethod
    def _parse_priority(cls, v: Any) -> Priority | None:
        return normalize_priority(v)

    @field_validator("red_flags", "positive_signals", mode="before")
    @classmethod
    def _parse_list(cls, v: Any) -> list[str] | None:
        return parse_string_list(v)

    @field_validator("magellan_score", mode="before")
    @classmethod
    def _parse_score(cls, v: Any) -> int | None:
        score = parse_number(v)
        return None if score is None else int(round(score))


class DerivedMetricsSection(_Section):
    """Model-supplied derived values. Accepted for shape, never stored."""

    indicated_inferred_ratio: Any = None
    resource_confidence: Any = None


class ExtractionPayload(BaseModel):
    """
    The complete, typed extraction reply.

    All seven sections are required; a missing or null section fails
    validation.
    """

    model_config = ConfigDict(extra="ignore")

    metadata: MetadataSection
    project_basics: ProjectBasicsSection
    resource_estimate: ResourceEstimateSection
    economics: EconomicsSection
    risk_assessment: RiskAssessmentSection
    investment_analysis: InvestmentAnalysisSection
    derived_metrics: DerivedMetricsSection


REQUIRED_SECTIONS = (
    "metadata",
    "project_basics",
    "resource_estimate",
    "economics",
    "risk_assessment",
    "investment_analysis",
    "derived_metrics",
)


def validate_extraction_payload(data: Any) -> ExtractionPayload:
    """
    Validate a parsed AI reply.

    Section presence is checked before any field is looked at.

    Args:
        data: The decoded JSON reply.

    Returns:
        The typed payload.

    Raises:
        ExtractionValidationError: If the reply is not an object, lacks any
            required section, or has a field of the wrong type.
    """
    if isinstance(data, ExtractionPayload):
        return data

    if not isinstance(data, dict):
        raise ExtractionValidationError(
            f"Extraction reply must be a JSON object, got {type(data).__name__}"
        )

    missing = [key for key in REQUIRED_SECTIONS if key not in data]
    if missing:
        logger.error("Extraction reply missing sections: %s", missing)
        raise ExtractionValidationError(
            f"Extraction reply missing required sections: {', '.join(missing)}",
            missing_sections=missing,
        )

    try:
        return ExtractionPayload.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.error("Extraction reply failed type validation: %s", errors)
        raise ExtractionValidationError(f"Invalid extraction fields: {errors}") from e

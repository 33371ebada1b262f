"""
Response transformer: turns a validated AI extraction reply into a stored record.

``transform_payload`` flattens the seven sections and fills the locally
derived fields (ratio, confidence, status).
"""

import logging
from typing import Any

from ..models import ExtractionRecordCreate
from .ai.validation import REQUIRED_SECTIONS, ExtractionPayload, validate_extraction_payload
from .metrics import compute_confidence, compute_ratio, compute_status

logger = logging.getLogger(__name__)

__all__ = ["REQUIRED_SECTIONS", "transform_payload", "validate_extraction_payload"]


def transform_payload(
    payload: ExtractionPayload | dict[str, Any],
    owner_id: str,
    pdf_filename: str,
    pdf_url: str,
) -> ExtractionRecordCreate:
    """
    Flatten an extraction payload into an insertable record.

    Derived fields are always computed here; the model's own
    ``derived_metrics`` section is ignored. ``notes`` starts empty.
    """
    payload = validate_extraction_payload(payload)

    meta = payload.metadata
    basics = payload.project_basics
    resource = payload.resource_estimate
    econ = payload.economics
    risk = payload.risk_assessment
    analysis = payload.investment_analysis

    ratio = compute_ratio(resource.total_indicated_mt, resource.total_inferred_mt)
    confidence = compute_confidence(ratio)
    status = compute_status(
        priority=analysis.investigation_priority,
        ratio=ratio,
        metallurgy_risk=risk.metallurgy_risk,
        report_stage=meta.report_stage,
        has_economic_study=econ.has_economic_study,
        permitting_risk=risk.permitting_risk,
    )

    record = ExtractionRecordCreate(
        user_id=owner_id,
        pdf_filename=pdf_filename,
        pdf_url=pdf_url,
        **meta.model_dump(),
        **basics.model_dump(),
        **resource.model_dump(),
        **econ.model_dump(),
        **risk.model_dump(),
        **analysis.model_dump(),
        ind_inf_ratio=ratio,
        resource_confidence=confidence,
        notes=None,
        status=status,
    )

    logger.info(
        "Transformed extraction for '%s': project=%s ratio=%s status=%s",
        pdf_filename,
        record.project_name,
        ratio,
        record.status,
    )
    return record

"""
Derived metrics and status classification for extraction records.

Pure functions: the Indicated/Inferred ratio, the resource-confidence bucket
derived from it, and the Investigate/Watch/Pass status.
"""

from typing import Any, Mapping

from ..models import Priority, ReportStage, ResourceConfidence, RiskLevel, Status

# Stages at which a missing economic study is itself a reason to investigate.
EARLY_STAGES = {ReportStage.PEA.value, ReportStage.PRELIMINARY_ASSESSMENT.value}


def _value(v: Any) -> Any:
    """Return the plain value of an enum member, or ``v`` unchanged."""
    return getattr(v, "value", v)


def compute_ratio(indicated: float | None, inferred: float | None) -> float | None:
    """
    Indicated/Inferred tonnage ratio, rounded to 2 decimals.

    Returns None when either tonnage is absent or inferred is zero.
    """
    if indicated is None or inferred is None or inferred == 0:
        return None
    return round(indicated / inferred, 2)


def compute_confidence(ratio: float | None) -> ResourceConfidence | None:
    """
    Bucket a ratio: > 2 is high, 0.5 to 2 (inclusive) moderate, < 0.5 low.
    """
    if ratio is None:
        return None
    if ratio > 2:
        return ResourceConfidence.HIGH
    if ratio >= 0.5:
        return ResourceConfidence.MODERATE
    return ResourceConfidence.LOW


def compute_status(
    priority: Priority | str | None,
    ratio: float | None,
    metallurgy_risk: RiskLevel | str | None,
    report_stage: ReportStage | str | None,
    has_economic_study: bool | None,
    permitting_risk: RiskLevel | str | None,
) -> Status:
    """
    Classify a record. Rules are checked in order and the first match wins:

    1. INVESTIGATE: priority is high, or ratio > 2 with metallurgy risk
       not high, or an early-stage (PEA / Preliminary Assessment) report
       without an economic study.
    2. PASS: priority is pass, or metallurgy or permitting risk is high.
    3. WATCH: everything else.

    Rule 1 wins over rule 2, so priority=high with metallurgy_risk=high
    is INVESTIGATE.
    """
    priority = _value(priority)
    metallurgy_risk = _value(metallurgy_risk)
    permitting_risk = _value(permitting_risk)
    report_stage = _value(report_stage)

    if (
        priority == Priority.HIGH.value
        or (ratio is not None and ratio > 2 and metallurgy_risk != RiskLevel.HIGH.value)
        or (report_stage in EARLY_STAGES and not has_economic_study)
    ):
        return Status.INVESTIGATE

    if (
        priority == Priority.PASS.value
        or metallurgy_risk == RiskLevel.HIGH.value
        or permitting_risk == RiskLevel.HIGH.value
    ):
        return Status.PASS

    return Status.WATCH


def classify_record(record: Mapping[str, Any] | Any) -> Status:
    """Compute the status of a record given as a mapping or an object with attributes."""
    if isinstance(record, Mapping):
        get = record.get
    else:
        def get(name: str) -> Any:
            return getattr(record, name, None)

    return compute_status(
        priority=get("investigation_priority"),
        ratio=get("ind_inf_ratio"),
        metallurgy_risk=get("metallurgy_risk"),
        report_stage=get("report_stage"),
        has_economic_study=get("has_economic_study"),
        permitting_risk=get("permitting_risk"),
    )

"""
SQLAlchemy database models for the NI 43-101 extraction application.

A single ``extractions`` table holds one row per processed report. Every
row belongs to exactly one user (``user_id``); all queries are scoped by it.
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Extraction(Base):
    """
    Extraction result for a single NI 43-101 technical report.

    Descriptive columns are filled from the AI reply; ``ind_inf_ratio``,
    ``resource_confidence`` and ``status`` are computed locally; ``notes``
    is the only column the owner edits after creation.
    """

    __tablename__ = "extractions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    # PDF info
    pdf_filename: Mapped[str | None] = mapped_column(String(512), nullable=True)
    pdf_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Metadata
    issuer_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    project_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    report_stage: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Project basics
    primary_commodity: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        index=True,
    )
    secondary_commodities: Mapped[list | None] = mapped_column(JSON, nullable=True)
    country: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    province_state: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Resource estimate (million tonnes)
    total_indicated_mt: Mapped[float | None] = mapped_column(Float, nullable=True)
    indicated_avg_grade: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_inferred_mt: Mapped[float | None] = mapped_column(Float, nullable=True)
    inferred_avg_grade: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_measured_mt: Mapped[float | None] = mapped_column(Float, nullable=True)
    measured_avg_grade: Mapped[str | None] = mapped_column(Text, nullable=True)
    cutoff_grade: Mapped[str | None] = mapped_column(Text, nullable=True)
    resource_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Economics
    has_economic_study: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    npv_aftertax_musd: Mapped[float | None] = mapped_column(Float, nullable=True)
    npv_discount_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    irr_aftertax_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    capex_musd: Mapped[float | None] = mapped_column(Float, nullable=True)
    opex_per_unit: Mapped[str | None] = mapped_column(Text, nullable=True)
    payback_years: Mapped[float | None] = mapped_column(Float, nullable=True)
    mine_life_years: Mapped[float | None] = mapped_column(Float, nullable=True)
    commodity_price_assumption: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Risk assessment (low / moderate / high)
    metallurgy_risk: Mapped[str | None] = mapped_column(String(16), nullable=True)
    metallurgy_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    permitting_risk: Mapped[str | None] = mapped_column(String(16), nullable=True)
    permitting_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    infrastructure_risk: Mapped[str | None] = mapped_column(String(16), nullable=True)
    geopolitical_risk: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # Investment analysis
    investigation_priority: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        index=True,
    )
    priority_rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_catalyst: Mapped[str | None] = mapped_column(Text, nullable=True)
    catalyst_timeline: Mapped[str | None] = mapped_column(Text, nullable=True)
    red_flags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    positive_signals: Mapped[list | None] = mapped_column(JSON, nullable=True)
    magellan_score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Derived metrics (computed locally)
    ind_inf_ratio: Mapped[float | None] = mapped_column(Float, nullable=True)
    resource_confidence: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # User annotations
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Auto-computed status
    status: Mapped[str | None] = mapped_column(String(16), nullable=True, index=True)

    def __repr__(self) -> str:
        return (
            f"<Extraction(id={self.id}, project='{self.project_name}', "
            f"status={self.status})>"
        )

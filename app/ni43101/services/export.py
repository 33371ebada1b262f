"""
CSV export of extraction records.

Rows come out in the order given, so callers pass records that have
already been filtered and sorted the same way as the results table.
"""

import csv
import io
from collections.abc import Callable, Iterable
from datetime import date, datetime
from typing import Any

EXPORT_FILENAME_PREFIX = "elkano-extractions"


def _text(v: Any) -> str:
    if v is None:
        return ""
    return str(getattr(v, "value", v))


def _number(v: float | int | None) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def _day(v: datetime | date | None) -> str:
    return v.strftime("%Y-%m-%d") if v else ""


def _yes_no(v: bool | None) -> str:
    if v is None:
        return ""
    return "Yes" if v else "No"


def _joined(v: list[str] | None) -> str:
    return "; ".join(v) if v else ""


# Header -> cell formatter, in column order.
EXPORT_COLUMNS: list[tuple[str, Callable[[Any], str]]] = [
    ("Date", lambda r: _day(r.created_at)),
    ("Project", lambda r: _text(r.project_name)),
    ("Issuer", lambda r: _text(r.issuer_name)),
    ("Commodity", lambda r: _text(r.primary_commodity)),
    ("Country", lambda r: _text(r.country)),
    ("Stage", lambda r: _text(r.report_stage)),
    ("Ind/Inf Ratio", lambda r: _number(r.ind_inf_ratio)),
    ("Priority", lambda r: _text(r.investigation_priority)),
    ("Status", lambda r: _text(r.status)),
    ("Magellan Score", lambda r: _number(r.magellan_score)),
    ("Province", lambda r: _text(r.province_state)),
    ("Indicated Mt", lambda r: _number(r.total_indicated_mt)),
    ("Inferred Mt", lambda r: _number(r.total_inferred_mt)),
    ("Has Economics", lambda r: _yes_no(r.has_economic_study)),
    ("NPV (M USD)", lambda r: _number(r.npv_aftertax_musd)),
    ("IRR %", lambda r: _number(r.irr_aftertax_percent)),
    ("Met Risk", lambda r: _text(r.metallurgy_risk)),
    ("Permit Risk", lambda r: _text(r.permitting_risk)),
    ("Next Catalyst", lambda r: _text(r.next_catalyst)),
    ("Red Flags", lambda r: _joined(r.red_flags)),
    ("PDF Link", lambda r: _text(r.pdf_url)),
]

EXPORT_HEADERS = [header for header, _ in EXPORT_COLUMNS]


def export_filename(day: date | None = None) -> str:
    """``elkano-extractions-YYYY-MM-DD.csv`` for ``day`` (default today)."""
    day = day or date.today()
    return f"{EXPORT_FILENAME_PREFIX}-{day.isoformat()}.csv"


def record_to_row(record: Any) -> list[str]:
    return [fmt(record) for _, fmt in EXPORT_COLUMNS]


def records_to_csv(records: Iterable[Any]) -> str:
    """
    Render records as CSV text with a header row.

    Values containing commas, quotes or newlines are quoted by the csv
    module, so every record is exactly one logical row.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for record in records:
        writer.writerow(record_to_row(record))
    return buffer.getvalue()

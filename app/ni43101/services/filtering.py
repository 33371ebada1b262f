"""
Filtering, search and sorting for the results table and CSV export.

Works on any record exposing the extraction attributes (ORM rows or
``ExtractionResponse`` models), so the listing endpoint and the export
produce the same rows in the same order.
"""

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from ..models import (
    PRIORITY_ORDER,
    STATUS_ORDER,
    ExtractionFilters,
    FilterOptionsResponse,
    SortDirection,
    SortField,
)

T = TypeVar("T")

SEARCH_FIELDS = ("project_name", "issuer_name", "country", "primary_commodity")

# Fields ranked by a fixed order instead of compared as text.
_RANKED_FIELDS: dict[str, dict[str, int]] = {
    SortField.INVESTIGATION_PRIORITY.value: PRIORITY_ORDER,
    SortField.STATUS.value: STATUS_ORDER,
}


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


def _same_text(a: Any, b: str) -> bool:
    return a is not None and str(_value(a)).strip().lower() == b.strip().lower()


def matches_search(record: Any, search: str | None) -> bool:
    """Case-insensitive substring match on project, issuer, country and commodity."""
    if not search or not search.strip():
        return True
    needle = search.strip().lower()
    for field in SEARCH_FIELDS:
        value = getattr(record, field, None)
        if value and needle in str(value).lower():
            return True
    return False


def matches_filters(record: Any, filters: ExtractionFilters) -> bool:
    if filters.status and _value(record.status) != _value(filters.status):
        return False
    if filters.priority and _value(record.investigation_priority) != _value(filters.priority):
        return False
    if filters.stage and _value(record.report_stage) != _value(filters.stage):
        return False
    if filters.commodity and not _same_text(record.primary_commodity, filters.commodity):
        return False
    if filters.country and not _same_text(record.country, filters.country):
        return False
    return matches_search(record, filters.search)


def _sort_key(field: str, value: Any) -> Any:
    value = _value(value)
    ranks = _RANKED_FIELDS.get(field)
    if ranks is not None:
        return ranks.get(value, len(ranks) + 1)
    if isinstance(value, str):
        return value.lower()
    return value


def sort_records(
    records: Iterable[T],
    sort: SortField | str = SortField.CREATED_AT,
    direction: SortDirection | str = SortDirection.DESC,
) -> list[T]:
    """
    Sort records by one column.

    Strings compare case-insensitively, priority and status use their rank
    order, and missing values always go last whichever the direction.
    Ties keep their incoming order.
    """
    field = _value(sort)
    descending = _value(direction) == SortDirection.DESC.value

    present: list[T] = []
    missing: list[T] = []
    for record in records:
        (missing if getattr(record, field, None) is None else present).append(record)

    present.sort(key=lambda r: _sort_key(field, getattr(r, field)), reverse=descending)
    return present + missing


def apply_filters(records: Iterable[T], filters: ExtractionFilters | None = None) -> list[T]:
    """Filter, search and sort ``records`` according to ``filters``."""
    if filters is None:
        filters = ExtractionFilters()
    selected = [r for r in records if matches_filters(r, filters)]
    return sort_records(selected, filters.sort, filters.direction)


def _distinct(values: Iterable[Any]) -> list[str]:
    seen: dict[str, None] = {}
    for v in values:
        v = _value(v)
        if v:
            seen.setdefault(str(v), None)
    return sorted(seen, key=str.lower)


def filter_options(records: Sequence[Any]) -> FilterOptionsResponse:
    """Distinct commodities, countries and stages present in ``records``."""
    return FilterOptionsResponse(
        commodities=_distinct(r.primary_commodity for r in records),
        countries=_distinct(r.country for r in records),
        stages=_distinct(r.report_stage for r in records),
    )

"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from app.ni43101.models import (
    PRIORITY_ORDER,
    STATUS_ORDER,
    ExtractionFilters,
    ExtractionRecordCreate,
    ExtractRequest,
    Priority,
    SortDirection,
    SortField,
    Status,
    UpdateExtractionRequest,
)


class TestExtractionRecordCreate:
    """Tests for the flat record model."""

    def test_minimal_record(self):
        record = ExtractionRecordCreate(user_id="user-1")
        assert record.user_id == "user-1"
        assert record.status is None
        assert record.notes is None

    def test_owner_required(self):
        with pytest.raises(ValidationError):
            ExtractionRecordCreate(user_id="")

    def test_enum_values_stored_as_strings(self):
        record = ExtractionRecordCreate(
            user_id="user-1",
            status=Status.WATCH,
            investigation_priority=Priority.LOW,
            report_stage="PFS",
        )
        assert record.status == "WATCH"
        assert record.investigation_priority == "low"
        assert record.report_stage == "PFS"

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionRecordCreate(user_id="user-1", report_stage="Scoping Study")

    @pytest.mark.parametrize("score", [0, 11])
    def test_magellan_score_bounds(self, score):
        with pytest.raises(ValidationError):
            ExtractionRecordCreate(user_id="user-1", magellan_score=score)


class TestUpdateExtractionRequest:
    """Only notes are editable."""

    def test_notes(self):
        assert UpdateExtractionRequest(notes="hello").notes == "hello"

    def test_extra_fields_kept_for_rejection(self):
        request = UpdateExtractionRequest(notes="x", status="PASS")
        assert request.model_dump(exclude_unset=True) == {"notes": "x", "status": "PASS"}

    def test_notes_length_limit(self):
        with pytest.raises(ValidationError):
            UpdateExtractionRequest(notes="x" * 10_001)


class TestExtractionFilters:
    def test_defaults(self):
        filters = ExtractionFilters()
        assert filters.sort == SortField.CREATED_AT
        assert filters.direction == SortDirection.DESC
        assert filters.status is None

    def test_invalid_sort_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionFilters(sort="magellan_score")


class TestRankOrders:
    def test_priority_order(self):
        assert sorted(PRIORITY_ORDER, key=PRIORITY_ORDER.get) == ["high", "medium", "low", "pass"]

    def test_status_order(self):
        assert sorted(STATUS_ORDER, key=STATUS_ORDER.get) == ["INVESTIGATE", "WATCH", "PASS"]


class TestExtractRequest:
    def test_requires_path_and_filename(self):
        with pytest.raises(ValidationError):
            ExtractRequest(path="", filename="report.pdf")
        with pytest.raises(ValidationError):
            ExtractRequest(path="user/1-a.pdf")

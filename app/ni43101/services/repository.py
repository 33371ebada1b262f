"""
Persistence gateway for extraction records.

Every operation is scoped to one owner. Reads, updates and deletes of a
row owned by someone else fail with ``RecordAccessDeniedError`` rather than
silently returning nothing, and the list query always carries the owner
predicate.
"""

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import ExtractionFilters, ExtractionRecordCreate
from ..models_db import Extraction
from .ai.exceptions import PayloadValidationError
from .filtering import apply_filters

logger = logging.getLogger(__name__)

# Columns the owner may change after creation.
EDITABLE_FIELDS = frozenset({"notes"})


class RecordNotFoundError(LookupError):
    """No record with the requested id exists."""

    status_code = 404


class RecordAccessDeniedError(PermissionError):
    """The record exists but belongs to another user."""

    status_code = 403


class RecordSaveError(Exception):
    """The database refused a new record."""

    status_code = 500


def _parse_id(record_id: uuid.UUID | str) -> uuid.UUID:
    if isinstance(record_id, uuid.UUID):
        return record_id
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        raise RecordNotFoundError(f"Extraction not found: {record_id}") from None


class ExtractionRepository:
    """Owner-scoped access to the ``extractions`` table."""

    def __init__(self, session: Session, owner_id: str):
        if not owner_id:
            raise ValueError("owner_id is required")
        self.session = session
        self.owner_id = owner_id

    def insert(self, record: ExtractionRecordCreate) -> Extraction:
        """
        Insert a new record owned by this repository's owner.

        The owner on the record is overwritten with ``owner_id``; ``id`` and
        ``created_at`` are assigned on insert.

        Raises:
            RecordSaveError: If the database rejects the insert.
        """
        data = record.model_dump(mode="python")
        data["user_id"] = self.owner_id

        row = Extraction(**data)
        try:
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Failed to save extraction for user %s: %s", self.owner_id, e)
            raise RecordSaveError("Failed to save extraction") from e

        logger.info("Saved extraction %s for user %s", row.id, self.owner_id)
        return row

    def list(self, filters: ExtractionFilters | None = None) -> list[Extraction]:
        """The owner's records, newest first unless ``filters`` sorts otherwise."""
        stmt = (
            select(Extraction)
            .where(Extraction.user_id == self.owner_id)
            .order_by(Extraction.created_at.desc())
        )
        rows = list(self.session.scalars(stmt))
        if filters is None:
            return rows
        return apply_filters(rows, filters)

    def get(self, record_id: uuid.UUID | str) -> Extraction:
        """
        Fetch one record.

        Raises:
            RecordNotFoundError: If no record has this id.
            RecordAccessDeniedError: If the record belongs to another user.
        """
        row = self.session.get(Extraction, _parse_id(record_id))
        if row is None:
            raise RecordNotFoundError(f"Extraction not found: {record_id}")
        if row.user_id != self.owner_id:
            logger.warning("User %s denied access to extraction %s", self.owner_id, record_id)
            raise RecordAccessDeniedError("Access denied")
        return row

    def update(self, record_id: uuid.UUID | str, changes: Mapping[str, Any]) -> Extraction:
        """
        Apply ``changes`` to the user-editable fields of a record.

        Raises:
            PayloadValidationError: If ``changes`` names a non-editable field.
            RecordNotFoundError: If no record has this id.
            RecordAccessDeniedError: If the record belongs to another user.
        """
        rejected = sorted(set(changes) - EDITABLE_FIELDS)
        if rejected:
            raise PayloadValidationError(
                f"Fields cannot be edited: {', '.join(rejected)}"
            )

        row = self.get(record_id)
        for field, value in changes.items():
            setattr(row, field, value)

        self.session.commit()
        self.session.refresh(row)
        logger.info("Updated extraction %s fields: %s", row.id, list(changes))
        return row

    def delete(self, record_id: uuid.UUID | str) -> None:
        """
        Delete a record.

        Raises:
            RecordNotFoundError: If no record has this id.
            RecordAccessDeniedError: If the record belongs to another user.
        """
        row = self.get(record_id)
        self.session.delete(row)
        self.session.commit()
        logger.info("Deleted extraction %s", record_id)

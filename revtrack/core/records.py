"""
Immutable value records consumed by the core engines.

ORM rows convert themselves with ``to_record()``; the core never sees a
SQLAlchemy object and never mutates a record in place. Changes go through
``dataclasses.replace`` (see ``RevisionRecord.evolve``).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum


class EntityKind(str, Enum):
    """Related entity kinds a revision points at."""
    VENTURE = "venture"
    WORK = "work"
    DISCIPLINE = "discipline"
    DESIGNER = "designer"


GROUP_FIELDS = ("venture_id", "work_id", "discipline_id", "designer_id")

ENTITY_ID_FIELDS = {
    EntityKind.VENTURE: "venture_id",
    EntityKind.WORK: "work_id",
    EntityKind.DISCIPLINE: "discipline_id",
    EntityKind.DESIGNER: "designer_id",
}


@dataclass(frozen=True)
class RevisionRecord:
    """One revision, persisted or candidate.

    A candidate may leave any field unset; ``id`` is None until persisted.
    Date fields are calendar dates (no time component).
    """

    id: int | None = None
    venture_id: int | None = None
    work_id: int | None = None
    discipline_id: int | None = None
    designer_id: int | None = None
    revision_number: int | None = None
    expected_delivery_date: date | None = None
    actual_delivery_date: date | None = None
    expected_analysis_date: date | None = None
    actual_analysis_date: date | None = None
    justification: str = ""
    revision_justification: str | None = None
    delivery_status: str = "pending"
    analysis_status: str = "pending"
    lead_days_snapshot: int | None = None
    created_at: datetime | None = None

    @property
    def group(self) -> tuple:
        return tuple(getattr(self, f) for f in GROUP_FIELDS)

    def evolve(self, **changes) -> "RevisionRecord":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        def _iso(value):
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "venture_id": self.venture_id,
            "work_id": self.work_id,
            "discipline_id": self.discipline_id,
            "designer_id": self.designer_id,
            "revision_number": self.revision_number,
            "expected_delivery_date": _iso(self.expected_delivery_date),
            "actual_delivery_date": _iso(self.actual_delivery_date),
            "expected_analysis_date": _iso(self.expected_analysis_date),
            "actual_analysis_date": _iso(self.actual_analysis_date),
            "justification": self.justification,
            "revision_justification": self.revision_justification,
            "delivery_status": self.delivery_status,
            "analysis_status": self.analysis_status,
            "lead_days_snapshot": self.lead_days_snapshot,
            "created_at": _iso(self.created_at),
        }

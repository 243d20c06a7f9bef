"""
Revision repository — persistence contract for revisions.

Services validate (sequence) and derive (status engine) first, then call the
repository. A repository never re-validates and never computes statuses; it
only stores the records it is given, scoped to one owner.

Writes are staged in the current session; the calling service owns the
transaction and commits once per operation, so a batch either lands whole or
not at all.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from sqlalchemy import select

from revtrack.core.exceptions import NotFoundError
from revtrack.core.records import RevisionRecord
from revtrack.models import db
from revtrack.models.revision import Revision
from revtrack.services.actor import ActorContext

logger = logging.getLogger(__name__)


class RevisionRepository(ABC):
    """Abstract store of an owner's revisions."""

    @abstractmethod
    def list(self) -> list[RevisionRecord]:
        """All revisions of the owner, oldest first."""
        ...

    @abstractmethod
    def get(self, revision_id: int) -> RevisionRecord:
        """Raise NotFoundError for unknown or foreign ids."""
        ...

    @abstractmethod
    def create(self, records: Iterable[RevisionRecord]) -> list[RevisionRecord]:
        ...

    @abstractmethod
    def update(self, record: RevisionRecord) -> RevisionRecord:
        ...

    @abstractmethod
    def bulk_update(self, records: Iterable[RevisionRecord]) -> list[RevisionRecord]:
        ...

    @abstractmethod
    def delete(self, revision_id: int) -> None:
        ...


class SqlRevisionRepository(RevisionRepository):
    """Flask-SQLAlchemy implementation bound to one actor."""

    def __init__(self, actor: ActorContext):
        self.actor = actor

    def _row(self, revision_id: int) -> Revision:
        row = db.session.execute(
            select(Revision).where(Revision.id == revision_id, Revision.owner_id == self.actor.owner_id)
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(resource="Revision", resource_id=revision_id)
        return row

    def list(self) -> list[RevisionRecord]:
        rows = db.session.execute(
            select(Revision)
            .where(Revision.owner_id == self.actor.owner_id)
            .order_by(Revision.created_at, Revision.id)
        ).scalars()
        return [row.to_record() for row in rows]

    def get(self, revision_id: int) -> RevisionRecord:
        return self._row(revision_id).to_record()

    def create(self, records: Iterable[RevisionRecord]) -> list[RevisionRecord]:
        rows = []
        for record in records:
            row = Revision(owner_id=self.actor.owner_id)
            row.apply_record(record)
            db.session.add(row)
            rows.append(row)
        db.session.flush()
        return [row.to_record() for row in rows]

    def update(self, record: RevisionRecord) -> RevisionRecord:
        row = self._row(record.id)
        row.apply_record(record)
        db.session.flush()
        return row.to_record()

    def bulk_update(self, records: Iterable[RevisionRecord]) -> list[RevisionRecord]:
        records = list(records)
        rows = {
            row.id: row
            for row in db.session.execute(
                select(Revision).where(
                    Revision.owner_id == self.actor.owner_id,
                    Revision.id.in_([r.id for r in records]),
                )
            ).scalars()
        }
        for record in records:
            row = rows.get(record.id)
            if row is None:
                raise NotFoundError(resource="Revision", resource_id=record.id)
            row.apply_record(record)
        db.session.flush()
        return [rows[r.id].to_record() for r in records]

    def delete(self, revision_id: int) -> None:
        db.session.delete(self._row(revision_id))
        db.session.flush()

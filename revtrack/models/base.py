"""
OwnedModel — Abstract base class for owner-scoped models.

Every catalog entity and revision belongs to the authenticated actor that
created it. Models inherit from OwnedModel instead of db.Model directly,
which adds:
  - owner_id column with index (opaque id supplied by the actor context)
  - created_at / updated_at timestamps
  - query_for_owner(owner_id) classmethod
  - owner_composite_index(...) helper
"""

from datetime import datetime, timezone

from revtrack.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class OwnedModel(db.Model):
    """Abstract base for owner-scoped tables."""
    __abstract__ = True

    owner_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @classmethod
    def query_for_owner(cls, owner_id):
        """Return a query filtered by owner_id."""
        return cls.query.filter_by(owner_id=owner_id)

    @classmethod
    def owner_composite_index(cls, table_name, *extra_cols, unique=False):
        """Helper to build an (owner_id, ...) composite index."""
        name = f"ix_{table_name}_owner_{'_'.join(extra_cols)}"
        cols = ("owner_id",) + extra_cols
        return db.Index(name, *cols, unique=unique)

    def _timestamps(self) -> dict:
        return {
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

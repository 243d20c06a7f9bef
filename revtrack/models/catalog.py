"""
Revision Tracker
Catalog models — the entity hierarchy revisions are registered against.

Models:
    - Venture: root grouping entity (a development)
    - Work: construction site / building, belongs to exactly one Venture
    - Discipline: engineering specialty with its analysis lead time
    - Designer: external firm or person producing the documents

Hierarchy: Venture → Work; Discipline and Designer are flat catalogs.
"""

from revtrack.core.status_engine import DEFAULT_LEAD_DAYS
from revtrack.models import db
from revtrack.models.base import OwnedModel


class Venture(OwnedModel):
    __tablename__ = "ventures"
    __table_args__ = (OwnedModel.owner_composite_index("ventures", "name"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)

    works = db.relationship("Work", back_populates="venture", lazy="select")

    def to_dict(self):
        return {"id": self.id, "name": self.name, **self._timestamps()}

    def __repr__(self):
        return f"<Venture {self.id}: {self.name}>"


class Work(OwnedModel):
    __tablename__ = "works"
    __table_args__ = (OwnedModel.owner_composite_index("works", "venture_id", "name"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    venture_id = db.Column(
        db.Integer, db.ForeignKey("ventures.id", ondelete="RESTRICT"), nullable=False, index=True,
    )

    venture = db.relationship("Venture", back_populates="works")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "venture_id": self.venture_id,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Work {self.id}: {self.name}>"


class Discipline(OwnedModel):
    """Engineering specialty. ``analysis_lead_days`` feeds the analysis deadline."""

    __tablename__ = "disciplines"
    __table_args__ = (OwnedModel.owner_composite_index("disciplines", "name"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    analysis_lead_days = db.Column(
        db.Integer, nullable=False, default=DEFAULT_LEAD_DAYS,
        comment="Average days from delivery to completed analysis",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "analysis_lead_days": self.analysis_lead_days,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Discipline {self.id}: {self.name} ({self.analysis_lead_days}d)>"


class Designer(OwnedModel):
    __tablename__ = "designers"
    __table_args__ = (OwnedModel.owner_composite_index("designers", "name"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Designer {self.id}: {self.name}>"


CATALOG_MODELS = {
    "venture": Venture,
    "work": Work,
    "discipline": Discipline,
    "designer": Designer,
}

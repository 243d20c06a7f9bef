"""
Revision Tracker
Revision model — one numbered submission cycle of a design document.

Derived columns (expected_analysis_date, delivery_status, analysis_status)
are written only by the revision service from the status engine; they are
never accepted from request payloads.
"""

from revtrack.core.records import RevisionRecord
from revtrack.core.status_engine import Status
from revtrack.models import db
from revtrack.models.base import OwnedModel


class Revision(OwnedModel):
    __tablename__ = "revisions"
    __table_args__ = (
        # Group + number is unique; the sequence service enforces contiguity on top.
        db.UniqueConstraint(
            "owner_id", "venture_id", "work_id", "discipline_id", "designer_id", "revision_number",
            name="uq_revisions_group_number",
        ),
        OwnedModel.owner_composite_index("revisions", "venture_id", "work_id", "discipline_id", "designer_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    venture_id = db.Column(db.Integer, db.ForeignKey("ventures.id", ondelete="RESTRICT"), nullable=False, index=True)
    work_id = db.Column(db.Integer, db.ForeignKey("works.id", ondelete="RESTRICT"), nullable=False, index=True)
    discipline_id = db.Column(
        db.Integer, db.ForeignKey("disciplines.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    designer_id = db.Column(db.Integer, db.ForeignKey("designers.id", ondelete="RESTRICT"), nullable=False, index=True)

    revision_number = db.Column(db.Integer, nullable=False)
    expected_delivery_date = db.Column(db.Date, nullable=False)
    actual_delivery_date = db.Column(db.Date, nullable=True)
    expected_analysis_date = db.Column(db.Date, nullable=True, comment="Derived: actual delivery + lead days")
    actual_analysis_date = db.Column(db.Date, nullable=True)
    justification = db.Column(db.Text, nullable=False)
    revision_justification = db.Column(db.Text, nullable=True)
    delivery_status = db.Column(db.String(20), nullable=False, default=Status.PENDING.value, index=True)
    analysis_status = db.Column(db.String(20), nullable=False, default=Status.PENDING.value, index=True)
    lead_days_snapshot = db.Column(db.Integer, nullable=True, comment="Lead days frozen at create/discipline change")

    venture = db.relationship("Venture")
    work = db.relationship("Work")
    discipline = db.relationship("Discipline")
    designer = db.relationship("Designer")

    def to_record(self) -> RevisionRecord:
        return RevisionRecord(
            id=self.id,
            venture_id=self.venture_id,
            work_id=self.work_id,
            discipline_id=self.discipline_id,
            designer_id=self.designer_id,
            revision_number=self.revision_number,
            expected_delivery_date=self.expected_delivery_date,
            actual_delivery_date=self.actual_delivery_date,
            expected_analysis_date=self.expected_analysis_date,
            actual_analysis_date=self.actual_analysis_date,
            justification=self.justification or "",
            revision_justification=self.revision_justification,
            delivery_status=self.delivery_status,
            analysis_status=self.analysis_status,
            lead_days_snapshot=self.lead_days_snapshot,
            created_at=self.created_at,
        )

    def apply_record(self, record: RevisionRecord) -> None:
        """Copy every persisted field from ``record`` onto this row."""
        for field in RECORD_FIELDS:
            setattr(self, field, getattr(record, field))

    def to_dict(self):
        return {
            **self.to_record().to_dict(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Revision {self.id}: R{self.revision_number}>"


RECORD_FIELDS = (
    "venture_id",
    "work_id",
    "discipline_id",
    "designer_id",
    "revision_number",
    "expected_delivery_date",
    "actual_delivery_date",
    "expected_analysis_date",
    "actual_analysis_date",
    "justification",
    "revision_justification",
    "delivery_status",
    "analysis_status",
    "lead_days_snapshot",
)

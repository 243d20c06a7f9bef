"""
Revision status engine.

Pure derivation of delivery status, analysis status and the expected
analysis date from raw date fields and a lead time. Every entry point
(API create/edit, quick date edit, bulk edit, spreadsheet import, draft
save) goes through ``derive_status_fields`` so the derived columns never
drift apart.

Dates may be passed as ``date``/``datetime`` objects or ISO strings; any
value that cannot be read as a calendar date counts as absent.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from revtrack.core.dates import to_calendar_date

DEFAULT_LEAD_DAYS = 5


class Status(str, Enum):
    """Delivery / analysis status.

    "delivered late" is a reserved value that no rule produces, so it is not
    represented here.
    """
    PENDING = "pending"
    ON_TIME = "on-time"
    LATE = "late"


STATUS_VALUES = tuple(s.value for s in Status)


def compute_delivery_status(expected_delivery_date, actual_delivery_date) -> Status:
    """pending if not delivered; late if delivered after the expected day; else on-time."""
    actual = to_calendar_date(actual_delivery_date)
    if actual is None:
        return Status.PENDING
    expected = to_calendar_date(expected_delivery_date)
    if expected is None:
        return Status.PENDING
    return Status.LATE if actual > expected else Status.ON_TIME


def compute_analysis_status(expected_analysis_date, actual_analysis_date) -> Status:
    """pending unless both dates are known; late if analysed after the deadline."""
    expected = to_calendar_date(expected_analysis_date)
    actual = to_calendar_date(actual_analysis_date)
    if expected is None or actual is None:
        return Status.PENDING
    return Status.LATE if actual > expected else Status.ON_TIME


def compute_expected_analysis_date(actual_delivery_date, lead_days: int = DEFAULT_LEAD_DAYS) -> date | None:
    """Analysis deadline: actual delivery + ``lead_days`` calendar days.

    An undelivered revision has no analysis deadline.
    """
    delivered = to_calendar_date(actual_delivery_date)
    if delivered is None:
        return None
    try:
        return delivered + timedelta(days=int(lead_days))
    except OverflowError:
        return None


def resolve_lead_days(snapshot: int | None, discipline_lead_days: int | None = None) -> int:
    """Lead time in force: frozen snapshot, then the discipline's current value, then 5."""
    if snapshot is not None:
        return int(snapshot)
    if discipline_lead_days is not None:
        return int(discipline_lead_days)
    return DEFAULT_LEAD_DAYS


@dataclass(frozen=True)
class DerivedStatus:
    """The four derived columns of a revision."""
    expected_analysis_date: date | None
    delivery_status: Status
    analysis_status: Status
    lead_days: int

    def as_changes(self) -> dict:
        """Field changes ready for ``RevisionRecord.evolve``."""
        return {
            "expected_analysis_date": self.expected_analysis_date,
            "delivery_status": self.delivery_status.value,
            "analysis_status": self.analysis_status.value,
            "lead_days_snapshot": self.lead_days,
        }


def derive_status_fields(
    expected_delivery_date,
    actual_delivery_date,
    actual_analysis_date,
    lead_days: int = DEFAULT_LEAD_DAYS,
) -> DerivedStatus:
    expected_analysis = compute_expected_analysis_date(actual_delivery_date, lead_days)
    return DerivedStatus(
        expected_analysis_date=expected_analysis,
        delivery_status=compute_delivery_status(expected_delivery_date, actual_delivery_date),
        analysis_status=compute_analysis_status(expected_analysis, actual_analysis_date),
        lead_days=int(lead_days),
    )

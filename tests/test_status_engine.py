"""
Tests — revision status engine.

Covers:
    - delivery status: pending / on-time / late, same-day delivery is on-time
    - analysis status needs both dates
    - expected analysis date = actual delivery + lead days
    - lead time resolution order (snapshot → discipline → 5)
    - unparsable input never raises
"""

from datetime import date, datetime

import pytest

from revtrack.core.status_engine import (
    DEFAULT_LEAD_DAYS,
    Status,
    compute_analysis_status,
    compute_delivery_status,
    compute_expected_analysis_date,
    derive_status_fields,
    resolve_lead_days,
)


# ═════════════════════════════════════════════════════════════════════════════
# Delivery status
# ═════════════════════════════════════════════════════════════════════════════

class TestDeliveryStatus:
    def test_pending_without_actual_delivery(self):
        assert compute_delivery_status(date(2025, 1, 10), None) is Status.PENDING

    def test_late_when_delivered_after_expected(self):
        assert compute_delivery_status("2025-01-10", "2025-01-12") is Status.LATE

    def test_same_day_is_on_time(self):
        assert compute_delivery_status("2025-01-10", "2025-01-10") is Status.ON_TIME

    def test_early_is_on_time(self):
        assert compute_delivery_status(date(2025, 1, 10), date(2025, 1, 2)) is Status.ON_TIME

    def test_time_of_day_is_ignored(self):
        assert compute_delivery_status(
            datetime(2025, 1, 10, 8, 0), datetime(2025, 1, 10, 23, 59),
        ) is Status.ON_TIME

    def test_garbage_counts_as_absent(self):
        assert compute_delivery_status("2025-01-10", "not a date") is Status.PENDING
        assert compute_delivery_status("soon", "2025-01-10") is Status.PENDING

    def test_out_of_range_serial_counts_as_absent(self):
        assert compute_delivery_status("2025-01-15", 10 ** 400) is Status.PENDING

    def test_status_values(self):
        assert [s.value for s in Status] == ["pending", "on-time", "late"]


# ═════════════════════════════════════════════════════════════════════════════
# Analysis status & deadline
# ═════════════════════════════════════════════════════════════════════════════

class TestAnalysis:
    def test_expected_analysis_date_adds_lead_days(self):
        assert compute_expected_analysis_date("2025-01-10", 5) == date(2025, 1, 15)

    def test_expected_analysis_date_crosses_month(self):
        assert compute_expected_analysis_date(date(2025, 1, 30), 3) == date(2025, 2, 2)

    def test_no_deadline_before_delivery(self):
        assert compute_expected_analysis_date(None) is None
        assert compute_expected_analysis_date("") is None

    def test_deadline_past_calendar_range_is_absent(self):
        assert compute_expected_analysis_date("2025-01-10", 3_000_000) is None
        fields = derive_status_fields("2025-01-10", "2025-01-10", "2025-01-12", 3_000_000)
        assert fields.expected_analysis_date is None
        assert fields.analysis_status is Status.PENDING

    def test_default_lead_days(self):
        assert DEFAULT_LEAD_DAYS == 5
        assert compute_expected_analysis_date("2025-03-01") == date(2025, 3, 6)

    @pytest.mark.parametrize("expected, actual, status", [
        (None, "2025-01-10", Status.PENDING),
        ("2025-01-10", None, Status.PENDING),
        ("2025-01-10", "2025-01-10", Status.ON_TIME),
        ("2025-01-10", "2025-01-11", Status.LATE),
    ])
    def test_analysis_status(self, expected, actual, status):
        assert compute_analysis_status(expected, actual) is status


# ═════════════════════════════════════════════════════════════════════════════
# Lead time & combined derivation
# ═════════════════════════════════════════════════════════════════════════════

class TestDerivation:
    def test_snapshot_wins(self):
        assert resolve_lead_days(3, 10) == 3

    def test_zero_snapshot_is_kept(self):
        assert resolve_lead_days(0, 10) == 0

    def test_discipline_then_default(self):
        assert resolve_lead_days(None, 10) == 10
        assert resolve_lead_days(None, None) == 5

    def test_derive_all_fields(self):
        derived = derive_status_fields("2025-01-10", "2025-01-12", "2025-01-20", lead_days=7)
        assert derived.expected_analysis_date == date(2025, 1, 19)
        assert derived.delivery_status is Status.LATE
        assert derived.analysis_status is Status.LATE
        assert derived.as_changes() == {
            "expected_analysis_date": date(2025, 1, 19),
            "delivery_status": "late",
            "analysis_status": "late",
            "lead_days_snapshot": 7,
        }

    def test_derive_undelivered(self):
        derived = derive_status_fields("2025-01-10", None, "2025-01-20")
        assert derived.expected_analysis_date is None
        assert derived.delivery_status is Status.PENDING
        assert derived.analysis_status is Status.PENDING

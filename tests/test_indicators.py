"""
Tests — dashboard indicators and yearly delivery compliance.

Covers:
  - counts per entity (catalog order, zero counts omitted)
  - status distribution and on-time percentages over all revisions
  - top justifications (blank grouped, limit)
  - delivery compliance: planned / delivered / attainment per year and venture
  - endpoints with filters and year validation
"""

from datetime import date
from types import SimpleNamespace

import pytest

import revtrack.services.indicators_service as ins
from revtrack.core.records import RevisionRecord
from revtrack.services.catalog_service import Catalog

BASE = "/api/v1/indicators"


def _catalog():
    return Catalog(
        ventures=(SimpleNamespace(id=1, name="Riverside"), SimpleNamespace(id=2, name="Harbour")),
        works=(SimpleNamespace(id=1, name="Block A", venture_id=1),),
        disciplines=(SimpleNamespace(id=1, name="Structural", analysis_lead_days=5),),
        designers=(SimpleNamespace(id=1, name="Acme"),),
    )


def _rec(number, expected, actual=None, status="pending", justification="Issue", venture=1):
    return RevisionRecord(
        id=number, venture_id=venture, work_id=1, discipline_id=1, designer_id=1,
        revision_number=number, expected_delivery_date=expected, actual_delivery_date=actual,
        delivery_status=status, justification=justification,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Pure aggregates
# ═════════════════════════════════════════════════════════════════════════════


class TestAggregates:
    def test_counts_omit_unused_entities(self):
        counts = ins.counts_by_entity([_rec(1, None), _rec(2, None)], _catalog())
        assert counts["venture"] == [{"id": 1, "name": "Riverside", "count": 2}]
        assert counts["designer"] == [{"id": 1, "name": "Acme", "count": 2}]

    def test_status_distribution(self):
        records = [_rec(1, None, status="late"), _rec(2, None), _rec(3, None)]
        assert ins.status_distribution(records, "delivery_status") == {"pending": 2, "on-time": 0, "late": 1}

    def test_on_time_percentage_over_all(self):
        records = [_rec(1, None, status="on-time"), _rec(2, None), _rec(3, None, status="late")]
        assert ins.on_time_percentage(records, "delivery_status") == 33.3
        assert ins.on_time_percentage([], "delivery_status") == 0.0

    def test_top_justifications(self):
        records = [_rec(i, None, justification=j) for i, j in
                   enumerate(["Client", " ", "Client", "Site", ""], 1)]
        assert ins.top_justifications(records) == [
            {"justification": "Client", "count": 2},
            {"justification": ins.NO_JUSTIFICATION, "count": 2},
            {"justification": "Site", "count": 1},
        ]
        assert len(ins.top_justifications(records, limit=1)) == 1

    def test_delivery_compliance(self):
        records = [
            _rec(1, date(2025, 3, 10), date(2025, 3, 12)),
            _rec(2, date(2025, 4, 10), date(2025, 4, 1)),
            _rec(3, date(2025, 5, 10)),
            _rec(4, date(2024, 12, 1)),
            _rec(5, date(2025, 6, 1), venture=2),
        ]
        result = ins.compute_delivery_compliance(records, _catalog(), 2025, target=95)
        assert result["planned"] == 4
        assert result["delivered"] == 2
        assert result["delivered_pct"] == 50.0
        assert result["target_attainment_pct"] == 52.63
        assert result["target_met"] is False
        assert [v["venture"] for v in result["by_venture"]] == ["Riverside", "Harbour"]
        assert result["by_venture"][0]["delivered_pct"] == 66.67

    def test_compliance_without_plans(self):
        result = ins.compute_delivery_compliance([], _catalog(), 2025)
        assert result["planned"] == 0
        assert result["delivered_pct"] == 0.0
        assert result["by_venture"] == []


# ═════════════════════════════════════════════════════════════════════════════
# Endpoints
# ═════════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def seeded(client, actor_headers, group):
    rows = [
        ("2025-03-10", "2025-03-12", "Client comments"),
        ("2025-04-10", "2025-04-01", "Client comments"),
        ("2025-05-10", None, "Design change"),
    ]
    for number, (expected, actual, justification) in enumerate(rows, 1):
        res = client.post("/api/v1/revisions", json={
            **group, "revision_number": number, "expected_delivery_date": expected,
            "actual_delivery_date": actual, "justification": justification,
        }, headers=actor_headers)
        assert res.status_code == 201


class TestIndicatorsAPI:
    def test_summary(self, client, actor_headers, seeded):
        body = client.get(BASE, headers=actor_headers).get_json()
        assert body["total"] == 3
        assert body["delivery_status"] == {"pending": 1, "on-time": 1, "late": 1}
        assert body["delivery_on_time_pct"] == 33.3
        assert body["analysis_status"]["pending"] == 3
        assert body["counts"]["work"][0]["count"] == 3
        assert body["top_justifications"][0] == {"justification": "Client comments", "count": 2}

    def test_summary_respects_filters(self, client, actor_headers, seeded):
        body = client.get(f"{BASE}?delivery_status=late", headers=actor_headers).get_json()
        assert body["total"] == 1

    def test_delivery_compliance(self, client, actor_headers, seeded):
        res = client.get(f"{BASE}/delivery-compliance?year=2025", headers=actor_headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["planned"] == 3
        assert body["delivered"] == 2
        assert body["delivered_pct"] == 66.67
        assert body["target_pct"] == 95
        assert body["target_attainment_pct"] == 70.18

    def test_year_validated(self, client, actor_headers):
        assert client.get(f"{BASE}/delivery-compliance?year=1800", headers=actor_headers).status_code == 400
        assert client.get(f"{BASE}/delivery-compliance?year=abc", headers=actor_headers).status_code == 400

    def test_empty_owner(self, client, other_headers, seeded):
        body = client.get(BASE, headers=other_headers).get_json()
        assert body["total"] == 0
        assert body["top_justifications"] == []

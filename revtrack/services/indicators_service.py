"""
Indicators — dashboard aggregates over an owner's (optionally filtered) revisions.

The aggregation functions are pure and take the revision collection plus
the catalog; ``build_indicators`` and ``delivery_compliance`` load both for
an actor.

Delivery compliance (yearly):
    planned   = revisions whose expected delivery date falls in the year
    delivered = planned revisions with an actual delivery date
    pct       = delivered / planned × 100
    attainment = pct / target × 100   (target defaults to 95 %)
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date

from revtrack.core.query_pipeline import FilterState, apply_filters
from revtrack.core.status_engine import STATUS_VALUES, Status
from revtrack.services.actor import ActorContext
from revtrack.services.catalog_service import Catalog, load_catalog
from revtrack.services.revision_repository import RevisionRepository, SqlRevisionRepository

logger = logging.getLogger(__name__)

DELIVERY_COMPLIANCE_TARGET = 95
TOP_JUSTIFICATIONS = 10
NO_JUSTIFICATION = "No justification"


def _pct(part: int, whole: int, digits: int = 1) -> float:
    return round(part * 100 / whole, digits) if whole else 0.0


def counts_by_entity(records, catalog: Catalog) -> dict[str, list[dict]]:
    """Revision count per entity, in catalog order; entities without revisions omitted."""
    result = {}
    for kind in ("venture", "work", "discipline", "designer"):
        counter = Counter(getattr(r, f"{kind}_id") for r in records)
        result[kind] = [
            {"id": e.id, "name": e.name, "count": counter[e.id]}
            for e in catalog.entities(kind)
            if counter[e.id] > 0
        ]
    return result


def status_distribution(records, field: str) -> dict[str, int]:
    counter = Counter(getattr(r, field) for r in records)
    return {status: counter[status] for status in STATUS_VALUES}


def top_justifications(records, limit: int = TOP_JUSTIFICATIONS) -> list[dict]:
    """Most frequent justifications; ties keep first-appearance order."""
    counter = Counter((r.justification or "").strip() or NO_JUSTIFICATION for r in records)
    return [{"justification": text, "count": count} for text, count in counter.most_common(limit)]


def on_time_percentage(records, field: str) -> float:
    """Share of all revisions whose ``field`` status is on-time (one decimal)."""
    on_time = sum(1 for r in records if getattr(r, field) == Status.ON_TIME.value)
    return _pct(on_time, len(records))


def compute_delivery_compliance(records, catalog: Catalog, year: int,
                                target: float = DELIVERY_COMPLIANCE_TARGET) -> dict:
    start, end = date(year, 1, 1), date(year, 12, 31)
    planned = [
        r for r in records
        if r.expected_delivery_date is not None and start <= r.expected_delivery_date <= end
    ]
    delivered = [r for r in planned if r.actual_delivery_date is not None]
    pct = _pct(len(delivered), len(planned), 2)

    by_venture = []
    for venture in catalog.ventures:
        planned_v = [r for r in planned if r.venture_id == venture.id]
        if not planned_v:
            continue
        delivered_v = sum(1 for r in planned_v if r.actual_delivery_date is not None)
        by_venture.append({
            "venture_id": venture.id,
            "venture": venture.name,
            "planned": len(planned_v),
            "delivered": delivered_v,
            "delivered_pct": _pct(delivered_v, len(planned_v), 2),
        })

    return {
        "year": year,
        "target_pct": target,
        "planned": len(planned),
        "delivered": len(delivered),
        "delivered_pct": pct,
        "target_attainment_pct": round(pct * 100 / target, 2) if target else 0.0,
        "target_met": pct >= target,
        "by_venture": by_venture,
    }


def summarize(records, catalog: Catalog) -> dict:
    records = list(records)
    return {
        "total": len(records),
        "counts": counts_by_entity(records, catalog),
        "delivery_status": status_distribution(records, "delivery_status"),
        "analysis_status": status_distribution(records, "analysis_status"),
        "delivery_on_time_pct": on_time_percentage(records, "delivery_status"),
        "analysis_on_time_pct": on_time_percentage(records, "analysis_status"),
        "top_justifications": top_justifications(records),
    }


# ── Actor-level entry points ─────────────────────────────────────────────────


def _load(actor: ActorContext, filters: FilterState | None, repository: RevisionRepository | None):
    catalog = load_catalog(actor)
    repo = repository if repository is not None else SqlRevisionRepository(actor)
    records = repo.list()
    if filters is not None and not filters.is_empty:
        records = apply_filters(records, filters, catalog.resolver())
    return records, catalog


def build_indicators(actor: ActorContext, filters: FilterState | None = None,
                     repository: RevisionRepository | None = None) -> dict:
    records, catalog = _load(actor, filters, repository)
    logger.debug("Indicators owner=%s revisions=%d", actor.owner_id, len(records))
    return summarize(records, catalog)


def delivery_compliance(actor: ActorContext, year: int, target: float = DELIVERY_COMPLIANCE_TARGET,
                        filters: FilterState | None = None,
                        repository: RevisionRepository | None = None) -> dict:
    records, catalog = _load(actor, filters, repository)
    return compute_delivery_compliance(records, catalog, year, target)

#!/usr/bin/env python3
"""
Revision Tracker — Demo Data Seed Script.

Creates a small catalog (2 ventures, 3 works, 3 disciplines, 2 designers)
and a run of revisions for one owner, going through the service layer so
every revision gets its numbering checked and statuses derived.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --owner acme-pm
    python scripts/seed_demo_data.py --reset
"""

import argparse
import logging
from datetime import date, timedelta

from revtrack import create_app
from revtrack.models import db
from revtrack.models.catalog import CATALOG_MODELS
from revtrack.models.revision import Revision
from revtrack.services import catalog_service as cs
from revtrack.services import revision_service as rs
from revtrack.services.actor import ActorContext

logger = logging.getLogger("seed_demo_data")

VENTURES = {
    "Riverside Towers": ["Block A", "Block B"],
    "Harbor Point Offices": ["Main Building"],
}
DISCIPLINES = [("Architecture", 7), ("Structural", 5), ("MEP", 10)]
DESIGNERS = [
    ("Acme Engineering", "contact@acme-eng.com", "+55 11 5555-0100"),
    ("Studio Norte Arquitetura", "projetos@studionorte.com", None),
]
JUSTIFICATIONS = ["Initial issue", "Client comments", "Coordination clash", "Code compliance"]


def _reset(actor: ActorContext) -> None:
    Revision.query_for_owner(actor.owner_id).delete()
    for kind in ("work", "venture", "discipline", "designer"):
        CATALOG_MODELS[kind].query_for_owner(actor.owner_id).delete()
    db.session.commit()


def seed_demo(owner_id: str, reset: bool = False) -> int:
    """Seed the demo data set for ``owner_id``; returns the number of revisions created."""
    actor = ActorContext(owner_id=owner_id)
    if reset:
        _reset(actor)

    works = []
    for venture_name, work_names in VENTURES.items():
        venture = cs.create_entity(actor, "venture", {"name": venture_name})
        for work_name in work_names:
            works.append(cs.create_entity(actor, "work", {"name": work_name, "venture_id": venture.id}))
    disciplines = [
        cs.create_entity(actor, "discipline", {"name": name, "analysis_lead_days": lead})
        for name, lead in DISCIPLINES
    ]
    designers = [
        cs.create_entity(actor, "designer", {"name": name, "email": email, "phone": phone})
        for name, email, phone in DESIGNERS
    ]

    start = date.today() - timedelta(days=120)
    entries = []
    row = 0
    for w_index, work in enumerate(works):
        for d_index, discipline in enumerate(disciplines):
            designer = designers[(w_index + d_index) % len(designers)]
            for number in range(1, 4):
                row += 1
                expected = start + timedelta(days=row * 4)
                delivered = expected + timedelta(days=(row % 3) - 1) if expected < date.today() else None
                analysed = delivered + timedelta(days=discipline.analysis_lead_days + (row % 4) - 2) \
                    if delivered and delivered < date.today() - timedelta(days=15) else None
                entries.append((row, {
                    "venture_id": work.venture_id,
                    "work_id": work.id,
                    "discipline_id": discipline.id,
                    "designer_id": designer.id,
                    "revision_number": number,
                    "expected_delivery_date": expected.isoformat(),
                    "actual_delivery_date": delivered.isoformat() if delivered else None,
                    "actual_analysis_date": analysed.isoformat() if analysed else None,
                    "justification": JUSTIFICATIONS[row % len(JUSTIFICATIONS)],
                }))

    created = rs.save_batch(actor, entries, operation="Demo seed")
    return len(created)


def main():
    parser = argparse.ArgumentParser(description="Seed demo revisions")
    parser.add_argument("--owner", default=None, help="owner id (default: DEV_ACTOR_ID)")
    parser.add_argument("--reset", action="store_true", help="delete the owner's data first")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        owner = args.owner or app.config.get("DEV_ACTOR_ID") or "dev-owner"
        count = seed_demo(owner, reset=args.reset)
        logger.info("Seeded %d demo revisions for owner=%s", count, owner)


if __name__ == "__main__":
    main()

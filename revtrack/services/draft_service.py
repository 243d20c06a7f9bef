"""
Draft service — revisions proposed by the text/voice extraction service.

A draft names its venture, work, discipline and designer in free text
(``venture_name`` ...). Resolution fills each missing id with the fuzzy
matcher and pre-fills a missing revision number with the group's next
number. Resolved drafts are saved through the same all-or-nothing batch
path as spreadsheet import.
"""

from __future__ import annotations

import logging

from revtrack.core.dates import normalize_date
from revtrack.core.exceptions import ValidationError
from revtrack.core.name_matching import MATCH_THRESHOLD, best_match
from revtrack.core.records import GROUP_FIELDS, RevisionRecord
from revtrack.core.sequence import SequenceShadow
from revtrack.services.actor import ActorContext
from revtrack.services.catalog_service import Catalog, load_catalog
from revtrack.services.revision_repository import RevisionRepository, SqlRevisionRepository
from revtrack.services.revision_service import DATE_FIELDS, parse_revision_number, save_batch

logger = logging.getLogger(__name__)


def _present(value) -> bool:
    return value is not None and str(value).strip() != ""


def _known_id(catalog: Catalog, kind: str, value, **scope):
    """Keep a caller-supplied id only if it exists (and, for works, sits in the venture)."""
    try:
        entity = catalog.find(kind, int(value))
    except (TypeError, ValueError):
        return None
    if entity is None:
        return None
    if kind == "work" and entity.venture_id != scope.get("venture_id"):
        return None
    return entity.id


def resolve_draft(catalog: Catalog, draft: dict, threshold: int = MATCH_THRESHOLD) -> dict:
    """Return a copy of ``draft`` with ids filled where a unique match exists.

    ``unresolved`` lists the id fields still missing, for manual selection.
    """
    resolved = dict(draft)
    venture_id = _known_id(catalog, "venture", draft.get("venture_id")) if _present(draft.get("venture_id")) else None
    if venture_id is None:
        venture_id = best_match(draft.get("venture_name"), catalog.ventures, threshold)
    resolved["venture_id"] = venture_id

    work_id = None
    if venture_id is not None:
        if _present(draft.get("work_id")):
            work_id = _known_id(catalog, "work", draft.get("work_id"), venture_id=venture_id)
        if work_id is None:
            work_id = best_match(draft.get("work_name"), catalog.works_of(venture_id), threshold)
    resolved["work_id"] = work_id

    for kind, candidates in (("discipline", catalog.disciplines), ("designer", catalog.designers)):
        field = f"{kind}_id"
        entity_id = _known_id(catalog, kind, draft.get(field)) if _present(draft.get(field)) else None
        if entity_id is None:
            entity_id = best_match(draft.get(f"{kind}_name"), candidates, threshold)
        resolved[field] = entity_id

    for field in DATE_FIELDS:
        if field in draft:
            resolved[field] = normalize_date(draft[field]) or None

    resolved["unresolved"] = [f for f in GROUP_FIELDS if resolved[f] is None]
    return resolved


def resolve_drafts(
    actor: ActorContext,
    drafts: list[dict],
    threshold: int = MATCH_THRESHOLD,
    repository: RevisionRepository | None = None,
) -> list[dict]:
    """Resolve a list of drafts; numbers are pre-filled shadow-aware across the list."""
    if not isinstance(drafts, list):
        raise ValidationError("drafts must be a list", details={"drafts": "invalid"})
    catalog = load_catalog(actor)
    repo = repository if repository is not None else SqlRevisionRepository(actor)
    shadow = SequenceShadow(repo.list())

    results = []
    for draft in drafts:
        if not isinstance(draft, dict):
            raise ValidationError("each draft must be an object", details={"drafts": "invalid"})
        resolved = resolve_draft(catalog, draft, threshold)
        if not resolved["unresolved"]:
            key = tuple(resolved[f] for f in GROUP_FIELDS)
            try:
                number = parse_revision_number(draft.get("revision_number"))
            except ValidationError:
                number = None
            if number is None:
                number = shadow.next_number(key)
                resolved["revision_number"] = number
            shadow.accept(RevisionRecord(**dict(zip(GROUP_FIELDS, key)), revision_number=number))
        results.append(resolved)

    logger.info(
        "Drafts resolved owner=%s count=%d unresolved=%d",
        actor.owner_id, len(results), sum(1 for r in results if r["unresolved"]),
    )
    return results


def save_drafts(actor: ActorContext, drafts: list[dict],
                repository: RevisionRepository | None = None) -> list[RevisionRecord]:
    """Persist resolved drafts, all or nothing. Errors are reported per draft (1-based)."""
    if not isinstance(drafts, list) or not drafts:
        raise ValidationError("drafts must be a non-empty list", details={"drafts": "required"})
    if not all(isinstance(d, dict) for d in drafts):
        raise ValidationError("each draft must be an object", details={"drafts": "invalid"})
    entries = [(index, draft) for index, draft in enumerate(drafts, start=1)]
    return save_batch(actor, entries, operation="Draft save", repository=repository)

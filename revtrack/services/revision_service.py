"""
Revision service — every write path for revisions.

Each entry point (create, edit, quick date edit, bulk edit, duplication,
spreadsheet import, draft save) runs the same pipeline per candidate:

    coerce payload → required fields → catalog references
        → sequence check → status derivation → repository

Batches validate every candidate against a ``SequenceShadow`` so that rows
of the same batch see each other, collect every row error, and touch the
repository only when the whole batch is clean.

Rules:
  - The actor is always an explicit parameter (never from g).
  - db.session.commit() happens only here, once per operation.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from revtrack.core.dates import to_calendar_date
from revtrack.core.exceptions import (
    IngestionError,
    MissingRequiredField,
    ValidationError,
)
from revtrack.core.query_pipeline import (
    DEFAULT_PAGE_SIZE,
    UNSORTED,
    FilterState,
    NameResolver,
    Page,
    SortState,
    apply_filters,
    apply_sort,
    run_query,
    unique_values,
)
from revtrack.core.records import GROUP_FIELDS, EntityKind, RevisionRecord
from revtrack.core.sequence import SequenceShadow, group_key, next_revision_number
from revtrack.core.status_engine import derive_status_fields, resolve_lead_days
from revtrack.models import db
from revtrack.services.actor import ActorContext
from revtrack.services.catalog_service import Catalog, load_catalog
from revtrack.services.revision_repository import RevisionRepository, SqlRevisionRepository

logger = logging.getLogger(__name__)

DATE_FIELDS = ("expected_delivery_date", "actual_delivery_date", "actual_analysis_date")
TEXT_FIELDS = ("justification", "revision_justification")
EDITABLE_FIELDS = (*GROUP_FIELDS, "revision_number", *DATE_FIELDS, *TEXT_FIELDS)
REQUIRED_FIELDS = (*GROUP_FIELDS, "revision_number", "expected_delivery_date", "justification")

_REVISION_LABEL_RE = re.compile(r"^(?:rev(?:ision)?|r)?\s*[.\-_]?\s*(\d+)$", re.IGNORECASE)


# ═════════════════════════════════════════════════════════════════════════════
# Payload coercion
# ═════════════════════════════════════════════════════════════════════════════

def parse_revision_number(value) -> int | None:
    """Read a revision number from an int, integral float, digits or an "R01"/"Rev 2" label."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError("revision_number must be a whole number", details={"revision_number": "invalid"})
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(
                "revision_number must be a whole number", details={"revision_number": "invalid"},
            )
        number = int(value)
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            m = _REVISION_LABEL_RE.match(text)
            if not m:
                raise ValidationError(
                    f"revision_number '{value}' is not a whole number",
                    details={"revision_number": "invalid"},
                )
            number = int(m.group(1))
    if number < 0:
        raise ValidationError("revision_number must be ≥ 0", details={"revision_number": "negative"})
    return number


def _parse_id(value, field: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id", details={field: "invalid"})
    try:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(value)
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer id", details={field: "invalid"})


def _parse_date(value, field: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = to_calendar_date(value)
    if parsed is None:
        raise ValidationError(
            f"{field} '{value}' is not a valid date (use yyyy-mm-dd or dd/mm/yyyy)",
            details={field: "invalid_date"},
        )
    return parsed


def coerce_changes(data: dict, allowed: Iterable[str] = EDITABLE_FIELDS) -> dict:
    """Typed field changes from a request/import payload.

    Keys outside ``allowed`` are ignored; derived fields are never read.
    """
    allowed = set(allowed)
    changes: dict = {}
    for field in GROUP_FIELDS:
        if field in allowed and field in data:
            changes[field] = _parse_id(data[field], field)
    if "revision_number" in allowed and "revision_number" in data:
        changes["revision_number"] = parse_revision_number(data["revision_number"])
    for field in DATE_FIELDS:
        if field in allowed and field in data:
            changes[field] = _parse_date(data[field], field)
    if "justification" in allowed and "justification" in data:
        changes["justification"] = str(data["justification"] or "").strip()
    if "revision_justification" in allowed and "revision_justification" in data:
        changes["revision_justification"] = str(data["revision_justification"] or "").strip() or None
    return changes


# ═════════════════════════════════════════════════════════════════════════════
# Candidate pipeline
# ═════════════════════════════════════════════════════════════════════════════

def check_required(candidate: RevisionRecord) -> None:
    for field in REQUIRED_FIELDS:
        value = getattr(candidate, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MissingRequiredField(field)


def check_references(catalog: Catalog, candidate: RevisionRecord) -> None:
    """Every foreign key must point at the owner's catalog; the work must sit in the venture."""
    for kind in EntityKind:
        field = f"{kind.value}_id"
        entity_id = getattr(candidate, field)
        if catalog.find(kind.value, entity_id) is None:
            raise ValidationError(
                f"{kind.value.capitalize()} {entity_id} does not exist", details={field: "not_found"},
            )
    work = catalog.find("work", candidate.work_id)
    if work.venture_id != candidate.venture_id:
        raise ValidationError(
            f"Work {candidate.work_id} does not belong to venture {candidate.venture_id}",
            details={"work_id": "wrong_venture"},
        )


def lead_days_for(catalog: Catalog, candidate: RevisionRecord, stored: RevisionRecord | None = None) -> int:
    """Lead time to apply: re-snapshot on create or discipline change, else keep the snapshot."""
    discipline_lead = catalog.discipline_lead_days(candidate.discipline_id)
    if stored is None or stored.discipline_id != candidate.discipline_id:
        return resolve_lead_days(None, discipline_lead)
    return resolve_lead_days(stored.lead_days_snapshot, discipline_lead)


def with_derived_fields(candidate: RevisionRecord, lead_days: int) -> RevisionRecord:
    derived = derive_status_fields(
        candidate.expected_delivery_date,
        candidate.actual_delivery_date,
        candidate.actual_analysis_date,
        lead_days,
    )
    return candidate.evolve(**derived.as_changes())


def prepare_candidate(
    catalog: Catalog,
    shadow: SequenceShadow,
    candidate: RevisionRecord,
    stored: RevisionRecord | None = None,
) -> RevisionRecord:
    """Validate ``candidate`` and return it with derived fields; folds it into ``shadow``."""
    check_required(candidate)
    check_references(catalog, candidate)
    shadow.validate(candidate, exclude_id=stored.id if stored else None).raise_for_error(
        candidate.revision_number
    )
    final = with_derived_fields(candidate, lead_days_for(catalog, candidate, stored))
    shadow.accept(final)
    return final


def _error_entry(row, exc: ValidationError) -> dict:
    field = getattr(exc, "field", None) or next(iter(exc.details), None)
    return {"row": row, "field": field, "message": exc.message}


class BatchCollector:
    """Collects per-row errors of a batch; raises them all at once."""

    def __init__(self, operation: str):
        self.operation = operation
        self.errors: list[dict] = []

    def add(self, row, exc: ValidationError) -> None:
        self.errors.append(_error_entry(row, exc))

    def add_message(self, row, field: str | None, message: str) -> None:
        self.errors.append({"row": row, "field": field, "message": message})

    def raise_if_any(self) -> None:
        if self.errors:
            logger.warning("%s rejected: %d error(s)", self.operation, len(self.errors))
            # Sorted by row, stable so a row's lookup errors stay ahead of its field errors.
            raise IngestionError(sorted(self.errors, key=lambda e: (e["row"] is None, e["row"] or 0)))


# ═════════════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════════════

def _repository(actor: ActorContext, repository: RevisionRepository | None) -> RevisionRepository:
    return repository if repository is not None else SqlRevisionRepository(actor)


def serialize(record: RevisionRecord, resolver: NameResolver) -> dict:
    """Record dict plus display names of the four related entities."""
    data = record.to_dict()
    for kind in EntityKind:
        data[f"{kind.value}_name"] = resolver.resolve(getattr(record, f"{kind.value}_id"), kind)
    return data


def list_revisions(actor: ActorContext, repository: RevisionRepository | None = None) -> list[RevisionRecord]:
    return _repository(actor, repository).list()


def get_revision(actor: ActorContext, revision_id: int,
                 repository: RevisionRepository | None = None) -> RevisionRecord:
    return _repository(actor, repository).get(revision_id)


def query_revisions(
    actor: ActorContext,
    filters: FilterState | None = None,
    sort: SortState = UNSORTED,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    repository: RevisionRepository | None = None,
) -> tuple[Page, NameResolver]:
    """Filter → sort → paginate the owner's revisions."""
    resolver = load_catalog(actor).resolver()
    records = _repository(actor, repository).list()
    result = run_query(records, filters or FilterState(), sort, page, page_size, resolver)
    return result, resolver


def ordered_revisions(
    actor: ActorContext,
    filters: FilterState | None = None,
    sort: SortState = UNSORTED,
    repository: RevisionRepository | None = None,
) -> tuple[list[RevisionRecord], NameResolver]:
    """Filter → sort without pagination (export)."""
    resolver = load_catalog(actor).resolver()
    records = apply_filters(_repository(actor, repository).list(), filters or FilterState(), resolver)
    return apply_sort(records, sort, resolver), resolver


def filter_options(actor: ActorContext, repository: RevisionRepository | None = None) -> dict:
    resolver = load_catalog(actor).resolver()
    return unique_values(_repository(actor, repository).list(), resolver)


def next_number(actor: ActorContext, group: dict, repository: RevisionRepository | None = None) -> int:
    """Next free revision number of a group given as {venture_id, work_id, ...}."""
    key = []
    for field in GROUP_FIELDS:
        value = _parse_id(group.get(field), field)
        if value is None:
            raise MissingRequiredField(field)
        key.append(value)
    return next_revision_number(_repository(actor, repository).list(), tuple(key))


# ═════════════════════════════════════════════════════════════════════════════
# Single-record writes
# ═════════════════════════════════════════════════════════════════════════════

def create_revision(actor: ActorContext, data: dict,
                    repository: RevisionRepository | None = None) -> RevisionRecord:
    repo = _repository(actor, repository)
    catalog = load_catalog(actor)
    candidate = RevisionRecord(**coerce_changes(data))
    final = prepare_candidate(catalog, SequenceShadow(repo.list()), candidate)
    (created,) = repo.create([final])
    db.session.commit()
    logger.info("Revision created id=%s owner=%s number=%s", created.id, actor.owner_id, created.revision_number)
    return created


def update_revision(actor: ActorContext, revision_id: int, data: dict,
                    repository: RevisionRepository | None = None,
                    allowed: Iterable[str] = EDITABLE_FIELDS) -> RevisionRecord:
    repo = _repository(actor, repository)
    stored = repo.get(revision_id)
    catalog = load_catalog(actor)
    candidate = stored.evolve(**coerce_changes(data, allowed))
    final = prepare_candidate(catalog, SequenceShadow(repo.list()), candidate, stored)
    updated = repo.update(final)
    db.session.commit()
    logger.info("Revision updated id=%s owner=%s", revision_id, actor.owner_id)
    return updated


def update_dates(actor: ActorContext, revision_id: int, data: dict,
                 repository: RevisionRepository | None = None) -> RevisionRecord:
    """Quick date edit: only the three editable dates may change."""
    foreign = sorted(k for k in data if k not in DATE_FIELDS)
    if foreign:
        raise ValidationError(
            f"Only date fields can be edited here: {', '.join(DATE_FIELDS)}",
            details={k: "not_editable" for k in foreign},
        )
    return update_revision(actor, revision_id, data, repository, allowed=DATE_FIELDS)


def delete_revision(actor: ActorContext, revision_id: int,
                    repository: RevisionRepository | None = None) -> None:
    _repository(actor, repository).delete(revision_id)
    db.session.commit()
    logger.info("Revision deleted id=%s owner=%s", revision_id, actor.owner_id)


# ═════════════════════════════════════════════════════════════════════════════
# Batch writes (all-or-nothing)
# ═════════════════════════════════════════════════════════════════════════════

def _ids(values) -> list[int]:
    if not isinstance(values, (list, tuple)) or not values:
        raise ValidationError("ids must be a non-empty list", details={"ids": "required"})
    return [_parse_id(v, "ids") for v in values]


def bulk_update(actor: ActorContext, ids, data: dict,
                repository: RevisionRepository | None = None) -> list[RevisionRecord]:
    """Apply the same field changes to every selected revision."""
    repo = _repository(actor, repository)
    ids = _ids(ids)
    changes = coerce_changes(data)
    if not changes:
        raise ValidationError("No editable fields supplied", details={"changes": "empty"})

    catalog = load_catalog(actor)
    existing = repo.list()
    by_id = {r.id: r for r in existing}
    shadow = SequenceShadow(existing)
    collector = BatchCollector("Bulk update")
    finals = []
    for revision_id in ids:
        stored = by_id.get(revision_id)
        if stored is None:
            collector.add_message(revision_id, "id", f"Revision id={revision_id} not found")
            continue
        try:
            finals.append(prepare_candidate(catalog, shadow, stored.evolve(**changes), stored))
        except ValidationError as exc:
            collector.add(revision_id, exc)
    collector.raise_if_any()

    updated = repo.bulk_update(finals)
    db.session.commit()
    logger.info("Bulk update applied to %d revision(s) owner=%s fields=%s",
                len(updated), actor.owner_id, sorted(changes))
    return updated


def duplicate_revisions(actor: ActorContext, ids, overrides: dict | None = None,
                        repository: RevisionRepository | None = None) -> list[RevisionRecord]:
    """One new revision per source, in the source's group, with the next free number.

    Expected delivery date and justification are copied unless overridden;
    actual dates are cleared.
    """
    repo = _repository(actor, repository)
    ids = _ids(ids)
    overrides = coerce_changes(
        overrides or {}, allowed=("expected_delivery_date", "justification", "revision_justification"),
    )

    catalog = load_catalog(actor)
    existing = repo.list()
    by_id = {r.id: r for r in existing}
    shadow = SequenceShadow(existing)
    collector = BatchCollector("Duplication")
    finals = []
    for source_id in ids:
        source = by_id.get(source_id)
        if source is None:
            collector.add_message(source_id, "id", f"Revision id={source_id} not found")
            continue
        candidate = RevisionRecord(
            venture_id=source.venture_id,
            work_id=source.work_id,
            discipline_id=source.discipline_id,
            designer_id=source.designer_id,
            revision_number=shadow.next_number(group_key(source)),
            expected_delivery_date=source.expected_delivery_date,
            justification=source.justification,
            revision_justification=source.revision_justification,
        ).evolve(**overrides)
        try:
            finals.append(prepare_candidate(catalog, shadow, candidate))
        except ValidationError as exc:
            collector.add(source_id, exc)
    collector.raise_if_any()

    created = repo.create(finals)
    db.session.commit()
    logger.info("Duplicated %d revision(s) owner=%s", len(created), actor.owner_id)
    return created


def save_batch(
    actor: ActorContext,
    entries: Iterable[tuple[int, dict]],
    *,
    operation: str = "Batch save",
    collector: BatchCollector | None = None,
    repository: RevisionRepository | None = None,
) -> list[RevisionRecord]:
    """Create one revision per ``(row, payload)`` entry, all or nothing.

    ``collector`` may already hold errors found upstream (for example while
    resolving spreadsheet names); rows are still validated so the caller
    gets the complete error list.
    """
    repo = _repository(actor, repository)
    catalog = load_catalog(actor)
    shadow = SequenceShadow(repo.list())
    collector = collector or BatchCollector(operation)
    finals = []
    for row, payload in entries:
        try:
            candidate = RevisionRecord(**coerce_changes(payload))
            finals.append(prepare_candidate(catalog, shadow, candidate))
        except ValidationError as exc:
            collector.add(row, exc)
    collector.raise_if_any()
    if not finals:
        raise ValidationError("No rows to save", details={"rows": "empty"})

    created = repo.create(finals)
    db.session.commit()
    logger.info("%s: %d revision(s) created owner=%s", operation, len(created), actor.owner_id)
    return created

"""
Catalog service — ventures, works, disciplines and designers.

Rules:
  - The actor is always an explicit parameter (never from g).
  - db.session.commit() happens only in service modules.
  - Lookups are owner-scoped: another owner's row is reported as not found.
  - Names are unique per owner (per venture for works), case-insensitively,
    because spreadsheet import and draft matching resolve entities by name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select

from revtrack.core.exceptions import ConflictError, MissingRequiredField, NotFoundError, ValidationError
from revtrack.core.query_pipeline import CatalogNameResolver
from revtrack.models import db
from revtrack.models.catalog import CATALOG_MODELS, Designer, Discipline, Venture, Work
from revtrack.models.revision import Revision
from revtrack.services.actor import ActorContext

logger = logging.getLogger(__name__)

CATALOG_KINDS = tuple(CATALOG_MODELS)

# Longest analysis lead time a discipline may declare (ten years).
MAX_LEAD_DAYS = 3650

_LABELS = {
    "venture": "Venture",
    "work": "Work",
    "discipline": "Discipline",
    "designer": "Designer",
}

_REVISION_FK = {
    "venture": Revision.venture_id,
    "work": Revision.work_id,
    "discipline": Revision.discipline_id,
    "designer": Revision.designer_id,
}


@dataclass(frozen=True)
class Catalog:
    """Snapshot of an owner's catalog, used for name resolution and matching."""
    ventures: tuple
    works: tuple
    disciplines: tuple
    designers: tuple

    def resolver(self) -> CatalogNameResolver:
        return CatalogNameResolver.from_catalog(self.ventures, self.works, self.disciplines, self.designers)

    def entities(self, kind: str) -> tuple:
        return {
            "venture": self.ventures,
            "work": self.works,
            "discipline": self.disciplines,
            "designer": self.designers,
        }[kind]

    def find(self, kind: str, entity_id):
        for entity in self.entities(kind):
            if entity.id == entity_id:
                return entity
        return None

    def find_by_name(self, kind: str, name: str, *, venture_id=None):
        """Exact, case- and whitespace-insensitive name lookup."""
        wanted = name_key(name)
        if not wanted:
            return None
        for entity in self.entities(kind):
            if kind == "work" and entity.venture_id != venture_id:
                continue
            if name_key(entity.name) == wanted:
                return entity
        return None

    def discipline_lead_days(self, discipline_id) -> int | None:
        discipline = self.find("discipline", discipline_id)
        return discipline.analysis_lead_days if discipline is not None else None

    def works_of(self, venture_id) -> tuple:
        return tuple(w for w in self.works if w.venture_id == venture_id)


def name_key(name) -> str:
    """Comparison key for catalog names: whitespace collapsed, Unicode case-folded."""
    return " ".join(str(name or "").split()).casefold()


def _model_for(kind: str):
    model = CATALOG_MODELS.get(kind)
    if model is None:
        raise ValidationError(
            f"Unknown catalog kind '{kind}'. Expected one of: {', '.join(CATALOG_KINDS)}"
        )
    return model


def load_catalog(actor: ActorContext) -> Catalog:
    def _all(model):
        return tuple(
            db.session.execute(
                select(model).where(model.owner_id == actor.owner_id).order_by(model.created_at, model.id)
            ).scalars()
        )

    return Catalog(
        ventures=_all(Venture),
        works=_all(Work),
        disciplines=_all(Discipline),
        designers=_all(Designer),
    )


def list_entities(actor: ActorContext, kind: str, *, venture_id: int | None = None) -> list:
    model = _model_for(kind)
    stmt = select(model).where(model.owner_id == actor.owner_id)
    if kind == "work" and venture_id is not None:
        stmt = stmt.where(Work.venture_id == venture_id)
    return list(db.session.execute(stmt.order_by(model.name, model.id)).scalars())


def get_entity(actor: ActorContext, kind: str, entity_id: int):
    model = _model_for(kind)
    entity = db.session.execute(
        select(model).where(model.id == entity_id, model.owner_id == actor.owner_id)
    ).scalar_one_or_none()
    if entity is None:
        raise NotFoundError(resource=_LABELS[kind], resource_id=entity_id)
    return entity


# ── Field validation ─────────────────────────────────────────────────────────


def _clean_name(data: dict) -> str:
    name = str(data.get("name") or "").strip()
    if not name:
        raise MissingRequiredField("name")
    if len(name) > 200:
        raise ValidationError("name must be ≤ 200 characters", details={"name": "too long"})
    return name


def _clean_lead_days(value) -> int:
    try:
        lead = int(value)
        if isinstance(value, float) and not value.is_integer():
            raise ValueError
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(
            "analysis_lead_days must be a whole number of days",
            details={"analysis_lead_days": "invalid"},
        )
    if lead < 0:
        raise ValidationError(
            "analysis_lead_days must be ≥ 0", details={"analysis_lead_days": "negative"},
        )
    if lead > MAX_LEAD_DAYS:
        raise ValidationError(
            f"analysis_lead_days must be ≤ {MAX_LEAD_DAYS}", details={"analysis_lead_days": "too_large"},
        )
    return lead


def _clean_email(value) -> str | None:
    email = str(value or "").strip()
    if not email:
        return None
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email: {exc}", details={"email": "invalid"})


def clean_fields(actor: ActorContext, kind: str, data: dict, *, partial: bool = False) -> dict:
    """Validate a create/update payload and return only the writable fields."""
    fields: dict = {}
    if not partial or "name" in data:
        fields["name"] = _clean_name(data)

    if kind == "work" and (not partial or "venture_id" in data):
        venture_id = data.get("venture_id")
        if venture_id in (None, ""):
            raise MissingRequiredField("venture_id")
        try:
            fields["venture_id"] = get_entity(actor, "venture", int(venture_id)).id
        except (TypeError, ValueError):
            raise ValidationError("venture_id must be an integer", details={"venture_id": "invalid"})
        except NotFoundError:
            raise ValidationError(
                f"Venture {venture_id} does not exist", details={"venture_id": "not_found"},
            )

    if kind == "discipline" and "analysis_lead_days" in data and data["analysis_lead_days"] not in (None, ""):
        fields["analysis_lead_days"] = _clean_lead_days(data["analysis_lead_days"])

    if kind == "designer":
        if "email" in data:
            fields["email"] = _clean_email(data.get("email"))
        if "phone" in data:
            fields["phone"] = str(data.get("phone") or "").strip() or None

    return fields


def _ensure_unique_name(actor: ActorContext, kind: str, name: str, *, venture_id=None, exclude_id=None) -> None:
    model = _model_for(kind)
    stmt = select(model.name).where(model.owner_id == actor.owner_id)
    if kind == "work":
        stmt = stmt.where(Work.venture_id == venture_id)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    # Folded in Python: SQLite's lower() only handles ASCII.
    wanted = name_key(name)
    if any(name_key(existing) == wanted for existing in db.session.execute(stmt).scalars()):
        raise ConflictError(resource=_LABELS[kind], field="name", value=name)


# ── Mutations ────────────────────────────────────────────────────────────────


def stage_entity(actor: ActorContext, kind: str, data: dict):
    """Validate and add a new entity to the session without committing."""
    model = _model_for(kind)
    fields = clean_fields(actor, kind, data)
    _ensure_unique_name(actor, kind, fields["name"], venture_id=fields.get("venture_id"))
    entity = model(owner_id=actor.owner_id, **fields)
    db.session.add(entity)
    db.session.flush()
    return entity


def create_entity(actor: ActorContext, kind: str, data: dict):
    entity = stage_entity(actor, kind, data)
    db.session.commit()
    logger.info("%s created id=%s owner=%s", _LABELS[kind], entity.id, actor.owner_id)
    return entity


def update_entity(actor: ActorContext, kind: str, entity_id: int, data: dict):
    """Partial update.

    Changing a discipline's lead time does not touch existing revisions:
    their lead time was frozen in ``lead_days_snapshot``.
    """
    entity = get_entity(actor, kind, entity_id)
    fields = clean_fields(actor, kind, data, partial=True)
    if "name" in fields or "venture_id" in fields:
        _ensure_unique_name(
            actor, kind, fields.get("name", entity.name),
            venture_id=fields.get("venture_id", getattr(entity, "venture_id", None)),
            exclude_id=entity.id,
        )
    if kind == "work" and "venture_id" in fields and fields["venture_id"] != entity.venture_id:
        if _count_references(actor, "work", entity.id):
            raise ConflictError(
                resource="Work", field="venture_id", value=str(fields["venture_id"]),
                message="Cannot move a work with registered revisions to another venture",
            )
    for key, value in fields.items():
        setattr(entity, key, value)
    db.session.commit()
    logger.info("%s updated id=%s fields=%s", _LABELS[kind], entity.id, sorted(fields))
    return entity


def _count_references(actor: ActorContext, kind: str, entity_id: int) -> int:
    column = _REVISION_FK[kind]
    return db.session.execute(
        select(func.count(Revision.id)).where(Revision.owner_id == actor.owner_id, column == entity_id)
    ).scalar_one()


def delete_entity(actor: ActorContext, kind: str, entity_id: int) -> None:
    entity = get_entity(actor, kind, entity_id)
    if _count_references(actor, kind, entity_id):
        raise ConflictError(
            resource=_LABELS[kind], field="id", value=str(entity_id),
            message=f"{_LABELS[kind]} is referenced by existing revisions",
        )
    if kind == "venture":
        has_works = db.session.execute(
            select(Work.id).where(Work.owner_id == actor.owner_id, Work.venture_id == entity_id)
        ).first()
        if has_works is not None:
            raise ConflictError(
                resource="Venture", field="id", value=str(entity_id),
                message="Venture still has works; delete them first",
            )
    db.session.delete(entity)
    db.session.commit()
    logger.info("%s deleted id=%s owner=%s", _LABELS[kind], entity_id, actor.owner_id)

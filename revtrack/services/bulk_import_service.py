"""
Bulk Import Service — spreadsheet ingestion of revisions and catalog entities.

Features:
  - Parse .xlsx (first sheet, header on row 1) or .csv uploads
  - Header matching is case- and whitespace-insensitive
  - Resolve entity names to ids (exact, case-insensitive; works within the row's venture)
  - Validate every row, collecting all errors with their sheet row numbers
  - All-or-nothing: a single bad row rejects the whole file
  - Template workbook generation

Row numbers are sheet rows: the header is row 1, so data row i is row i + 1.
"""

import csv
import io
import logging
import zipfile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from revtrack.core.exceptions import ConflictError, IngestionError, ValidationError
from revtrack.models import db
from revtrack.services.actor import ActorContext
from revtrack.services.catalog_service import CATALOG_KINDS, load_catalog, stage_entity
from revtrack.services.export_service import build_template
from revtrack.services.revision_service import BatchCollector, save_batch

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# Column layouts
# ═══════════════════════════════════════════════════════════════

# (sheet header, payload key)
REVISION_COLUMNS = [
    ("Venture", "venture"),
    ("Work", "work"),
    ("Discipline", "discipline"),
    ("Designer", "designer"),
    ("Revision Number", "revision_number"),
    ("Expected Delivery Date", "expected_delivery_date"),
    ("Actual Delivery Date", "actual_delivery_date"),
    ("Actual Analysis Date", "actual_analysis_date"),
    ("Justification", "justification"),
    ("Revision Justification", "revision_justification"),
]
REVISION_REQUIRED_HEADERS = ("venture", "work", "discipline", "designer", "revision_number")
REVISION_TEMPLATE_EXAMPLE = [
    ["Riverside Towers", "Block A", "Structural", "Acme Engineering", 1,
     "2025-03-10", "2025-03-12", "", "Initial issue", ""],
]

CATALOG_COLUMNS = {
    "venture": [("Name", "name")],
    "work": [("Name", "name"), ("Venture", "venture")],
    "discipline": [("Name", "name"), ("Analysis Lead Days", "analysis_lead_days")],
    "designer": [("Name", "name"), ("Email", "email"), ("Phone", "phone")],
}
CATALOG_TEMPLATE_EXAMPLES = {
    "venture": [["Riverside Towers"]],
    "work": [["Block A", "Riverside Towers"]],
    "discipline": [["Structural", 5]],
    "designer": [["Acme Engineering", "contact@acme-eng.com", "+55 11 5555-0100"]],
}


def _normalize_header(value) -> str:
    return " ".join(str(value or "").split()).lower()


# ═══════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════

def _read_xlsx(content: bytes) -> list[tuple]:
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ValidationError(f"Could not read spreadsheet: {exc}", details={"file": "unreadable"})
    try:
        ws = wb.worksheets[0]
        return [tuple(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _read_csv(content: bytes) -> list[tuple]:
    try:
        text = content.decode("utf-8-sig")  # Handle BOM
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded", details={"file": "encoding"})
    return [tuple(row) for row in csv.reader(io.StringIO(text))]


def parse_sheet(content: bytes, filename: str, columns: list[tuple[str, str]],
                required: tuple = ()) -> list[dict]:
    """
    Parse an upload into row dicts keyed by payload key.
    Each dict carries "row_num", its sheet row number. Blank rows are skipped.
    """
    if not content:
        raise ValidationError("Uploaded file is empty", details={"file": "empty"})
    rows = _read_csv(content) if filename.lower().endswith(".csv") else _read_xlsx(content)
    if not rows:
        raise ValidationError("The sheet has no header row", details={"file": "no_header"})

    lookup = {}
    for header, key in columns:
        lookup[_normalize_header(header)] = key
        lookup[_normalize_header(key.replace("_", " "))] = key
    positions = {}
    for index, header in enumerate(rows[0]):
        key = lookup.get(_normalize_header(header))
        if key and key not in positions:
            positions[key] = index

    missing = [header for header, key in columns if key in required and key not in positions]
    if missing:
        found = ", ".join(str(h) for h in rows[0] if h not in (None, ""))
        raise ValidationError(
            f"Missing column(s): {', '.join(missing)}. Found columns: {found}",
            details={"columns": missing},
        )

    parsed = []
    for row_num, values in enumerate(rows[1:], start=2):  # header is row 1
        if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
            continue
        item = {"row_num": row_num}
        for key, index in positions.items():
            value = values[index] if index < len(values) else None
            item[key] = value.strip() if isinstance(value, str) else value
        parsed.append(item)
    return parsed


# ═══════════════════════════════════════════════════════════════
# Revision import
# ═══════════════════════════════════════════════════════════════

def generate_revision_template() -> bytes:
    return build_template([h for h, _ in REVISION_COLUMNS], REVISION_TEMPLATE_EXAMPLE, "Revisions")


def resolve_row_names(catalog, row: dict, collector: BatchCollector) -> dict | None:
    """Turn a row's entity names into ids; report every unknown name. None if any failed."""
    row_num = row["row_num"]
    payload = {
        key: row.get(key)
        for key in ("revision_number", "expected_delivery_date", "actual_delivery_date",
                    "actual_analysis_date", "justification", "revision_justification")
        if key in row
    }
    ok = True

    def _lookup(kind, **kwargs):
        nonlocal ok
        name = row.get(kind)
        if name is None or str(name).strip() == "":
            collector.add_message(row_num, kind, f"{kind.capitalize()} is required")
            ok = False
            return None
        entity = catalog.find_by_name(kind, str(name), **kwargs)
        if entity is None:
            where = f" in venture '{row.get('venture')}'" if kind == "work" else ""
            collector.add_message(row_num, kind, f"{kind.capitalize()} '{name}' not found{where}")
            ok = False
            return None
        return entity.id

    venture_id = _lookup("venture")
    if venture_id is not None:
        payload["work_id"] = _lookup("work", venture_id=venture_id)
    payload["venture_id"] = venture_id
    payload["discipline_id"] = _lookup("discipline")
    payload["designer_id"] = _lookup("designer")
    return payload if ok else None


def import_revisions(actor: ActorContext, content: bytes, filename: str) -> dict:
    """
    Full pipeline: parse → resolve names → validate (shadow sequence) → persist.
    Raises IngestionError listing every row error; nothing is saved in that case.
    """
    rows = parse_sheet(content, filename, REVISION_COLUMNS, REVISION_REQUIRED_HEADERS)
    if not rows:
        raise ValidationError("The sheet has no data rows", details={"file": "empty"})

    catalog = load_catalog(actor)
    collector = BatchCollector("Revision import")
    entries = []
    for row in rows:
        payload = resolve_row_names(catalog, row, collector)
        if payload is not None:
            entries.append((row["row_num"], payload))

    created = save_batch(actor, entries, operation="Revision import", collector=collector)
    logger.info("Revision import owner=%s file=%s rows=%d", actor.owner_id, filename, len(created))
    return {
        "status": "completed",
        "message": f"Imported {len(created)} revisions",
        "total_rows": len(rows),
        "created_count": len(created),
        "revisions": created,
    }


# ═══════════════════════════════════════════════════════════════
# Catalog import
# ═══════════════════════════════════════════════════════════════

def _check_kind(kind: str) -> None:
    if kind not in CATALOG_KINDS:
        raise ValidationError(
            f"Unknown catalog kind '{kind}'. Expected one of: {', '.join(CATALOG_KINDS)}",
            details={"kind": "invalid"},
        )


def generate_catalog_template(kind: str) -> bytes:
    _check_kind(kind)
    headers = [h for h, _ in CATALOG_COLUMNS[kind]]
    return build_template(headers, CATALOG_TEMPLATE_EXAMPLES[kind], kind.capitalize())


def import_catalog(actor: ActorContext, kind: str, content: bytes, filename: str) -> dict:
    """Create one catalog entity per row, all or nothing."""
    _check_kind(kind)
    columns = CATALOG_COLUMNS[kind]
    required = ("name", "venture") if kind == "work" else ("name",)
    rows = parse_sheet(content, filename, columns, required)
    if not rows:
        raise ValidationError("The sheet has no data rows", details={"file": "empty"})

    catalog = load_catalog(actor)
    errors = []
    created = []
    for row in rows:
        data = {k: v for k, v in row.items() if k not in ("row_num", "venture")}
        if kind == "work":
            venture = catalog.find_by_name("venture", row.get("venture"))
            if venture is None:
                errors.append({
                    "row": row["row_num"], "field": "venture",
                    "message": f"Venture '{row.get('venture') or ''}' not found",
                })
                continue
            data["venture_id"] = venture.id
        try:
            created.append(stage_entity(actor, kind, data))
        except ValidationError as exc:
            field = getattr(exc, "field", None) or next(iter(exc.details), None)
            errors.append({"row": row["row_num"], "field": field, "message": exc.message})
        except ConflictError as exc:
            errors.append({"row": row["row_num"], "field": exc.field, "message": str(exc)})

    if errors:
        db.session.rollback()
        logger.warning("Catalog import rejected kind=%s owner=%s errors=%d", kind, actor.owner_id, len(errors))
        raise IngestionError(errors)

    db.session.commit()
    logger.info("Catalog import kind=%s owner=%s rows=%d", kind, actor.owner_id, len(created))
    return {
        "status": "completed",
        "message": f"Imported {len(created)} {kind} record(s)",
        "created_count": len(created),
        "items": [e.to_dict() for e in created],
    }

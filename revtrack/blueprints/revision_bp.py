"""
Revision blueprint.

Endpoint groups:
  Query           GET    /api/v1/revisions                 filters / sort / page via query string
                  GET    /api/v1/revisions/filter-options  distinct values per column
                  GET    /api/v1/revisions/next-number     ?venture_id&work_id&discipline_id&designer_id
  CRUD            POST   /api/v1/revisions
                  GET/PUT/DELETE /api/v1/revisions/<id>
  Quick edit      PATCH  /api/v1/revisions/<id>/dates
  Batch           POST   /api/v1/revisions/bulk-update      {"ids": [...], "changes": {...}}
                  POST   /api/v1/revisions/duplicate        {"ids": [...], "overrides": {...}}
  Spreadsheet     POST   /api/v1/revisions/import
                  GET    /api/v1/revisions/import/template
                  GET    /api/v1/revisions/export           ?format=xlsx|csv, same filters

Query string:
  <column>=value (repeatable) for venture, work, discipline, designer (names),
  revision_number, delivery_status, analysis_status;
  <date column>_from / _to (inclusive, yyyy-mm-dd);
  sort=<column>&direction=asc|desc; page=1&page_size=100|500|1000.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, jsonify, request

import revtrack.services.bulk_import_service as bis
import revtrack.services.export_service as es
import revtrack.services.revision_service as rs
from revtrack.blueprints import (
    BadRequest,
    filters_from_args,
    json_body,
    page_from_args,
    register_error_handlers,
    sort_from_args,
    upload_from_request,
    xlsx_response,
)
from revtrack.core.records import GROUP_FIELDS
from revtrack.middleware.actor_context import current_actor
from revtrack.services.catalog_service import load_catalog

logger = logging.getLogger(__name__)

revision_bp = Blueprint("revisions", __name__, url_prefix="/api/v1/revisions")
register_error_handlers(revision_bp)


def _resolver(actor):
    return load_catalog(actor).resolver()


def _serialize_all(records, resolver) -> list[dict]:
    return [rs.serialize(r, resolver) for r in records]


# ═════════════════════════════════════════════════════════════════════════
# Query
# ═════════════════════════════════════════════════════════════════════════


@revision_bp.route("", methods=["GET"])
def list_revisions():
    actor = current_actor()
    filters = filters_from_args()
    sort = sort_from_args()
    page, page_size = page_from_args()
    result, resolver = rs.query_revisions(actor, filters, sort, page, page_size)
    return jsonify({
        "items": _serialize_all(result.items, resolver),
        "page": result.page,
        "page_size": result.page_size,
        "total": result.total,
        "total_pages": result.total_pages,
        "sort": {
            "column": sort.column.value if sort.column else None,
            "direction": sort.direction.value,
        },
        "active_filters": [c.value for c in filters.active_columns()],
    }), 200


@revision_bp.route("/filter-options", methods=["GET"])
def filter_options():
    return jsonify(rs.filter_options(current_actor())), 200


@revision_bp.route("/next-number", methods=["GET"])
def next_number():
    group = {field: request.args.get(field) for field in GROUP_FIELDS}
    number = rs.next_number(current_actor(), group)
    return jsonify({**{k: int(v) for k, v in group.items()}, "next_revision_number": number}), 200


# ═════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════


@revision_bp.route("", methods=["POST"])
def create_revision():
    actor = current_actor()
    record = rs.create_revision(actor, json_body())
    return jsonify(rs.serialize(record, _resolver(actor))), 201


@revision_bp.route("/<int:revision_id>", methods=["GET"])
def get_revision(revision_id):
    actor = current_actor()
    return jsonify(rs.serialize(rs.get_revision(actor, revision_id), _resolver(actor))), 200


@revision_bp.route("/<int:revision_id>", methods=["PUT"])
def update_revision(revision_id):
    actor = current_actor()
    record = rs.update_revision(actor, revision_id, json_body())
    return jsonify(rs.serialize(record, _resolver(actor))), 200


@revision_bp.route("/<int:revision_id>/dates", methods=["PATCH"])
def update_dates(revision_id):
    actor = current_actor()
    record = rs.update_dates(actor, revision_id, json_body())
    return jsonify(rs.serialize(record, _resolver(actor))), 200


@revision_bp.route("/<int:revision_id>", methods=["DELETE"])
def delete_revision(revision_id):
    rs.delete_revision(current_actor(), revision_id)
    return jsonify({"deleted": True, "id": revision_id}), 200


# ═════════════════════════════════════════════════════════════════════════
# Batch operations (all-or-nothing)
# ═════════════════════════════════════════════════════════════════════════


@revision_bp.route("/bulk-update", methods=["POST"])
def bulk_update():
    actor = current_actor()
    data = json_body()
    changes = data.get("changes")
    if not isinstance(changes, dict):
        raise BadRequest("changes must be an object", field="changes")
    updated = rs.bulk_update(actor, data.get("ids"), changes)
    return jsonify({"updated_count": len(updated), "items": _serialize_all(updated, _resolver(actor))}), 200


@revision_bp.route("/duplicate", methods=["POST"])
def duplicate():
    actor = current_actor()
    data = json_body()
    overrides = data.get("overrides") or {}
    if not isinstance(overrides, dict):
        raise BadRequest("overrides must be an object", field="overrides")
    created = rs.duplicate_revisions(actor, data.get("ids"), overrides)
    return jsonify({"created_count": len(created), "items": _serialize_all(created, _resolver(actor))}), 201


# ═════════════════════════════════════════════════════════════════════════
# Spreadsheet import / export
# ═════════════════════════════════════════════════════════════════════════


@revision_bp.route("/import", methods=["POST"])
def import_revisions():
    actor = current_actor()
    content, filename = upload_from_request()
    result = bis.import_revisions(actor, content, filename)
    resolver = _resolver(actor)
    result["revisions"] = _serialize_all(result["revisions"], resolver)
    return jsonify(result), 201


@revision_bp.route("/import/template", methods=["GET"])
def import_template():
    return xlsx_response(bis.generate_revision_template(), "revision_import_template.xlsx")


@revision_bp.route("/export", methods=["GET"])
def export_revisions():
    actor = current_actor()
    fmt = request.args.get("format", "xlsx").lower()
    if fmt not in ("xlsx", "csv"):
        raise BadRequest("format must be 'xlsx' or 'csv'", field="format")
    records, resolver = rs.ordered_revisions(actor, filters_from_args(), sort_from_args())
    date_str = datetime.now(timezone.utc).strftime("%Y%m%d")

    if fmt == "csv":
        return Response(
            es.export_revisions_csv(records, resolver),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=revisions_{date_str}.csv"},
        )
    return xlsx_response(es.export_revisions_xlsx(records, resolver), f"revisions_{date_str}.xlsx")

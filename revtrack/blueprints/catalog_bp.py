"""
Catalog blueprint — ventures, works, disciplines and designers.

Endpoint groups:
  CRUD            GET/POST        /api/v1/<collection>
                  GET/PUT/DELETE  /api/v1/<collection>/<id>
                  (<collection> = ventures | works | disciplines | designers;
                   GET /works accepts ?venture_id=)
  Import          POST /api/v1/catalog/<kind>/import     (xlsx / csv upload)
  Template        GET  /api/v1/catalog/<kind>/template

The actor comes from the actor context middleware; the service layer owns
all business logic and commits.
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify

import revtrack.services.bulk_import_service as bis
import revtrack.services.catalog_service as cs
from revtrack.blueprints import (
    BadRequest,
    int_arg,
    json_body,
    register_error_handlers,
    upload_from_request,
    xlsx_response,
)
from revtrack.middleware.actor_context import current_actor

logger = logging.getLogger(__name__)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/v1")
register_error_handlers(catalog_bp)

_COLLECTIONS = {
    "ventures": "venture",
    "works": "work",
    "disciplines": "discipline",
    "designers": "designer",
}


def _kind(name: str) -> str:
    kind = _COLLECTIONS.get(name, name)
    if kind not in cs.CATALOG_KINDS:
        raise BadRequest(f"Unknown catalog kind '{name}'", field="kind")
    return kind


# ═════════════════════════════════════════════════════════════════════════
# CRUD  (/api/v1/<collection>)
# ═════════════════════════════════════════════════════════════════════════

_COLLECTION_RULE = "/<any(ventures, works, disciplines, designers):collection>"


@catalog_bp.route(_COLLECTION_RULE, methods=["GET"])
def list_entities(collection):
    kind = _kind(collection)
    venture_id = int_arg("venture_id") if kind == "work" else None
    items = cs.list_entities(current_actor(), kind, venture_id=venture_id)
    return jsonify({"items": [e.to_dict() for e in items], "total": len(items)}), 200


@catalog_bp.route(_COLLECTION_RULE, methods=["POST"])
def create_entity(collection):
    entity = cs.create_entity(current_actor(), _kind(collection), json_body())
    return jsonify(entity.to_dict()), 201


@catalog_bp.route(f"{_COLLECTION_RULE}/<int:entity_id>", methods=["GET"])
def get_entity(collection, entity_id):
    entity = cs.get_entity(current_actor(), _kind(collection), entity_id)
    return jsonify(entity.to_dict()), 200


@catalog_bp.route(f"{_COLLECTION_RULE}/<int:entity_id>", methods=["PUT"])
def update_entity(collection, entity_id):
    entity = cs.update_entity(current_actor(), _kind(collection), entity_id, json_body())
    return jsonify(entity.to_dict()), 200


@catalog_bp.route(f"{_COLLECTION_RULE}/<int:entity_id>", methods=["DELETE"])
def delete_entity(collection, entity_id):
    cs.delete_entity(current_actor(), _kind(collection), entity_id)
    return jsonify({"deleted": True, "id": entity_id}), 200


# ═════════════════════════════════════════════════════════════════════════
# Spreadsheet import  (/api/v1/catalog/<kind>)
# ═════════════════════════════════════════════════════════════════════════


@catalog_bp.route("/catalog/<kind>/import", methods=["POST"])
def import_catalog(kind):
    actor = current_actor()
    content, filename = upload_from_request()
    result = bis.import_catalog(actor, _kind(kind), content, filename)
    return jsonify(result), 201


@catalog_bp.route("/catalog/<kind>/template", methods=["GET"])
def catalog_template(kind):
    kind = _kind(kind)
    return xlsx_response(bis.generate_catalog_template(kind), f"{kind}_import_template.xlsx")

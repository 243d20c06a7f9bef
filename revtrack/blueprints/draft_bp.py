"""
Draft blueprint — revisions proposed by the extraction service.

Endpoints:
    POST /api/v1/drafts/resolve   {"drafts": [...]} → drafts with ids / numbers filled where possible
    POST /api/v1/drafts/save      {"drafts": [...]} → persisted revisions (all or nothing)
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify

import revtrack.services.draft_service as ds
from revtrack.blueprints import json_body, register_error_handlers
from revtrack.middleware.actor_context import current_actor
from revtrack.services.catalog_service import load_catalog
from revtrack.services.revision_service import serialize

logger = logging.getLogger(__name__)

draft_bp = Blueprint("drafts", __name__, url_prefix="/api/v1/drafts")
register_error_handlers(draft_bp)


@draft_bp.route("/resolve", methods=["POST"])
def resolve_drafts():
    threshold = current_app.config.get("DRAFT_MATCH_THRESHOLD", 55)
    drafts = ds.resolve_drafts(current_actor(), json_body().get("drafts"), threshold)
    return jsonify({"drafts": drafts, "unresolved_count": sum(1 for d in drafts if d["unresolved"])}), 200


@draft_bp.route("/save", methods=["POST"])
def save_drafts():
    actor = current_actor()
    created = ds.save_drafts(actor, json_body().get("drafts"))
    resolver = load_catalog(actor).resolver()
    return jsonify({"created_count": len(created), "items": [serialize(r, resolver) for r in created]}), 201

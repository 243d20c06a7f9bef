"""
Indicators blueprint — dashboard aggregates.

Endpoints:
    GET /api/v1/indicators                              same filter params as /revisions
    GET /api/v1/indicators/delivery-compliance?year=    yearly delivered-vs-planned against the target
"""

from __future__ import annotations

import logging
from datetime import date

from flask import Blueprint, current_app, jsonify

import revtrack.services.indicators_service as ins
from revtrack.blueprints import BadRequest, filters_from_args, int_arg, register_error_handlers
from revtrack.middleware.actor_context import current_actor

logger = logging.getLogger(__name__)

indicators_bp = Blueprint("indicators", __name__, url_prefix="/api/v1/indicators")
register_error_handlers(indicators_bp)


@indicators_bp.route("", methods=["GET"])
def indicators():
    return jsonify(ins.build_indicators(current_actor(), filters_from_args())), 200


@indicators_bp.route("/delivery-compliance", methods=["GET"])
def delivery_compliance():
    actor = current_actor()
    year = int_arg("year", date.today().year)
    if not 1900 <= year <= 9999:
        raise BadRequest("year must be between 1900 and 9999", field="year")
    target = current_app.config.get("DELIVERY_COMPLIANCE_TARGET", ins.DELIVERY_COMPLIANCE_TARGET)
    return jsonify(ins.delivery_compliance(actor, year, target, filters_from_args())), 200

"""JSON error bodies shared by the app factory and the blueprint handlers."""

from __future__ import annotations

from flask import jsonify


class E:
    """Values of the ``code`` field in every error body."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"
    REVISION_DUPLICATE = "ERR_REVISION_DUPLICATE"
    REVISION_SEQUENCE = "ERR_REVISION_SEQUENCE"
    INGESTION = "ERR_INGESTION"
    AUTH_REQUIRED = "ERR_AUTH_REQUIRED"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# Codes not listed are revision or batch rule failures (422).
_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.AUTH_REQUIRED: 401,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(response, status)`` with body ``{"error", "code"[, "details"]}``."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 422)

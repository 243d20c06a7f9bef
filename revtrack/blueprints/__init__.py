"""
Revision Tracker
Blueprint registry and shared request helpers.
"""

from __future__ import annotations

import logging

from flask import Response, current_app, jsonify, request

from revtrack.core.dates import to_calendar_date
from revtrack.core.exceptions import (
    AuthenticationRequired,
    ConflictError,
    IngestionError,
    NotFoundError,
    ValidationError,
)
from revtrack.core.query_pipeline import (
    CATEGORICAL_COLUMNS,
    DATE_COLUMNS,
    Column,
    FilterState,
    SortDirection,
    SortState,
    UNSORTED,
)
from revtrack.utils.errors import E, api_error

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class BadRequest(Exception):
    """Malformed query string or body at the HTTP boundary (400)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


# ── Error handlers ────────────────────────────────────────────────────────────


def register_error_handlers(bp) -> None:
    """Map the platform exceptions to JSON responses for ``bp``'s views."""

    @bp.errorhandler(BadRequest)
    def _handle_bad_request(error: BadRequest):
        details = {error.field: "invalid"} if error.field else None
        return api_error(E.VALIDATION_INVALID, error.message, details=details)

    @bp.errorhandler(AuthenticationRequired)
    def _handle_auth(error: AuthenticationRequired):
        return api_error(E.AUTH_REQUIRED, str(error))

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @bp.errorhandler(IngestionError)
    def _handle_ingestion(error: IngestionError):
        return jsonify(error.to_dict()), 422

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(error.code, error.message, status=422, details=error.details)


# ── Request parsing ───────────────────────────────────────────────────────────


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


def int_arg(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise BadRequest(f"{name} must be an integer", field=name)


def _date_arg(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    parsed = to_calendar_date(raw)
    if parsed is None:
        raise BadRequest(f"{name} must be a date (yyyy-mm-dd)", field=name)
    return parsed


def filters_from_args() -> FilterState:
    """Build a FilterState from repeated ``<column>=value`` and ``<date column>_from/_to`` params."""
    filters = FilterState()
    for column in CATEGORICAL_COLUMNS:
        values = [v for v in request.args.getlist(column.value) if v != ""]
        if values:
            filters = filters.with_values(column, values)
    for column in DATE_COLUMNS:
        start = _date_arg(f"{column.value}_from")
        end = _date_arg(f"{column.value}_to")
        if start or end:
            filters = filters.with_range(column, start, end)
    return filters


def sort_from_args() -> SortState:
    raw = request.args.get("sort")
    if not raw:
        return UNSORTED
    try:
        column = Column(raw)
    except ValueError:
        raise BadRequest(f"Unknown sort column '{raw}'", field="sort")
    try:
        direction = SortDirection(request.args.get("direction", SortDirection.ASC.value).lower())
    except ValueError:
        raise BadRequest("direction must be 'asc' or 'desc'", field="direction")
    return SortState(column, direction)


def page_from_args() -> tuple[int, int]:
    presets = tuple(current_app.config.get("PAGE_SIZE_PRESETS", (100, 500, 1000)))
    page = int_arg("page", 1)
    page_size = int_arg("page_size", current_app.config.get("DEFAULT_PAGE_SIZE", presets[0]))
    if page_size not in presets:
        raise BadRequest(
            f"page_size must be one of {', '.join(str(p) for p in presets)}", field="page_size",
        )
    return page, page_size


def upload_from_request() -> tuple[bytes, str]:
    """Return (content, filename) from a multipart ``file`` field or a raw body."""
    file = request.files.get("file") if request.files else None
    if file:
        return file.read(), file.filename or "upload.xlsx"
    if request.data:
        return request.data, request.args.get("filename", "upload.xlsx")
    raise BadRequest("A spreadsheet file is required (multipart field 'file')", field="file")


def xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content,
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )

"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from revtrack.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Revision", resource_id=42)
    raise NonSequentialRevisionNumber(revision_number=4, expected=3)
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist for the current owner.

    Used for BOTH genuinely missing records AND records owned by another
    actor, so a lookup never confirms that a foreign record exists.

    Args:
        resource: Human-readable entity name (e.g. "Revision", "Work").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    code = "ERR_VALIDATION_CONSTRAINT"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class MissingRequiredField(ValidationError):
    """A required revision or catalog field is absent or blank."""

    code = "ERR_VALIDATION_REQUIRED"

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field} is required", details={field: "required"})


class DuplicateRevisionNumber(ValidationError):
    """The revision number already exists in the candidate's group."""

    code = "ERR_REVISION_DUPLICATE"

    def __init__(self, revision_number: int) -> None:
        self.revision_number = revision_number
        super().__init__(
            f"Revision number {revision_number} already exists for this "
            "venture/work/discipline/designer",
            details={"revision_number": revision_number},
        )


class NonSequentialRevisionNumber(ValidationError):
    """The revision number skips or precedes the next number of its group."""

    code = "ERR_REVISION_SEQUENCE"

    def __init__(self, revision_number: int, expected: int) -> None:
        self.revision_number = revision_number
        self.expected = expected
        super().__init__(
            f"Revision number {revision_number} is out of sequence; "
            f"use {expected} instead",
            details={"revision_number": revision_number, "expected": expected},
        )


class IngestionError(Exception):
    """A whole batch (spreadsheet import, bulk edit, draft save) was rejected.

    Carries every row error, never just the first. Nothing from the batch
    has been persisted when this is raised.

    Args:
        errors: list of {"row": int, "field": str | None, "message": str}.
        message: Optional summary; defaults to the error count.
    """

    code = "ERR_INGESTION"

    def __init__(self, errors: list[dict], message: str | None = None) -> None:
        self.errors = list(errors)
        self.message = message or (
            f"{len(self.errors)} error(s) found; no rows were saved"
        )
        super().__init__(self.message)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "error_count": self.error_count,
            "first_error": self.errors[0] if self.errors else None,
            "errors": self.errors,
        }


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value or orphan dependants.

    Maps to HTTP 409.

    Args:
        resource: Entity name.
        field: The field in conflict.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None, message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class AuthenticationRequired(Exception):
    """No authenticated actor is attached to the request. Maps to HTTP 401."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)

"""
Typed error kinds raised by the services.

Every error carries a class-level ``code`` (machine readable) and the HTTP status
the API layer answers with. Structured context is kept as attributes and copied
into the response body by ``error_payload``.
"""

from __future__ import annotations

from typing import Any


class ClubFinanceError(Exception):
    code: str = "CLUB_FINANCE_ERROR"
    http_status: int = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def error_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "detail": self.message}
        for key, value in self.context.items():
            if value is None:
                continue
            payload[key] = value.value if hasattr(value, "value") else value
        return payload


class ValidationError(ClubFinanceError):
    code = "VALIDATION_ERROR"
    http_status = 400


class NotFound(ClubFinanceError):
    code = "NOT_FOUND"
    http_status = 404


class InvalidTransition(ClubFinanceError):
    """The requested command is not legal from the record's observed status."""

    code = "INVALID_TRANSITION"
    http_status = 409

    def __init__(self, message: str, *, current_status: Any):
        super().__init__(message, current_status=current_status)
        self.current_status = current_status


class Conflict(ClubFinanceError):
    """A conditional write matched nothing: someone else changed the row first."""

    code = "CONFLICT"
    http_status = 409


class InvalidArgument(ClubFinanceError):
    code = "INVALID_ARGUMENT"
    http_status = 400


class PreconditionFailed(ClubFinanceError):
    code = "PRECONDITION_FAILED"
    http_status = 412


class Unauthenticated(ClubFinanceError):
    code = "UNAUTHENTICATED"
    http_status = 401


class PermissionDenied(ClubFinanceError):
    code = "PERMISSION_DENIED"
    http_status = 403


class StoreFailure(ClubFinanceError):
    """The database was unavailable or timed out. Never retried internally."""

    code = "STORE_FAILURE"
    http_status = 503

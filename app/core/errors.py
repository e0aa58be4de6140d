"""
app/core/errors.py — Application error taxonomy and JSON error envelopes
Domain code raises AppError subclasses; main.py registers one handler that
turns them into {"success": false, "error": {...}} responses.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from app.utils.timezone import utc_now


class ErrorType(str, Enum):
    VALIDATION = "VALIDATION"
    AUTHENTICATION = "AUTHENTICATION"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMIT = "RATE_LIMIT"
    INTERNAL = "INTERNAL"


class AppError(Exception):
    """Base for every error that maps onto an HTTP status and error envelope."""

    error_type: ErrorType = ErrorType.INTERNAL
    status_code: int = 500
    default_message: str = "An internal error occurred."

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": {
                "type": self.error_type.value,
                "message": self.message,
                "timestamp": utc_now().isoformat(),
            },
        }


class ValidationFailure(AppError):
    error_type = ErrorType.VALIDATION
    status_code = 400
    default_message = "Invalid request."


class AuthenticationError(AppError):
    error_type = ErrorType.AUTHENTICATION
    status_code = 401
    default_message = "Authentication required."

    @property
    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Basic"}


class NotFoundError(AppError):
    error_type = ErrorType.NOT_FOUND
    status_code = 404
    default_message = "Resource not found."


class NoDataError(NotFoundError):
    """The reference list is empty, so no entry can be selected for any date."""

    default_message = "No great-person data is available."


class CatalogError(AppError):
    default_message = "Great-person reference data is unreadable."


class AdmissionDenied(AppError):
    """Rate limit tripped. Always carries a retry-after duration in seconds."""

    error_type = ErrorType.RATE_LIMIT
    status_code = 429
    default_message = "Too many requests."

    def __init__(
        self,
        message: Optional[str],
        retry_after: int,
        remaining_requests: int,
        reset_time: int,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context)
        self.retry_after = max(0, retry_after)
        self.remaining_requests = remaining_requests
        self.reset_time = reset_time

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Remaining": str(self.remaining_requests),
            "X-RateLimit-Reset": str(self.reset_time),
        }

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["retryAfter"] = self.retry_after
        return payload

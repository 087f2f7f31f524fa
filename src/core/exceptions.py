"""Ledger error taxonomy.

Every error a ledger operation can raise carries an HTTP status and a short
machine-readable ``kind`` so callers can render a message without parsing text.
"""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    kind: str = "error"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    kind = "not_found"

    def __init__(self, resource: str, identifier: str | None = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(message=message, status_code=404, details={"resource": resource})


class InvalidArgumentError(AppException):
    kind = "invalid_argument"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=400, details=details)


class InvalidStateError(AppException):
    kind = "invalid_state"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=409, details=details)


class ConflictError(AppException):
    kind = "conflict"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=409, details=details)


class ConcurrencyConflictError(ConflictError):
    """Raised once optimistic-lock retries are exhausted."""


class ExternalServiceError(AppException):
    kind = "external_service"

    def __init__(self, service: str, message: str):
        super().__init__(
            message=f"{service} error: {message}",
            status_code=502,
            details={"service": service},
        )

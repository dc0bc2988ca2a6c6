# ruff: noqa: D107
"""Base exception classes.

Every application error carries a ``kind`` from the closed taxonomy the API
exposes to clients (``validation``, ``forbidden``, ``not_found``, ``locked``,
``conflict``, ``transient``) in addition to a finer-grained ``error_code``.
"""

from typing import Any

from fastapi import HTTPException


class ErrorKind:
    """Error kinds exposed in ``{"error": {"kind": ...}}`` responses."""

    VALIDATION = "validation"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    LOCKED = "locked"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    INTERNAL = "internal"
    UNAUTHORIZED = "unauthorized"


STATUS_KIND_MAPPING = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    422: ErrorKind.VALIDATION,
    503: ErrorKind.TRANSIENT,
    504: ErrorKind.TRANSIENT,
}


def kind_for_status(status_code: int) -> str:
    """Map an HTTP status code to an error kind."""
    return STATUS_KIND_MAPPING.get(status_code, ErrorKind.INTERNAL)


class BaseAppException(HTTPException):
    """Base application exception."""

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        kind: str | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if kind is not None:
            self.kind = kind

        super().__init__(
            status_code=status_code,
            detail={
                "message": message,
                "error_code": error_code,
                "kind": self.kind,
                "details": details,
            },
        )

    def __str__(self) -> str:
        return self.message


class ValidationError(BaseAppException):
    """Exception raised when input validation fails."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
        error_code: str = "VALIDATION_ERROR",
    ):
        super().__init__(message=message, status_code=422, error_code=error_code, details=details)


class ForbiddenError(BaseAppException):
    """Exception raised when the caller has no rights over the target resource."""

    kind = ErrorKind.FORBIDDEN

    def __init__(
        self,
        message: str = "Permission denied",
        details: dict[str, Any] | None = None,
        error_code: str = "PERMISSION_DENIED",
    ):
        super().__init__(message=message, status_code=403, error_code=error_code, details=details)




class NotFoundError(BaseAppException):
    """Exception raised when a resource is not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
        error_code: str = "NOT_FOUND",
    ):
        super().__init__(message=message, status_code=404, error_code=error_code, details=details)


class LockedError(BaseAppException):
    """Exception raised when the caller's membership plan does not allow the action.

    Surfaced as 403 with kind ``locked`` so clients can show an upgrade prompt
    instead of a generic permission error.
    """

    kind = ErrorKind.LOCKED

    def __init__(
        self,
        message: str = "This action is not available on your current plan",
        details: dict[str, Any] | None = None,
        error_code: str = "PLAN_LOCKED",
    ):
        details = {"reason": "plan_tier", **(details or {})}
        super().__init__(message=message, status_code=403, error_code=error_code, details=details)


class ConflictError(BaseAppException):
    """Exception raised when the request conflicts with existing state."""

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        message: str = "Conflict with existing resource",
        details: dict[str, Any] | None = None,
        error_code: str = "CONFLICT",
    ):
        super().__init__(message=message, status_code=409, error_code=error_code, details=details)


class TransientError(BaseAppException):
    """Exception raised for network failures and timeouts."""

    kind = ErrorKind.TRANSIENT

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        details: dict[str, Any] | None = None,
        error_code: str = "TRANSIENT_ERROR",
    ):
        super().__init__(message=message, status_code=503, error_code=error_code, details=details)


ERROR_KIND_MAPPING = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.LOCKED: LockedError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.TRANSIENT: TransientError,
}


def map_error_kind(
    kind: str, message: str, details: dict[str, Any] | None = None, status_code: int = 500
) -> BaseAppException:
    """Rebuild an application exception from a serialized error body."""
    exception_class = ERROR_KIND_MAPPING.get(kind)
    if exception_class is None:
        return BaseAppException(message, status_code=status_code, details=details, kind=kind)
    return exception_class(message, details)

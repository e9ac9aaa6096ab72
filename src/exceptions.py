"""Error taxonomy shared by services and the HTTP layer.

Every error raised by a service carries the HTTP status it maps to, so the
exception handlers in ``src.main`` can render the error envelope without
knowing which service raised it.
"""

from typing import Any


class ApiError(Exception):
    """Base error rendered as ``{statusCode, message, success: false, errors}``."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, errors: list[Any] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(ApiError):
    """Missing or empty required input."""

    status_code = 400
    default_message = "Invalid input"


class AuthError(ApiError):
    """Bad credentials, or a missing, invalid, expired or reused token."""

    status_code = 401
    default_message = "Unauthorized request"


class InvalidTokenError(AuthError):
    """Token signature, expiry or type check failed."""

    default_message = "Invalid token"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(ApiError):
    """Unexpected invariant violation."""

    status_code = 500

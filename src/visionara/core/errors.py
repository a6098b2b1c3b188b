"""Error taxonomy for identity and credential operations.

Every failure a caller can observe is one of these classes. Each carries the
HTTP status it maps to and a client-safe message; the real cause goes to the
server log, never into the response.
"""

from typing import Any


class IdentityError(Exception):
    """Base class for all identity-subsystem errors."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None):
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)


class NotAuthenticated(IdentityError):
    """Missing credential, malformed token, or provider rejection.

    All three collapse to the same message so callers cannot probe which
    case occurred.
    """

    status_code = 401
    default_message = "Not authenticated"


class Forbidden(IdentityError):
    """Authenticated actor lacks the permission an endpoint requires."""

    status_code = 403
    default_message = "Insufficient permissions"


class NotFound(IdentityError):
    status_code = 404
    default_message = "User not found"


class RoleNotFound(IdentityError):
    status_code = 404
    default_message = "Role not found"


class Conflict(IdentityError):
    status_code = 409
    default_message = "User with this email already exists"


class RateLimited(IdentityError):
    status_code = 429
    default_message = "Too many requests. Try again later."


class InvalidOrExpired(IdentityError):
    """Verification failed. Never distinguishes a wrong code from an expired one."""

    status_code = 400
    default_message = "Invalid or expired verification code"


class InvalidOperation(IdentityError):
    status_code = 400
    default_message = "Operation not allowed"


class ValidationFailed(IdentityError):
    status_code = 400
    default_message = "Validation failed"


class Internal(IdentityError):
    """Store or provider failure not otherwise classified."""

    status_code = 500
    default_message = "Internal error"

"""Password policy checks.

The identity provider enforces its own rules as well; this check only keeps
obviously short passwords from reaching it.
"""

from dataclasses import dataclass

from visionara.core.errors import ValidationFailed


@dataclass(frozen=True)
class PasswordValidationError:
    """Represents a password validation error.

    Attributes:
        field: The field name.
        message: Human-readable error message.
        code: Machine-readable error code.
    """

    field: str
    message: str
    code: str


class PasswordValidator:
    """Validates a new password against the minimum length."""

    def __init__(self, min_length: int = 8) -> None:
        self.min_length = min_length

    def validate(self, password: str | None, field: str = "password") -> list[PasswordValidationError]:
        if not password:
            return [PasswordValidationError(field, "New password is required", "required")]
        if len(password) < self.min_length:
            return [
                PasswordValidationError(
                    field,
                    f"Password must be at least {self.min_length} characters long",
                    "min_length",
                )
            ]
        return []

    def ensure_valid(self, password: str | None, field: str = "password") -> None:
        """Raise ValidationFailed if the password breaks the policy."""
        errors = self.validate(password, field)
        if errors:
            raise ValidationFailed(
                errors[0].message,
                details=[{"field": e.field, "message": e.message, "code": e.code} for e in errors],
            )

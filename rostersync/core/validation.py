"""Input validation for Roster Sync.

All validators raise ValidationError with descriptive messages. The web layer
turns ValidationError into an HTTP 400 response.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional

__all__ = [
    "ValidationError",
    "validate_applicants",
    "validate_groups",
    "validate_email",
    "validate_password",
    "validate_timeout",
    "MAX_EMAIL_LENGTH",
    "MIN_PASSWORD_LENGTH",
]

MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 1
MAX_PASSWORD_LENGTH = 1024

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")


class ValidationError(ValueError):
    """Validation error with field and message attributes."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"

    def __repr__(self) -> str:
        return f"ValidationError(field='{self.field}', message='{self.message}')"


def validate_applicants(value: Any, field_name: str = "applicants") -> List[Any]:
    """Validate that applicants is a JSON array.

    Individual entries are not checked here; the merge drops entries that
    have no passport number.
    """
    if not isinstance(value, list):
        got = "null" if value is None else type(value).__name__
        raise ValidationError(field_name, f"must be an array, got {got}")
    return value


def validate_groups(value: Any, field_name: str = "groups") -> List[Any]:
    """Validate groups, treating a missing value as an empty list."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(
            field_name, f"must be an array, got {type(value).__name__}"
        )
    return value


def validate_email(value: Any, field_name: str = "email") -> str:
    """Validate and normalize an email address (stripped, lowercased)."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field_name, "is required")
    email = value.strip().lower()
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(
            field_name, f"must be at most {MAX_EMAIL_LENGTH} characters"
        )
    if not _EMAIL_RE.match(email):
        raise ValidationError(field_name, "is not a valid email address")
    return email


def validate_password(value: Any, field_name: str = "password") -> str:
    """Validate a password string. Passwords are not normalized."""
    if not isinstance(value, str) or len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(field_name, "is required")
    if len(value) > MAX_PASSWORD_LENGTH:
        raise ValidationError(
            field_name, f"must be at most {MAX_PASSWORD_LENGTH} characters"
        )
    return value


def validate_timeout(value: Optional[float], field_name: str = "timeout") -> float:
    """Validate a positive timeout in seconds."""
    if value is None:
        raise ValidationError(field_name, "is required")
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field_name, f"must be a number, got {value!r}") from None
    if timeout <= 0:
        raise ValidationError(field_name, "must be positive")
    return timeout

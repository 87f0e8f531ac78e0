"""Client-side validation of signup and login input.

The per-field checks share the ``(value, values) -> message | None``
signature of :data:`termfolio.domain.models.FieldCheck`, so the terminal
forms can run them as each field is entered. The request validators run
the same checks over a complete payload before anything is sent.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from termfolio.domain.models import FieldError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_EMPTY: Mapping[str, str] = {}


def check_username(value: str, values: Mapping[str, str] = _EMPTY) -> str | None:
    if not value.strip():
        return "Username is required"
    if len(value) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    if len(value) > USERNAME_MAX_LENGTH:
        return f"Username must be no more than {USERNAME_MAX_LENGTH} characters"
    if not USERNAME_PATTERN.match(value):
        return "Username can only contain letters, numbers, and underscores"
    return None


def check_email(value: str, values: Mapping[str, str] = _EMPTY) -> str | None:
    if not value.strip():
        return "Email is required"
    if not EMAIL_PATTERN.match(value):
        return "Please enter a valid email address"
    return None


def check_password(value: str, values: Mapping[str, str] = _EMPTY) -> str | None:
    if not value:
        return "Password is required"
    if len(value) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    return None


def check_confirmation(value: str, values: Mapping[str, str] = _EMPTY) -> str | None:
    """Compare a confirmation against the ``password`` collected earlier."""
    if not value:
        return "Password confirmation is required"
    if value != values.get("password", ""):
        return "Passwords do not match"
    return None


def check_identifier(value: str, values: Mapping[str, str] = _EMPTY) -> str | None:
    if not value.strip():
        return "Email or username is required"
    return None


def check_required_password(
    value: str, values: Mapping[str, str] = _EMPTY
) -> str | None:
    # Login only needs a password to be present; strength is the server's call
    if not value:
        return "Password is required"
    return None


def validate_signup_request(data: Mapping[str, str]) -> list[FieldError]:
    """Validate a full signup payload, one error per failing field."""
    checks = (
        ("username", check_username),
        ("email", check_email),
        ("password", check_password),
        ("confirmPassword", check_confirmation),
    )
    return _run_checks(data, checks)


def validate_login_request(data: Mapping[str, str]) -> list[FieldError]:
    checks = (
        ("emailOrUsername", check_identifier),
        ("password", check_required_password),
    )
    return _run_checks(data, checks)


def _run_checks(data: Mapping[str, str], checks) -> list[FieldError]:
    errors: list[FieldError] = []
    for field, check in checks:
        message = check(data.get(field) or "", data)
        if message is not None:
            errors.append(FieldError(field=field, message=message))
    return errors

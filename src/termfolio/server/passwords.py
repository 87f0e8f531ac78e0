"""Password hashing and strength rules for the credential service.

BcryptHasher is CPU-bound and runs off the event loop through
``anyio.to_thread.run_sync()`` so concurrent requests are not blocked.
SimpleHasher (SHA-256 with a "simple$" prefix) hashes instantly and is
meant for tests only.
"""

from __future__ import annotations

import hashlib
import re
from typing import Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

_SPECIAL = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_REPEATED = re.compile(r"(.)\1{2,}")
_COMMON_SEQUENCE = re.compile(r"123456|654321|abcdef|qwerty|password|admin|user", re.IGNORECASE)
_ONLY_LETTERS = re.compile(r"^[a-zA-Z]+$")
_ONLY_DIGITS = re.compile(r"^\d+$")

# Checked in order; only the first matching pattern is reported
_WEAK_PATTERNS = (
    (_REPEATED, "Password cannot contain three or more repeated characters"),
    (_COMMON_SEQUENCE, "Password cannot contain common sequences (123456, qwerty, password, etc.)"),
    (_ONLY_LETTERS, "Password cannot contain only letters"),
    (_ONLY_DIGITS, "Password cannot contain only numbers"),
)


@runtime_checkable
class PasswordHasher(Protocol):
    """Hash and verify passwords."""

    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str) -> bool: ...


class BcryptHasher:
    """Production hasher using bcrypt (async, off-thread)."""

    async def hash(self, plain: str) -> str:
        encoded = plain.encode("utf-8")
        return await to_thread.run_sync(
            lambda: bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")
        )

    async def verify(self, plain: str, hashed: str) -> bool:
        """Return False for malformed hashes rather than propagating a ValueError."""
        encoded_plain = plain.encode("utf-8")
        encoded_hash = hashed.encode("utf-8")
        try:
            return await to_thread.run_sync(lambda: bcrypt.checkpw(encoded_plain, encoded_hash))
        except ValueError:
            return False


_SIMPLE_PREFIX = "simple$"


class SimpleHasher:
    """Fast SHA-256 hasher for tests. Not suitable for production use."""

    async def hash(self, plain: str) -> str:
        return _SIMPLE_PREFIX + hashlib.sha256(plain.encode("utf-8")).hexdigest()

    async def verify(self, plain: str, hashed: str) -> bool:
        if not hashed.startswith(_SIMPLE_PREFIX):
            return False
        return hashed == await self.hash(plain)


def get_hasher(name: str = "bcrypt") -> PasswordHasher:
    """Return a PasswordHasher by name ("bcrypt" or "simple")."""
    if name == "bcrypt":
        return BcryptHasher()
    if name == "simple":
        return SimpleHasher()
    raise ValueError(f"Unknown password hasher: {name!r}")


# ---------------------------------------------------------------------------
# Strength rules
# ---------------------------------------------------------------------------


def validate_password_strength(password: str) -> list[str]:
    """Return every rule ``password`` breaks; empty when it is acceptable."""
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL.search(password):
        errors.append(
            "Password must contain at least one special character (!@#$%^&*()_+-=[]{}|;:,.<>?)"
        )
    for pattern, message in _WEAK_PATTERNS:
        if pattern.search(password):
            errors.append(message)
            break
    return errors


def calculate_password_strength(password: str) -> int:
    """Score ``password`` from 0 (weakest) to 100 (strongest)."""
    if not password:
        return 0

    score = min(len(password) * 2, 25)
    has_lower = bool(re.search(r"[a-z]", password))
    has_upper = bool(re.search(r"[A-Z]", password))
    has_digit = bool(re.search(r"\d", password))
    has_special = bool(_SPECIAL.search(password))
    score += 10 * has_lower + 10 * has_upper + 15 * has_digit + 25 * has_special

    variety = sum((has_lower, has_upper, has_digit, has_special))
    if variety >= 3:
        score += 10
    if variety == 4:
        score += 5

    if _REPEATED.search(password) or _COMMON_SEQUENCE.search(password):
        score -= 20
    return max(0, min(100, score))


def strength_label(score: int) -> str:
    if score < 30:
        return "Weak"
    if score < 60:
        return "Fair"
    if score < 80:
        return "Good"
    return "Strong"

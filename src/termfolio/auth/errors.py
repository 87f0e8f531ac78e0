"""Error taxonomy of the account system.

Every failure the credential service can run into is folded into one of
the :class:`ErrorKind` categories before it reaches the terminal. Raising
code inside the client uses :class:`CredentialError`; the public client
methods convert it into an :class:`AuthResult` at the boundary.
"""

from __future__ import annotations

from termfolio.domain.models import AuthResult, ErrorKind, FieldError

# User-facing messages, keyed by the situation that produces them
MESSAGES = {
    "invalid_credentials": "Invalid credentials",
    "connection": "Connection error. Please try again.",
    "timeout": "Connection timed out. Please check your internet connection.",
    "server": "Server error. Please try again later.",
    "unavailable": "Service temporarily unavailable. Please try again later.",
    "rate_limited": "Too many requests. Please wait a moment and try again.",
    "session_expired": "Your session has expired. Please log in again.",
    "invalid_token": "Invalid authentication token. Please log in again.",
    "auth_required": "Authentication required",
    "access_denied": "Access denied",
    "not_found": "Service endpoint not found",
    "malformed": "Unexpected response from server",
    "validation": "Validation failed",
    "username_exists": "Username already exists",
    "email_exists": "Email already registered",
}

# Server error codes that mean the presented token can no longer be used
TOKEN_INVALID_CODES = frozenset(
    {"TOKEN_EXPIRED", "INVALID_TOKEN", "TOKEN_REVOKED", "REFRESH_FAILED"}
)


class CredentialError(Exception):
    """Raised inside the credential client when a call cannot succeed."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        status: int = 0,
        code: str = "",
        field_errors: list[FieldError] | None = None,
        token_invalid: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status = status
        self.code = code
        self.field_errors = field_errors or []
        self.token_invalid = token_invalid

    def to_result(self) -> AuthResult:
        return AuthResult(
            success=False,
            message=self.message,
            field_errors=list(self.field_errors),
            error_kind=self.kind,
            token_invalid=self.token_invalid,
        )


__all__ = [
    "CredentialError",
    "ErrorKind",
    "MESSAGES",
    "TOKEN_INVALID_CODES",
]

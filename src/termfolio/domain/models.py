"""Core domain models for the termfolio system.

These models represent the data flowing between the terminal and the
account system: the signed-in identity and its session snapshot, the
normalized outcome of a credential call, form field definitions, and the
tagged results command handlers hand back to the input dispatcher.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class AuthPhase(str, enum.Enum):
    """Lifecycle phase of the terminal's authentication session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"  # A credential call is in flight
    AUTHENTICATED = "authenticated"
    ERROR = "error"  # Last operation failed; identity is left as it was


class ErrorKind(str, enum.Enum):
    """Normalized failure categories reported by the credential service."""

    VALIDATION = "validation"  # Client or server field checks failed
    CONFLICT = "conflict"  # Duplicate username or email
    AUTH_FAILURE = "auth_failure"  # Bad credentials or unusable token
    TRANSPORT = "transport"  # Network unreachable or timed out
    SERVER_FAULT = "server_fault"  # 5xx or an unreadable response


class FieldKind(str, enum.Enum):
    TEXT = "text"
    PASSWORD = "password"


class AuthFlow(str, enum.Enum):
    """Interactive account flows a command can hand the terminal over to."""

    SIGNUP = "signup"
    LOGIN = "login"
    LOGOUT = "logout"


# ---------------------------------------------------------------------------
# Identity / Session Models
# ---------------------------------------------------------------------------


class UserRef(BaseModel):
    """The account attached to a session.

    Replaced wholesale on re-authentication, never patched.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default="", description="Server-side user identifier")
    username: str = Field(min_length=1, description="Name shown in the prompt")
    email: str = Field(default="", description="Account email address")


class Session(BaseModel):
    """Immutable snapshot of the authentication session.

    Every transition of the session store produces a new snapshot with a
    higher ``version``; subscribers only ever see whole snapshots.
    """

    model_config = ConfigDict(frozen=True)

    user: UserRef | None = Field(default=None, description="Signed-in identity, if any")
    phase: AuthPhase = Field(default=AuthPhase.UNAUTHENTICATED)
    last_error: str | None = Field(default=None, description="Message of the last failure")
    version: int = Field(default=0, ge=0, description="Transition sequence number")

    @property
    def is_authenticated(self) -> bool:
        """Whether an identity is attached, regardless of a pending error."""
        return self.user is not None

    @property
    def display_name(self) -> str:
        return self.user.username if self.user is not None else "guest"


class FieldError(BaseModel):
    """A validation message attributed to one form field."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class AuthResult(BaseModel):
    """Normalized outcome of any credential service call.

    Failures never escape the credential service as exceptions; they are
    reported here with ``success=False`` and an ``error_kind``.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str = ""
    user: UserRef | None = None
    token: str | None = None
    refresh_token: str | None = None
    field_errors: list[FieldError] = Field(default_factory=list)
    error_kind: ErrorKind | None = None
    token_invalid: bool = Field(
        default=False,
        description="The presented token is expired, invalid or revoked",
    )


# ---------------------------------------------------------------------------
# Form Models
# ---------------------------------------------------------------------------

# (value, values collected so far) -> error message, or None when valid
FieldCheck = Callable[[str, Mapping[str, str]], Union[str, None]]


class FieldSpec(BaseModel):
    """One step of a sequential form."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Key of the value in the collected mapping")
    label: str = Field(description="Text shown before the input, without the colon")
    kind: FieldKind = Field(default=FieldKind.TEXT)
    check: FieldCheck | None = Field(
        default=None,
        description="Local validation; a returned message re-prompts the same field",
    )


# ---------------------------------------------------------------------------
# Command Results (discriminated union)
# ---------------------------------------------------------------------------


class TextOutput(BaseModel):
    """Literal output, written verbatim and newline-terminated."""

    model_config = ConfigDict(frozen=True)

    result_type: Literal["text"] = "text"
    text: str


class ClearScreen(BaseModel):
    """Clear the screen, optionally writing a banner before the prompt."""

    model_config = ConfigDict(frozen=True)

    result_type: Literal["clear_screen"] = "clear_screen"
    banner: str = ""


class EnterAuthFlow(BaseModel):
    """Hand the input stream over to an interactive account flow."""

    model_config = ConfigDict(frozen=True)

    result_type: Literal["enter_auth_flow"] = "enter_auth_flow"
    flow: AuthFlow


CommandResult = Annotated[
    Union[TextOutput, ClearScreen, EnterAuthFlow],
    Field(discriminator="result_type"),
]

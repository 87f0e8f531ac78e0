"""Domain models for termfolio.

This package contains the core data structures, enumerations, and value
objects shared by the terminal and the account system. All models use
Pydantic v2 for validation and serialization.
"""

from termfolio.domain.models import (
    AuthFlow,
    AuthPhase,
    AuthResult,
    ClearScreen,
    CommandResult,
    EnterAuthFlow,
    ErrorKind,
    FieldError,
    FieldKind,
    FieldSpec,
    Session,
    TextOutput,
    UserRef,
)

__all__ = [
    "AuthFlow",
    "AuthPhase",
    "AuthResult",
    "ClearScreen",
    "CommandResult",
    "EnterAuthFlow",
    "ErrorKind",
    "FieldError",
    "FieldKind",
    "FieldSpec",
    "Session",
    "TextOutput",
    "UserRef",
]

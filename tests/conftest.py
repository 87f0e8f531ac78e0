"""Shared test fixtures for the termfolio test suite.

Provides common fixtures used across unit tests: an in-memory screen, a
scripted credential service, a session store wired to both, and a
complete terminal session.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Mapping
from typing import Any

import pytest

from termfolio.auth.session import SessionStore
from termfolio.auth.token_store import MemoryTokenStore
from termfolio.domain.models import AuthResult, ErrorKind, UserRef
from termfolio.terminal.screen import ScreenBuffer
from termfolio.terminal.session import TerminalSession


# ---------------------------------------------------------------------------
# Credential Service Stub
# ---------------------------------------------------------------------------


class StubCredentialService:
    """Scripted stand-in for :class:`CredentialService`.

    Each operation returns the next queued result for its name, or a
    sensible default. ``hold(name)`` returns an event the call waits on
    before answering, which lets a test observe the in-flight state.
    """

    def __init__(self) -> None:
        self.responses: dict[str, list[AuthResult]] = defaultdict(list)
        self.calls: list[tuple[str, Any]] = []
        self.gates: dict[str, asyncio.Event] = {}

    def queue(self, name: str, result: AuthResult) -> None:
        self.responses[name].append(result)

    def hold(self, name: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[name] = gate
        return gate

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def signup(self, data: Mapping[str, str]) -> AuthResult:
        return await self._respond("signup", dict(data))

    async def login(self, data: Mapping[str, str]) -> AuthResult:
        return await self._respond("login", dict(data))

    async def logout(self, token: str | None) -> AuthResult:
        return await self._respond("logout", token)

    async def me(self, token: str) -> AuthResult:
        return await self._respond("me", token)

    async def refresh(self, refresh_token: str) -> AuthResult:
        return await self._respond("refresh", refresh_token)

    async def _respond(self, name: str, arg: Any) -> AuthResult:
        self.calls.append((name, arg))
        gate = self.gates.pop(name, None)
        if gate is not None:
            await gate.wait()
        if self.responses[name]:
            return self.responses[name].pop(0)
        return _default_result(name, arg)


def authenticated(username: str, token: str = "access-token") -> AuthResult:
    """A successful signup/login result for ``username``."""
    return AuthResult(
        success=True,
        message="Login successful",
        user=UserRef(id=f"id-{username}", username=username, email=f"{username}@example.com"),
        token=token,
        refresh_token=f"refresh-{token}",
    )


def _default_result(name: str, arg: Any) -> AuthResult:
    if name == "signup":
        return authenticated(arg.get("username", "user"))
    if name == "login":
        identifier = arg.get("emailOrUsername", "user")
        return authenticated(identifier.split("@")[0])
    if name == "logout":
        return AuthResult(success=True, message="Logged out successfully")
    return AuthResult(
        success=False,
        message="Invalid authentication token. Please log in again.",
        error_kind=ErrorKind.AUTH_FAILURE,
        token_invalid=True,
    )


# ---------------------------------------------------------------------------
# Session Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stub_service() -> StubCredentialService:
    """A credential service that answers from a script."""
    return StubCredentialService()


@pytest.fixture
def token_store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def store(stub_service: StubCredentialService, token_store: MemoryTokenStore) -> SessionStore:
    """A session store backed by the stub service and an in-memory token store."""
    return SessionStore(stub_service, tokens=token_store)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Terminal Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def screen() -> ScreenBuffer:
    """A 24x80 in-memory screen."""
    return ScreenBuffer(rows=24, cols=80)


@pytest.fixture
def terminal(screen: ScreenBuffer, store: SessionStore) -> TerminalSession:
    """A booted terminal without banner or colors, showing the guest prompt."""
    session = TerminalSession(screen, store, show_banner=False)
    session.boot()
    return session


@pytest.fixture
def auth_ok():
    """Factory for successful signup/login results: ``auth_ok("bob")``."""
    return authenticated

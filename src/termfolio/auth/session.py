"""Authentication session store.

Holds the current :class:`Session` snapshot and moves it through the
``unauthenticated -> authenticating -> authenticated | error`` lifecycle
as credential calls resolve. Every transition produces a new frozen
snapshot with a higher version and is broadcast to subscribers in
registration order.

Each operation takes a ticket when it starts. When it resolves, its
outcome is applied only if no operation with a newer ticket has already
been applied; otherwise it is dropped, so a slow logout can never undo
a login the user performed after it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from termfolio.auth.client import CredentialService
from termfolio.auth.errors import MESSAGES
from termfolio.auth.token_store import MemoryTokenStore, TokenStore
from termfolio.domain.models import AuthPhase, AuthResult, ErrorKind, Session, UserRef

logger = logging.getLogger(__name__)

Listener = Callable[[Session], None]

_SERVICE_FAILURE = AuthResult(
    success=False,
    message=MESSAGES["server"],
    error_kind=ErrorKind.SERVER_FAULT,
)


class SessionStore:
    """Single source of truth for who is signed in.

    Args:
        service: Credential service used for all remote calls.
        tokens: Where tokens and the cached identity are persisted. The
            store is the only writer.
    """

    def __init__(
        self,
        service: CredentialService,
        tokens: TokenStore | None = None,
    ) -> None:
        self._service = service
        self._tokens = tokens if tokens is not None else MemoryTokenStore()
        self._session = Session()
        self._listeners: list[Listener] = []
        self._issued = 0
        self._applied = 0
        self._in_flight = 0

    # ------------------------------------------------------------------
    # Snapshot access / subscription
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def tokens(self) -> TokenStore:
        return self._tokens

    @property
    def is_busy(self) -> bool:
        """True while a signup, login or logout is waiting on the network."""
        return self._in_flight > 0

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every future snapshot.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def restore(self) -> Session:
        """Re-establish a persisted session at startup.

        Looks up the identity behind the stored token, falling back to the
        refresh token when the access token is no longer accepted. Any
        failure clears the persisted credentials and leaves the store
        unauthenticated without reporting an error.
        """
        token = self._tokens.load_token()
        if not token:
            return self._session

        ticket = self._take_ticket()
        result = await self._call(self._service.me, token)
        refreshed = False
        if not result.success and result.token_invalid:
            refresh_token = self._tokens.load_refresh_token()
            if refresh_token:
                result = await self._call(self._service.refresh, refresh_token)
                refreshed = result.success

        if self._is_stale(ticket):
            logger.debug("Dropping stale session restore (ticket %d)", ticket)
            return self._session
        self._applied = ticket

        user = result.user or (self._tokens.load_user() if refreshed else None)
        if result.success and user is not None:
            if refreshed and result.token:
                self._persist(result.token, user, result.refresh_token)
            else:
                self._persist(token, user)
            logger.info("Restored session for %s", user.username)
            return self._transition(
                user=user, phase=AuthPhase.AUTHENTICATED, last_error=None
            )

        logger.info("Persisted session could not be restored, clearing it")
        self._forget()
        return self._transition(
            user=None, phase=AuthPhase.UNAUTHENTICATED, last_error=None
        )

    async def signup(self, data: Mapping[str, str]) -> AuthResult:
        return await self._authenticate(self._service.signup, data)

    async def login(self, data: Mapping[str, str]) -> AuthResult:
        return await self._authenticate(self._service.login, data)

    async def logout(self) -> AuthResult:
        """Revoke the session remotely if possible and always clear it locally.

        Returns:
            ``success`` tells whether the remote revocation went through;
            the local session is cleared either way.
        """
        token = self._tokens.load_token()
        ticket = self._take_ticket()
        remote_ok = True
        self._in_flight += 1
        try:
            if token:
                result = await self._call(self._service.logout, token)
                remote_ok = result.success
        finally:
            self._in_flight -= 1

        if not remote_ok:
            logger.warning("Remote logout failed, clearing local session anyway")
        outcome = AuthResult(
            success=remote_ok,
            message=(
                "Logged out successfully"
                if remote_ok
                else "Logout failed, but local session cleared."
            ),
        )
        if self._is_stale(ticket):
            logger.debug("Dropping stale logout (ticket %d)", ticket)
            return outcome
        self._applied = ticket
        self._forget()
        self._transition(user=None, phase=AuthPhase.UNAUTHENTICATED, last_error=None)
        return outcome

    async def refresh(self) -> AuthResult:
        """Silently exchange the refresh token for a new access token.

        An authentication failure ends the session; transport and server
        faults leave it exactly as it was.
        """
        refresh_token = self._tokens.load_refresh_token()
        if not refresh_token:
            return AuthResult(
                success=False,
                message=MESSAGES["auth_required"],
                error_kind=ErrorKind.AUTH_FAILURE,
            )

        ticket = self._take_ticket()
        result = await self._call(self._service.refresh, refresh_token)
        if self._is_stale(ticket):
            logger.debug("Dropping stale token refresh (ticket %d)", ticket)
            return result

        if result.success and result.token:
            self._applied = ticket
            user = result.user or self._session.user or self._tokens.load_user()
            self._persist(result.token, user, result.refresh_token)
            if user is not None:
                self._transition(user=user, phase=AuthPhase.AUTHENTICATED, last_error=None)
        elif result.error_kind is ErrorKind.AUTH_FAILURE:
            self._applied = ticket
            self._drop_session(result.message)
        return result

    def clear_error(self) -> Session:
        """Forget the last error; a pending authentication is left alone."""
        if self._session.phase is AuthPhase.AUTHENTICATING:
            return self._session
        return self._transition(phase=self._implied_phase(), last_error=None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _authenticate(
        self,
        call: Callable[[Mapping[str, str]], Awaitable[AuthResult]],
        data: Mapping[str, str],
    ) -> AuthResult:
        ticket = self._take_ticket()
        self._in_flight += 1
        try:
            self._transition(phase=AuthPhase.AUTHENTICATING, last_error=None)
            result = await self._call(call, data)
        finally:
            self._in_flight -= 1

        if self._is_stale(ticket):
            logger.debug("Dropping stale authentication result (ticket %d)", ticket)
            return result
        self._applied = ticket

        if result.success:
            if result.user is not None and result.token:
                self._persist(result.token, result.user, result.refresh_token)
                logger.info("Authenticated as %s", result.user.username)
                self._transition(
                    user=result.user, phase=AuthPhase.AUTHENTICATED, last_error=None
                )
            else:
                # Account created without an automatic login
                self._transition(phase=self._implied_phase(), last_error=None)
        elif result.token_invalid:
            self._drop_session(result.message)
        else:
            self._transition(phase=AuthPhase.ERROR, last_error=result.message)
        return result

    async def _call(self, call: Callable[[Any], Awaitable[AuthResult]], arg: Any) -> AuthResult:
        try:
            return await call(arg)
        except Exception:
            logger.exception("Credential service raised unexpectedly")
            return _SERVICE_FAILURE

    def _persist(self, token: str, user: UserRef | None, refresh_token: str | None = None) -> None:
        try:
            self._tokens.save(token, user, refresh_token)
        except OSError as e:
            logger.warning("Could not persist credentials, session kept in memory only: %s", e)

    def _forget(self) -> None:
        try:
            self._tokens.clear()
        except OSError as e:
            logger.warning("Could not clear persisted credentials: %s", e)

    def _drop_session(self, message: str) -> None:
        self._forget()
        self._transition(user=None, phase=AuthPhase.ERROR, last_error=message)

    def _take_ticket(self) -> int:
        self._issued += 1
        return self._issued

    def _is_stale(self, ticket: int) -> bool:
        return ticket < self._applied

    def _implied_phase(self) -> AuthPhase:
        if self._session.user is not None:
            return AuthPhase.AUTHENTICATED
        return AuthPhase.UNAUTHENTICATED

    def _transition(self, **changes: Any) -> Session:
        current = self._session
        if all(getattr(current, name) == value for name, value in changes.items()):
            return current
        changes["version"] = current.version + 1
        self._session = current.model_copy(update=changes)
        logger.debug(
            "Session v%d: phase=%s user=%s",
            self._session.version,
            self._session.phase.value,
            self._session.display_name,
        )
        for listener in list(self._listeners):
            try:
                listener(self._session)
            except Exception:
                logger.exception("Session listener failed")
        return self._session

"""Interactive signup, login and logout flows.

A flow runs the form (if any), then hands the collected values to the
session store as a tracked asyncio task. Each flow gets a generation
number; cancelling bumps the generation so that a credential call which
resolves afterwards is ignored by the terminal (its outcome still lands
in the session store).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping

from termfolio.auth.session import SessionStore
from termfolio.auth.validation import validate_login_request, validate_signup_request
from termfolio.domain.models import AuthFlow, AuthResult
from termfolio.terminal.base import TerminalOutput
from termfolio.terminal.forms import SequentialFieldCollector, login_fields, signup_fields

logger = logging.getLogger(__name__)

RED = "\x1b[31m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
CYAN = "\x1b[36m"
RESET = "\x1b[0m"

STATUS_TEXT = "Authenticating..."
CLEAR_LINE = "\r\x1b[K"

_INTROS = {
    AuthFlow.SIGNUP: "Creating new account...",
    AuthFlow.LOGIN: "Login to your account...",
}


class AuthFlowController:
    """Runs one account flow at a time on behalf of the dispatcher.

    Args:
        output: Surface to write notices to.
        store: Session store that performs the credential calls.
        collector: Form collector shared with the dispatcher.
        on_finished: Called once the terminal may show a prompt again.
        colors: Color success, warning and error notices.
    """

    def __init__(
        self,
        output: TerminalOutput,
        store: SessionStore,
        collector: SequentialFieldCollector,
        on_finished: Callable[[], None],
        colors: bool = False,
    ) -> None:
        self._output = output
        self._store = store
        self._collector = collector
        self._on_finished = on_finished
        self._colors = colors
        self._generation = 0
        self._running: int | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._abandoned: set[asyncio.Task[None]] = set()
        self._current: asyncio.Task[None] | None = None

    @property
    def busy(self) -> bool:
        """True while a credential call of the current flow is outstanding."""
        return self._running is not None

    @property
    def abandoned(self) -> bool:
        """True while a cancelled flow's credential call is still resolving."""
        return bool(self._abandoned)

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self, flow: AuthFlow) -> None:
        """Start ``flow``: prompt its form, or call the store right away."""
        logger.debug("Starting %s flow", flow.value)
        if flow is AuthFlow.LOGOUT:
            self._start(flow, {})
            return
        self._output.write_line(_INTROS[flow])
        self._output.write_line()
        fields = signup_fields() if flow is AuthFlow.SIGNUP else login_fields()
        self._collector.start(
            fields,
            on_complete=lambda values: self._submit(flow, values),
            on_cancel=self._form_cancelled,
        )

    def cancel(self) -> bool:
        """Abandon the form or the outstanding call. Returns False if idle."""
        if self._collector.is_active:
            self._collector.cancel()
            return True
        if self._running is None:
            return False
        self._generation += 1
        self._running = None
        if self._current is not None and not self._current.done():
            self._abandoned.add(self._current)
        self._current = None
        logger.info("Authentication cancelled while waiting on the server")
        self._output.write(CLEAR_LINE + "^C\r\n")
        self._say("Authentication cancelled.", YELLOW)
        self._on_finished()
        return True

    async def wait_idle(self) -> None:
        """Wait until every credential call started here has resolved."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _form_cancelled(self) -> None:
        self._say("Authentication cancelled.", YELLOW)
        self._on_finished()

    def _submit(self, flow: AuthFlow, values: Mapping[str, str]) -> None:
        if flow is AuthFlow.SIGNUP:
            errors = validate_signup_request(values)
        else:
            errors = validate_login_request(values)
        if errors:
            for error in errors:
                self._say(error.message, RED)
            self._on_finished()
            return
        self._start(flow, values)

    def _start(self, flow: AuthFlow, values: Mapping[str, str]) -> None:
        self._generation += 1
        generation = self._generation
        self._running = generation
        self._output.write(self._paint(STATUS_TEXT, CYAN))
        task = asyncio.get_running_loop().create_task(
            self._run(generation, flow, dict(values))
        )
        self._current = task
        self._tasks.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        self._abandoned.discard(task)

    async def _run(self, generation: int, flow: AuthFlow, values: dict[str, str]) -> None:
        try:
            if flow is AuthFlow.SIGNUP:
                result = await self._store.signup(values)
            elif flow is AuthFlow.LOGIN:
                result = await self._store.login(values)
            else:
                result = await self._store.logout()
        except Exception:
            logger.exception("%s flow failed", flow.value)
            result = AuthResult(
                success=False, message="An unexpected error occurred. Please try again."
            )

        if generation != self._generation:
            logger.debug("Ignoring outcome of cancelled %s flow", flow.value)
            return

        self._running = None
        self._current = None
        self._output.write(CLEAR_LINE)
        self._report(flow, result)
        self._on_finished()

    def _report(self, flow: AuthFlow, result: AuthResult) -> None:
        if flow is AuthFlow.LOGOUT:
            if result.success:
                self._say("✔ Logged out successfully", GREEN)
            else:
                self._say("Logout failed, but local session cleared.", YELLOW)
            return

        if not result.success:
            fallback = "Invalid credentials" if flow is AuthFlow.LOGIN else "Signup failed. Please try again."
            self._say(result.message or fallback, RED)
            for error in result.field_errors[1:]:
                self._say(f"  {error.field}: {error.message}", RED)
            return

        if flow is AuthFlow.SIGNUP:
            self._say("✔ Account created successfully", GREEN)
            if self._store.session.user is not None:
                self._say("✔ You are now logged in", GREEN)
        else:
            self._say("✔ Login successful", GREEN)

    def _say(self, text: str, color: str) -> None:
        self._output.write_line(self._paint(text, color))

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self._colors else text

"""Prompt rendering.

The prompt is a pure function of the session snapshot:
``"{username}@{host}:~$ "`` while signed in, ``"guest@{host}:~$ "``
otherwise. The renderer follows the session store and redraws the prompt
in place when the displayed identity changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from termfolio.auth.session import SessionStore
from termfolio.domain.models import Session
from termfolio.terminal.base import TerminalOutput

logger = logging.getLogger(__name__)

GREEN = "\x1b[32m"
BLUE = "\x1b[34m"
RESET = "\x1b[0m"
CLEAR_LINE = "\r\x1b[K"


def prompt_text(session: Session | None, host: str = "host") -> str:
    name = session.display_name if session is not None else "guest"
    return f"{name}@{host}:~$ "


class PromptRenderer:
    """Draws the prompt for the latest session snapshot it has seen.

    Redraws triggered by the session store can be suspended with
    :meth:`hold` while a form or command output owns the current line; a
    change that arrives meanwhile is drawn once on :meth:`release`.

    Args:
        output: Surface to draw on.
        host: Host part of the prompt.
        colors: Wrap user and path in ANSI colors.
        pending_input: Returns the text typed after the prompt, re-echoed
            on every in-place redraw.
    """

    def __init__(
        self,
        output: TerminalOutput,
        host: str = "host",
        colors: bool = False,
        pending_input: Callable[[], str] | None = None,
    ) -> None:
        self._output = output
        self._host = host
        self._colors = colors
        self._pending_input = pending_input or (lambda: "")
        self._session: Session | None = None
        self._held = 0
        self._stale = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_held(self) -> bool:
        return self._held > 0

    def text(self, session: Session | None = None) -> str:
        """Plain prompt for ``session``, or for the last snapshot seen."""
        return prompt_text(session if session is not None else self._session, self._host)

    def styled(self) -> str:
        if not self._colors:
            return self.text()
        name = self._session.display_name if self._session is not None else "guest"
        return f"{GREEN}{name}@{self._host}{RESET}:{BLUE}~{RESET}$ "

    def render(self) -> None:
        """Write the prompt at the cursor."""
        self._stale = False
        self._output.write(self.styled())

    def refresh(self) -> None:
        """Redraw the current line: prompt followed by any typed input."""
        self._stale = False
        self._output.write(CLEAR_LINE + self.styled() + self._pending_input())

    # ------------------------------------------------------------------
    # Session tracking
    # ------------------------------------------------------------------

    def attach(self, store: SessionStore) -> None:
        """Follow ``store``, starting from its current snapshot."""
        self.detach()
        self._session = store.session
        self._unsubscribe = store.subscribe(self._on_session)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def hold(self) -> None:
        self._held += 1

    def release(self, redraw: bool = True) -> None:
        """Lift one :meth:`hold`; redraws if a change arrived while held."""
        if self._held == 0:
            return
        self._held -= 1
        if self._held == 0 and self._stale and redraw:
            self.refresh()

    def _on_session(self, session: Session) -> None:
        previous = self._session
        self._session = session
        if previous is not None and previous.display_name == session.display_name:
            return
        if self._held:
            self._stale = True
            return
        logger.debug("Prompt identity changed to %s", session.display_name)
        self.refresh()

"""The terminal as a whole.

:class:`TerminalSession` wires the prompt renderer, command table and
input dispatcher to one output surface and one session store. It is what
the stdio runner and the web endpoint drive.
"""

from __future__ import annotations

import logging

from termfolio.auth.session import SessionStore
from termfolio.terminal.base import TerminalOutput
from termfolio.terminal.commands import CommandTable, Opener
from termfolio.terminal.content import PortfolioContent
from termfolio.terminal.dispatcher import InputDispatcher
from termfolio.terminal.prompt import PromptRenderer

logger = logging.getLogger(__name__)


class TerminalSession:
    """One interactive portfolio terminal.

    Example usage::

        screen = ScreenBuffer()
        terminal = TerminalSession(screen, SessionStore(CredentialService()))
        await terminal.start()
        terminal.dispatch_keystroke("help\\r")
        await terminal.wait_idle()
    """

    def __init__(
        self,
        output: TerminalOutput,
        store: SessionStore,
        content: PortfolioContent | None = None,
        host: str = "host",
        colors: bool = False,
        history_limit: int | None = None,
        show_banner: bool = True,
        opener: Opener | None = None,
    ) -> None:
        self._output = output
        self._store = store
        self._show_banner = show_banner
        self._booted = False
        self._table = CommandTable(content, opener=opener)
        self._prompt = PromptRenderer(
            output,
            host=host,
            colors=colors,
            pending_input=lambda: self._dispatcher.buffer.text,
        )
        self._prompt.attach(store)
        self._dispatcher = InputDispatcher(
            output,
            store,
            self._table,
            self._prompt,
            history_limit=history_limit,
            colors=colors,
        )

    @property
    def output(self) -> TerminalOutput:
        return self._output

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def dispatcher(self) -> InputDispatcher:
        return self._dispatcher

    @property
    def table(self) -> CommandTable:
        return self._table

    def boot(self) -> None:
        """Show the welcome banner and the first prompt. Runs once."""
        if self._booted:
            return
        self._booted = True
        if self._show_banner:
            banner = self._table.content.banner()
            self._output.write(banner.replace("\n", "\r\n") + "\r\n")
        self._prompt.render()
        logger.debug("Terminal booted")

    async def start(self, restore: bool = True) -> None:
        """Boot, then try to restore a persisted session.

        A restored identity shows up through the prompt's own redraw.
        """
        self.boot()
        if restore:
            await self._store.restore()

    def dispatch_keystroke(self, raw: str) -> None:
        """Process a raw input chunk fully before returning."""
        self._dispatcher.feed(raw)

    def prompt_text(self) -> str:
        return self._prompt.text(self._store.session)

    def is_busy(self) -> bool:
        return self._dispatcher.is_busy

    async def wait_idle(self) -> None:
        await self._dispatcher.flows.wait_idle()

    def close(self) -> None:
        self._dispatcher.close()
        self._prompt.detach()

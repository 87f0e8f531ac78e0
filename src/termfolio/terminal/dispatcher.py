"""Keystroke dispatch for the portfolio terminal.

Every key goes through :meth:`InputDispatcher.dispatch`. Depending on the
state it is handed to the masked password input, edits the shared line
buffer on behalf of a form's text field, or drives ordinary command-line
editing: echo, backspace, history recall, autocomplete, clear, cancel
and submission to the command table.
"""

from __future__ import annotations

import enum
import logging

from termfolio.auth.session import SessionStore
from termfolio.domain.models import ClearScreen, EnterAuthFlow, Session, TextOutput
from termfolio.terminal import keys
from termfolio.terminal.auth_flow import AuthFlowController
from termfolio.terminal.base import TerminalOutput
from termfolio.terminal.commands import BUSY_ALLOWED, CommandContext, CommandTable
from termfolio.terminal.editing import CommandHistory, LineBuffer
from termfolio.terminal.forms import ERASE, SequentialFieldCollector
from termfolio.terminal.prompt import PromptRenderer

logger = logging.getLogger(__name__)

YELLOW = "\x1b[33m"
RESET = "\x1b[0m"

BUSY_WARNING = (
    "Authentication in progress. Please complete the current operation "
    "or use Ctrl+C to cancel."
)
AUTOCOMPLETE_DISABLED = "Autocomplete disabled during authentication"
HISTORY_DISABLED = "History disabled during authentication"


class DispatchState(enum.Enum):
    IDLE = "idle"
    FORM_ACTIVE = "form_active"


class InputDispatcher:
    """Routes raw keys between command editing and the active form.

    Args:
        output: Surface everything is echoed to.
        store: Session store; its snapshots feed ``whoami`` and the guards
            of the account commands.
        table: Command table used on submit and for autocomplete.
        prompt: Prompt renderer, held while a flow owns the terminal.
        history_limit: Maximum number of remembered commands.
        colors: Color warnings.
    """

    def __init__(
        self,
        output: TerminalOutput,
        store: SessionStore,
        table: CommandTable,
        prompt: PromptRenderer,
        history_limit: int | None = None,
        colors: bool = False,
    ) -> None:
        self._output = output
        self._store = store
        self._table = table
        self._prompt = prompt
        self._colors = colors
        self._buffer = LineBuffer()
        self._history = CommandHistory(limit=history_limit)
        self._collector = SequentialFieldCollector(output)
        self._flows = AuthFlowController(
            output, store, self._collector, on_finished=self._flow_finished, colors=colors
        )
        self._session: Session = store.session
        self._unsubscribe = store.subscribe(self._on_session)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> DispatchState:
        if self._collector.is_active:
            return DispatchState.FORM_ACTIVE
        return DispatchState.IDLE

    @property
    def buffer(self) -> LineBuffer:
        return self._buffer

    @property
    def history(self) -> CommandHistory:
        return self._history

    @property
    def collector(self) -> SequentialFieldCollector:
        return self._collector

    @property
    def flows(self) -> AuthFlowController:
        return self._flows

    @property
    def is_busy(self) -> bool:
        """A credential call the terminal is still waiting on.

        Calls abandoned with Ctrl+C no longer count.
        """
        if self._flows.busy:
            return True
        return self._store.is_busy and not self._flows.abandoned

    def close(self) -> None:
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def feed(self, raw: str) -> None:
        """Dispatch a raw input chunk, one key at a time."""
        for key in keys.split_input(raw):
            self.dispatch(key)

    def dispatch(self, key: str) -> None:
        if self._collector.on_password_field:
            self._collector.handle_input(key)
        elif self._collector.is_active:
            self._dispatch_form_text(key)
        else:
            self._dispatch_idle(key)

    def _dispatch_form_text(self, key: str) -> None:
        if key == keys.CTRL_C:
            self._buffer.clear()
            self._collector.cancel()
        elif key == keys.ENTER:
            self._collector.complete_text_field(self._buffer.clear())
        elif key in keys.BACKSPACE_KEYS:
            self._erase()
        elif key == keys.TAB:
            self._form_notice(AUTOCOMPLETE_DISABLED)
        elif key in (keys.UP, keys.DOWN):
            self._form_notice(HISTORY_DISABLED)
        elif key == keys.CTRL_L:
            self._output.clear()
            self._collector.reprompt(self._buffer.text)
        elif keys.is_printable(key):
            self._type(key)

    def _dispatch_idle(self, key: str) -> None:
        if key == keys.ENTER:
            self._submit()
        elif key in keys.BACKSPACE_KEYS:
            self._erase()
        elif key == keys.TAB:
            self._autocomplete()
        elif key == keys.CTRL_L:
            self._buffer.clear()
            self._output.clear()
            self._prompt.render()
        elif key == keys.CTRL_C:
            self._interrupt()
        elif key == keys.UP:
            self._recall(self._history.previous())
        elif key == keys.DOWN:
            self._recall(self._history.next())
        elif keys.is_printable(key):
            self._type(key)
        # Everything else (other escapes, stray controls) is ignored

    # ------------------------------------------------------------------
    # Line editing
    # ------------------------------------------------------------------

    def _type(self, text: str) -> None:
        self._buffer.append(text)
        self._output.write(text)

    def _erase(self) -> None:
        if self._buffer.backspace():
            self._output.write(ERASE)

    def _recall(self, entry: str | None) -> None:
        if entry is None:
            return
        self._buffer.replace(entry)
        self._prompt.refresh()

    def _autocomplete(self) -> None:
        text = self._buffer.text
        matches = self._table.completions(text)
        if len(matches) == 1:
            suffix = matches[0][len(text):]
            if suffix:
                self._type(suffix)
        elif len(matches) > 1:
            self._output.write("\r\n" + " ".join(matches) + "\r\n")
            self._prompt.render()
            self._output.write(text)

    def _interrupt(self) -> None:
        self._buffer.clear()
        if self._flows.busy:
            self._flows.cancel()
            return
        self._output.write("^C\r\n")
        self._prompt.render()

    def _form_notice(self, message: str) -> None:
        self._output.write("\r\n")
        self._output.write_line(self._paint(message, YELLOW))
        self._collector.reprompt(self._buffer.text)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _submit(self) -> None:
        line = self._buffer.clear().strip()
        self._output.write("\r\n")
        if not line:
            self._prompt.render()
            return

        base = line.split()[0].lower()
        if self.is_busy and base not in BUSY_ALLOWED:
            logger.debug("Refusing %r while authentication is in progress", base)
            self._output.write_line(self._paint(BUSY_WARNING, YELLOW))
            self._prompt.render()
            return

        self._history.append(line)
        context = CommandContext(
            session=self._session,
            history=self._history.entries,
            busy=self.is_busy,
        )
        result = self._table.execute(line, context)

        if isinstance(result, TextOutput):
            if result.text:
                self._output.write_line(result.text.replace("\n", "\r\n"))
            self._prompt.render()
        elif isinstance(result, ClearScreen):
            self._output.clear()
            if result.banner:
                self._output.write(result.banner.replace("\n", "\r\n") + "\r\n")
            self._prompt.render()
        elif isinstance(result, EnterAuthFlow):
            self._prompt.hold()
            self._flows.begin(result.flow)

    def _flow_finished(self) -> None:
        self._buffer.clear()
        self._prompt.release(redraw=False)
        self._prompt.render()

    def _on_session(self, session: Session) -> None:
        self._session = session

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self._colors else text

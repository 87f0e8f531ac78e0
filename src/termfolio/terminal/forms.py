"""Sequential field collection for the account flows.

A form is a fixed list of :class:`FieldSpec`. Fields are prompted one at
a time as ``"<label>: "``. Text fields are typed on the dispatcher's
line buffer and handed over on Enter; password fields are read here,
one key at a time, echoing ``*`` for every character.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from termfolio.auth import validation
from termfolio.domain.models import FieldKind, FieldSpec
from termfolio.terminal import keys
from termfolio.terminal.base import TerminalOutput

logger = logging.getLogger(__name__)

PASSWORD_MASK = "*"
ERASE = "\b \b"
CANCEL_ECHO = "\r\n^C\r\n"

CompleteCallback = Callable[[dict[str, str]], None]
CancelCallback = Callable[[], None]


class PasswordInput:
    """Masked input for a single password value.

    Enter completes, Backspace erases one mask character, Ctrl+C cancels.
    Escape sequences and Tab are swallowed; nothing typed is ever echoed.
    """

    def __init__(self, output: TerminalOutput) -> None:
        self._output = output
        self._chars: list[str] = []
        self._active = False
        self._on_complete: Callable[[str], None] | None = None
        self._on_cancel: CancelCallback | None = None

    @property
    def is_active(self) -> bool:
        return self._active

    def __len__(self) -> int:
        return len(self._chars)

    def start(self, on_complete: Callable[[str], None], on_cancel: CancelCallback) -> None:
        self._chars = []
        self._active = True
        self._on_complete = on_complete
        self._on_cancel = on_cancel

    def stop(self) -> None:
        self._active = False
        self._chars = []
        self._on_complete = None
        self._on_cancel = None

    def handle_input(self, key: str) -> bool:
        """Consume one key. Returns False when not collecting a password."""
        if not self._active:
            return False

        if key == keys.ENTER:
            value = "".join(self._chars)
            callback = self._on_complete
            self.stop()
            if callback is not None:
                callback(value)
        elif key in keys.BACKSPACE_KEYS:
            if self._chars:
                self._chars.pop()
                self._output.write(ERASE)
        elif key == keys.CTRL_C:
            callback = self._on_cancel
            self.stop()
            if callback is not None:
                callback()
        elif keys.is_printable(key):
            self._chars.append(key)
            self._output.write(PASSWORD_MASK)
        # Escape sequences, Tab and other controls are swallowed
        return True


class SequentialFieldCollector:
    """Prompts a form's fields in order and collects their values.

    Exactly one of ``on_complete`` / ``on_cancel`` fires per form, and the
    form is torn down before it fires. Starting a new form while one is
    active silently replaces it.
    """

    def __init__(self, output: TerminalOutput) -> None:
        self._output = output
        self._password = PasswordInput(output)
        self._fields: tuple[FieldSpec, ...] = ()
        self._index = 0
        self._values: dict[str, str] = {}
        self._active = False
        self._on_complete: CompleteCallback | None = None
        self._on_cancel: CancelCallback | None = None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_field(self) -> FieldSpec | None:
        if not self._active:
            return None
        return self._fields[self._index]

    @property
    def on_password_field(self) -> bool:
        return self._password.is_active

    def start(
        self,
        fields: Sequence[FieldSpec],
        on_complete: CompleteCallback,
        on_cancel: CancelCallback | None = None,
    ) -> None:
        if not fields:
            raise ValueError("A form needs at least one field")
        if self._active:
            logger.debug("Replacing active form")
        self._teardown()
        self._fields = tuple(fields)
        self._on_complete = on_complete
        self._on_cancel = on_cancel
        self._active = True
        self._prompt()

    def handle_input(self, key: str) -> bool:
        """Offer one key to the form.

        Returns True if the key was consumed: every key while a password
        field is active, and Ctrl+C on a text field. Other keys on a text
        field belong to the dispatcher's line buffer.
        """
        if not self._active:
            return False
        if self._password.is_active:
            return self._password.handle_input(key)
        if key == keys.CTRL_C:
            self.cancel()
            return True
        return False

    def complete_text_field(self, value: str) -> None:
        field = self.current_field
        if field is None or field.kind is FieldKind.PASSWORD:
            return
        self._complete_field(value)

    def cancel(self) -> None:
        """Abandon the whole form and fire ``on_cancel``."""
        if not self._active:
            return
        self._output.write(CANCEL_ECHO)
        callback = self._on_cancel
        self._teardown()
        if callback is not None:
            callback()

    def reprompt(self, pending: str = "") -> None:
        """Redraw the current field's prompt on a fresh line position.

        ``pending`` is the text already typed into a text field.
        """
        field = self.current_field
        if field is None:
            return
        if field.kind is FieldKind.PASSWORD:
            pending = PASSWORD_MASK * len(self._password)
        self._output.write(f"\r\x1b[K{field.label}: {pending}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prompt(self) -> None:
        field = self._fields[self._index]
        self._output.write(f"{field.label}: ")
        if field.kind is FieldKind.PASSWORD:
            self._password.start(self._complete_field, self.cancel)

    def _complete_field(self, value: str) -> None:
        field = self._fields[self._index]
        self._output.write("\r\n")

        if field.check is not None:
            message = field.check(value, self._values)
            if message:
                self._output.write_line(message)
                self._prompt()
                return

        self._values[field.name] = value
        if self._index + 1 < len(self._fields):
            self._index += 1
            self._prompt()
            return

        values = dict(self._values)
        callback = self._on_complete
        self._teardown()
        if callback is not None:
            callback(values)

    def _teardown(self) -> None:
        self._password.stop()
        self._fields = ()
        self._index = 0
        self._values = {}
        self._active = False
        self._on_complete = None
        self._on_cancel = None


# ---------------------------------------------------------------------------
# Account forms
# ---------------------------------------------------------------------------


def signup_fields() -> list[FieldSpec]:
    return [
        FieldSpec(name="username", label="Username", check=validation.check_username),
        FieldSpec(name="email", label="Email", check=validation.check_email),
        FieldSpec(
            name="password",
            label="Password",
            kind=FieldKind.PASSWORD,
            check=validation.check_password,
        ),
        FieldSpec(
            name="confirmPassword",
            label="Confirm Password",
            kind=FieldKind.PASSWORD,
            check=validation.check_confirmation,
        ),
    ]


def login_fields() -> list[FieldSpec]:
    return [
        FieldSpec(
            name="emailOrUsername",
            label="Email or Username",
            check=validation.check_identifier,
        ),
        FieldSpec(
            name="password",
            label="Password",
            kind=FieldKind.PASSWORD,
            check=validation.check_required_password,
        ),
    ]


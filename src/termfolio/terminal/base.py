"""Abstract base class for terminal output surfaces.

Everything the terminal draws goes through this interface, so the same
dispatcher, forms and prompt can drive the in-memory screen served by the
web endpoint (and used in tests) or the process's own TTY.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class TerminalOutput(ABC):
    """Abstract surface the terminal writes raw terminal data to.

    Data may contain ANSI escape sequences, ``\\r``, ``\\n`` and the
    backspace-erase idiom ``\\b \\b``; it is up to the implementation to
    render them.

    Example usage::

        screen = ScreenBuffer(rows=24, cols=80)
        screen.write("guest@host:~$ ")
        screen.write_line("hello")
        screen.clear()
    """

    @abstractmethod
    def write(self, data: str) -> None:
        """Write raw terminal data at the cursor.

        Raises:
            TerminalOutputError: If the surface cannot accept the data.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Erase the visible screen and scrollback, cursor to the top."""
        ...

    def write_line(self, text: str = "") -> None:
        """Write ``text`` followed by a line break."""
        self.write(text + "\r\n")


class TerminalOutputError(Exception):
    """Raised when a terminal surface cannot be written to.

    Attributes:
        surface: Name of the surface that failed (e.g., 'stdio').
    """

    def __init__(self, message: str, surface: str = "") -> None:
        super().__init__(message)
        self.surface = surface

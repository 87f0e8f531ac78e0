"""In-memory terminal screen.

Renders the raw terminal data written by the terminal into a list of text
lines, enough to serve the screen over HTTP and to assert on in tests.
Understands carriage return, line feed (with end-of-line conversion),
backspace, tabs, erase-in-line and erase-in-display; colors, OSC
sequences and other escapes are dropped.
"""

from __future__ import annotations

import logging
import re
from collections import deque

from termfolio.terminal.base import TerminalOutput

logger = logging.getLogger(__name__)

# One token per match: a CSI sequence (params, final), an OSC sequence,
# a charset/keypad escape, or any single character
_TOKEN = re.compile(
    r"\x1b\[([0-9;?]*)([a-zA-Z])"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[()][AB012]"
    r"|\x1b[>=]"
    r"|(.)",
    re.DOTALL,
)
_ANSI = re.compile(
    r"\x1b\[[0-9;?]*[a-zA-Z]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b[()][AB012]|\x1b[>=]"
)

TAB_WIDTH = 8
DEFAULT_OUTPUT_LIMIT = 256 * 1024


def strip_ansi(text: str) -> str:
    """Remove escape sequences from ``text``."""
    return _ANSI.sub("", text)


class _OutputLog:
    """Raw output chunks, keeping only the last ``limit`` characters."""

    def __init__(self, limit: int) -> None:
        self._chunks: deque[str] = deque()
        self._size = 0
        self._limit = limit

    def append(self, data: str) -> None:
        self._chunks.append(data)
        self._size += len(data)
        while self._size > self._limit:
            excess = self._size - self._limit
            head = self._chunks[0]
            if len(head) <= excess:
                self._chunks.popleft()
                self._size -= len(head)
            else:
                self._chunks[0] = head[excess:]
                self._size -= excess

    def text(self) -> str:
        return "".join(self._chunks)

    def clear(self) -> None:
        self._chunks.clear()
        self._size = 0


class ScreenBuffer(TerminalOutput):
    """Terminal surface that keeps everything in memory.

    Besides the rendered lines it records the raw transcript of the
    writes, so callers can see exactly what was sent to the terminal.
    The transcript and the not-yet-taken output each keep only the last
    ``output_limit`` characters; older data is dropped, possibly in the
    middle of an escape sequence.
    """

    def __init__(
        self,
        rows: int = 24,
        cols: int = 80,
        scrollback_lines: int = 1000,
        output_limit: int = DEFAULT_OUTPUT_LIMIT,
    ) -> None:
        self._rows = rows
        self._cols = cols
        self._scrollback_lines = max(scrollback_lines, rows)
        self._lines: list[str] = [""]
        self._row = 0
        self._col = 0
        self._transcript = _OutputLog(output_limit)
        self._pending = _OutputLog(output_limit)

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def output(self) -> str:
        """The most recent writes since creation (or the last :meth:`reset`)."""
        return self._transcript.text()

    @property
    def plain_output(self) -> str:
        return strip_ansi(self.output)

    @property
    def lines(self) -> list[str]:
        return [line.rstrip() for line in self._lines]

    @property
    def current_line(self) -> str:
        """The line under the cursor, without trailing blanks past the cursor."""
        line = self._lines[self._row]
        return line[: max(len(line.rstrip()), self._col)]

    @property
    def cursor(self) -> tuple[int, int]:
        return self._row, self._col

    def take_output(self) -> str:
        """Return what was written since the previous call."""
        data = self._pending.text()
        self._pending.clear()
        return data

    def reset(self) -> None:
        """Forget the transcript and the rendered screen."""
        self._transcript.clear()
        self._pending.clear()
        self._erase_all()

    def get_screen_content(self) -> str:
        """Return the visible screen as ``rows`` lines of at most ``cols``."""
        visible = [line.rstrip()[: self._cols] for line in self._lines[-self._rows :]]
        while len(visible) < self._rows:
            visible.append("")
        return "\n".join(visible)

    # ------------------------------------------------------------------
    # TerminalOutput
    # ------------------------------------------------------------------

    def write(self, data: str) -> None:
        if not data:
            return
        self._transcript.append(data)
        self._pending.append(data)
        for match in _TOKEN.finditer(data):
            char = match.group(3)
            if char is not None:
                self._put(char)
            elif match.group(2) is not None:
                self._csi(match.group(1), match.group(2))
        self._trim()

    def clear(self) -> None:
        self.write("\x1b[2J\x1b[3J\x1b[H")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _put(self, char: str) -> None:
        if char == "\n":
            self._row += 1
            self._col = 0
            if self._row == len(self._lines):
                self._lines.append("")
        elif char == "\r":
            self._col = 0
        elif char == "\b":
            self._col = max(0, self._col - 1)
        elif char == "\t":
            self._col += TAB_WIDTH - self._col % TAB_WIDTH
        elif char >= " " and char != "\x7f":
            line = self._lines[self._row].ljust(self._col)
            self._lines[self._row] = line[: self._col] + char + line[self._col + 1 :]
            self._col += 1

    def _csi(self, params: str, final: str) -> None:
        mode = params or "0"
        line = self._lines[self._row]
        if final == "K":
            if mode == "0":
                self._lines[self._row] = line[: self._col]
            elif mode == "1":
                self._lines[self._row] = " " * self._col + line[self._col :]
            elif mode == "2":
                self._lines[self._row] = ""
        elif final == "J":
            if mode in ("2", "3"):
                self._erase_all()
            elif mode == "0":
                self._lines[self._row] = line[: self._col]
                del self._lines[self._row + 1 :]
        elif final == "H":
            # Only "home" is used; positioned moves are treated the same
            self._row = max(0, len(self._lines) - self._rows)
            self._col = 0
        # SGR and other cursor movement are not rendered

    def _erase_all(self) -> None:
        self._lines = [""]
        self._row = 0
        self._col = 0

    def _trim(self) -> None:
        excess = len(self._lines) - self._scrollback_lines
        if excess > 0:
            del self._lines[:excess]
            self._row = max(0, self._row - excess)

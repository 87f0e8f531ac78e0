"""Line editing state: the input buffer and command history."""

from __future__ import annotations


class LineBuffer:
    """Characters typed on the current input line."""

    def __init__(self) -> None:
        self._chars: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._chars)

    def __len__(self) -> int:
        return len(self._chars)

    def append(self, text: str) -> None:
        self._chars.extend(text)

    def backspace(self) -> bool:
        """Drop the last character. Returns False if there was none."""
        if not self._chars:
            return False
        self._chars.pop()
        return True

    def replace(self, text: str) -> None:
        self._chars = list(text)

    def clear(self) -> str:
        """Empty the buffer and return what it held."""
        text = self.text
        self._chars.clear()
        return text


class CommandHistory:
    """Submitted commands with an Up/Down recall cursor.

    ``cursor == len(entries)`` stands for the fresh, empty input line.
    Appending always moves the cursor back there.
    """

    def __init__(self, limit: int | None = None) -> None:
        self._entries: list[str] = []
        self._limit = limit
        self._cursor = 0

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, command: str) -> None:
        self._entries.append(command)
        if self._limit is not None and len(self._entries) > self._limit:
            del self._entries[: len(self._entries) - self._limit]
        self._cursor = len(self._entries)

    def previous(self) -> str | None:
        """Step back one entry; None when already at the oldest."""
        if self._cursor == 0:
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def next(self) -> str | None:
        """Step forward one entry.

        Returns the empty string on reaching the fresh line and None when
        already there.
        """
        if self._cursor >= len(self._entries):
            return None
        self._cursor += 1
        if self._cursor == len(self._entries):
            return ""
        return self._entries[self._cursor]

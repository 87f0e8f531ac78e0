"""Key codes and raw input splitting.

Terminal input arrives as raw strings: a single keypress, a pasted run of
text, or an escape sequence for arrow keys. :func:`split_input` cuts such
a chunk into the units the dispatcher handles one at a time.
"""

from __future__ import annotations

import re

ENTER = "\r"
BACKSPACE = "\x7f"
CTRL_H = "\x08"  # Some terminals send this for Backspace
TAB = "\t"
CTRL_C = "\x03"
CTRL_D = "\x04"
CTRL_L = "\x0c"
ESC = "\x1b"
UP = "\x1b[A"
DOWN = "\x1b[B"
RIGHT = "\x1b[C"
LEFT = "\x1b[D"

BACKSPACE_KEYS = frozenset({BACKSPACE, CTRL_H})

# Key names accepted by the web endpoint
KEY_MAP = {
    "Enter": ENTER,
    "Return": ENTER,
    "Tab": TAB,
    "Space": " ",
    "Backspace": BACKSPACE,
    "Delete": "\x1b[3~",
    "Escape": ESC,
    "Up": UP,
    "Down": DOWN,
    "Right": RIGHT,
    "Left": LEFT,
    "Home": "\x1b[H",
    "End": "\x1b[F",
}

_UNIT = re.compile(
    r"\x1b\[[0-9;?]*[@-~]"  # CSI (arrows, delete, ...)
    r"|\x1bO[A-Za-z]"  # SS3 arrows in application mode
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
    r"|\r\n"
    r"|.",
    re.DOTALL,
)


def split_input(raw: str) -> list[str]:
    """Split a raw input chunk into single keys.

    Escape sequences stay whole, ``\\r\\n`` and a bare ``\\n`` both become
    one Enter.
    """
    units = []
    for match in _UNIT.finditer(raw):
        unit = match.group(0)
        if unit in ("\r\n", "\n"):
            unit = ENTER
        units.append(unit)
    return units


def is_printable(key: str) -> bool:
    """True for a single character in the printable ASCII range."""
    return len(key) == 1 and " " <= key <= "~"


def ctrl_key(letter: str) -> str | None:
    """Control character for Ctrl+``letter``, or None if not a letter."""
    letter = letter.lower()
    if len(letter) == 1 and "a" <= letter <= "z":
        return chr(ord(letter) - ord("a") + 1)
    return None

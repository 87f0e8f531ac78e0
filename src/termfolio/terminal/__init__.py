"""The portfolio terminal.

Input dispatch, sequential credential forms, prompt rendering and the
command table, drawn on a pluggable :class:`TerminalOutput` surface.
"""

from termfolio.terminal.base import TerminalOutput, TerminalOutputError
from termfolio.terminal.screen import ScreenBuffer
from termfolio.terminal.session import TerminalSession

__all__ = [
    "ScreenBuffer",
    "TerminalOutput",
    "TerminalOutputError",
    "TerminalSession",
]

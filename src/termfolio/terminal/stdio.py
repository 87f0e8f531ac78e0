"""Run the portfolio terminal on the process's own TTY.

Puts stdin into raw mode so every key (including Ctrl+C) reaches the
dispatcher unprocessed, and reads it through the event loop so credential
calls keep running while the user types. Ctrl+D leaves the terminal.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import sys
import termios
import tty
from typing import TextIO

from termfolio.terminal import keys
from termfolio.terminal.base import TerminalOutput, TerminalOutputError
from termfolio.terminal.session import TerminalSession

logger = logging.getLogger(__name__)


class StdioTerminal(TerminalOutput):
    """Writes terminal data straight to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def write(self, data: str) -> None:
        try:
            self._stream.write(data)
            self._stream.flush()
        except OSError as e:
            raise TerminalOutputError(
                f"Failed to write to terminal: {e}", surface="stdio"
            ) from e

    def clear(self) -> None:
        self.write("\x1b[2J\x1b[3J\x1b[H")


async def run_shell(terminal: TerminalSession, restore: bool = True) -> None:
    """Drive ``terminal`` from stdin until Ctrl+D or end of input.

    Raises:
        TerminalOutputError: If stdin is not a TTY.
    """
    fd = sys.stdin.fileno()
    if not os.isatty(fd):
        raise TerminalOutputError("stdin is not a terminal", surface="stdio")

    loop = asyncio.get_running_loop()
    chunks: asyncio.Queue[str] = asyncio.Queue()
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def on_readable() -> None:
        data = os.read(fd, 1024)
        # An empty read means stdin closed; treat it like Ctrl+D
        chunks.put_nowait(decoder.decode(data) if data else keys.CTRL_D)

    saved = termios.tcgetattr(fd)
    tty.setraw(fd)
    loop.add_reader(fd, on_readable)
    restore_task: asyncio.Task | None = None
    try:
        terminal.boot()
        if restore:
            restore_task = asyncio.create_task(terminal.store.restore())
        while True:
            chunk = await chunks.get()
            head, ctrl_d, _ = chunk.partition(keys.CTRL_D)
            if head:
                terminal.dispatch_keystroke(head)
            if ctrl_d:
                break
    finally:
        loop.remove_reader(fd)
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        if restore_task is not None and not restore_task.done():
            restore_task.cancel()
        terminal.output.write("\r\n")
        logger.info("Terminal session ended")

"""Logging setup utilities for termfolio.

Configures logging for the entire application based on the logging
configuration settings. Log records go to stderr and/or a file, never to
the stdout stream the terminal is drawn on.
"""

from __future__ import annotations

import logging
import sys

from termfolio.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None, console: bool = True) -> None:
    """Configure logging for the termfolio application.

    Sets up the 'termfolio' logger with the specified level, format, and
    optional file handler. Calling it again replaces the handlers it
    installed earlier instead of stacking duplicates.

    The interactive shell owns the TTY in raw mode, and stderr is usually
    that same TTY, so it passes ``console=False``: records then only go to
    ``config.file``, or nowhere when no file is configured.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
        console: Attach a stderr handler.
    """
    if config is None:
        config = LoggingConfig()

    app_logger = logging.getLogger("termfolio")
    app_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        app_logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    # Without handlers, records would reach logging.lastResort on stderr
    app_logger.propagate = console
    if not app_logger.handlers:
        app_logger.addHandler(logging.NullHandler())

    app_logger.info("Logging initialized at %s level", config.level)

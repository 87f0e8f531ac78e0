"""Tests for logging setup."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from termfolio.config.settings import LoggingConfig
from termfolio.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def app_logger() -> Iterator[logging.Logger]:
    """The 'termfolio' logger, restored to its previous state afterwards."""
    logger = logging.getLogger("termfolio")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestSetupLogging:
    def test_console_handler_by_default(self, app_logger: logging.Logger) -> None:
        setup_logging(LoggingConfig(level="debug"))
        assert app_logger.level == logging.DEBUG
        assert [type(h) for h in app_logger.handlers] == [logging.StreamHandler]
        assert app_logger.propagate is True

    def test_repeated_setup_does_not_stack_handlers(self, app_logger: logging.Logger) -> None:
        setup_logging()
        setup_logging()
        assert len(app_logger.handlers) == 1

    def test_shell_mode_logs_only_to_file(
        self, app_logger: logging.Logger, tmp_path: Path
    ) -> None:
        log_file = tmp_path / "termfolio.log"
        setup_logging(LoggingConfig(file=str(log_file)), console=False)
        assert [type(h) for h in app_logger.handlers] == [logging.FileHandler]
        assert app_logger.propagate is False
        logging.getLogger("termfolio.auth.session").warning("token file unwritable")
        for handler in app_logger.handlers:
            handler.flush()
        assert "token file unwritable" in log_file.read_text()

    def test_shell_mode_without_file_stays_silent(
        self, app_logger: logging.Logger, capsys: pytest.CaptureFixture[str]
    ) -> None:
        setup_logging(console=False)
        assert [type(h) for h in app_logger.handlers] == [logging.NullHandler]
        logging.getLogger("termfolio.terminal").error("would corrupt the screen")
        assert capsys.readouterr().err == ""

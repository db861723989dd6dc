"""Tests for utils/logger.py module."""

import logging

import pytest

from utils.logger import ROOT_LOGGER, get_logger, setup_logger


@pytest.fixture
def clean_logger():
    """Detach handlers so setup_logger starts fresh."""
    logger = logging.getLogger(ROOT_LOGGER)
    saved = logger.handlers[:]
    logger.handlers.clear()
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved


class TestSetupLogger:
    """Tests for setup_logger function."""

    def test_writes_log_file(self, clean_logger, tmp_path):
        log_file = tmp_path / "logs" / "relaycmd.log"
        setup_logger(level=logging.INFO, log_file=str(log_file))

        get_logger("relay.test").info("command accepted")
        for handler in clean_logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "command accepted" in content
        assert "relaycmd.relay.test" in content
        assert "INFO" in content

    def test_idempotent(self, clean_logger, tmp_path):
        setup_logger(log_file=str(tmp_path / "a.log"))
        setup_logger(log_file=str(tmp_path / "b.log"))
        assert len(clean_logger.handlers) == 1
        assert not (tmp_path / "b.log").exists()

    def test_console_handler(self, clean_logger):
        from rich.logging import RichHandler

        setup_logger(console=True)
        assert any(isinstance(h, RichHandler) for h in clean_logger.handlers)

    def test_no_outputs(self, clean_logger):
        setup_logger()
        assert isinstance(clean_logger.handlers[0], logging.NullHandler)


class TestGetLogger:
    """Tests for get_logger function."""

    def test_child_of_root(self):
        assert get_logger("relay.agent").name == "relaycmd.relay.agent"

"""
Tests for logging setup.
"""

import logging
import logging.handlers

import pytest

from crawlkit.utils.logging import get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test handler installation."""

    def test_console_only(self, restore_root_logger):
        setup_logging("WARNING")

        root = restore_root_logger
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_file_handler_rotates_daily(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "crawlkit.log"

        setup_logging("DEBUG", str(log_file), retention_days=3)
        get_logger("tests.logging").warning("hello from the test")
        for handler in restore_root_logger.handlers:
            handler.flush()

        rotating = [h for h in restore_root_logger.handlers
                    if isinstance(h, logging.handlers.TimedRotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].backupCount == 3
        assert "hello from the test" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_does_not_duplicate_handlers(self, restore_root_logger):
        setup_logging("INFO")
        setup_logging("INFO")
        assert len(restore_root_logger.handlers) == 1

    def test_get_logger_returns_named_logger(self):
        logger = get_logger("crawlkit.selector")
        assert logger.name == "crawlkit.selector"

"""Tests for logging_config.py module."""

import logging
from logging.handlers import TimedRotatingFileHandler

import pytest
from rich.logging import RichHandler

from s3grants.logging_config import LOG_FILE_NAME, NOISY_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    """Put the root logger back the way pytest left it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    noisy_levels = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, noisy_level in noisy_levels.items():
        logging.getLogger(name).setLevel(noisy_level)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_console_handler_only(self):
        configure_logging("INFO")

        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)

    def test_replaces_existing_handlers(self):
        configure_logging("INFO")
        configure_logging("WARNING")

        assert len(logging.getLogger().handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO

    def test_file_handler_with_log_dir(self, tmp_path):
        log_dir = tmp_path / "logs"

        configure_logging("DEBUG", str(log_dir), retention_days=3)
        logging.getLogger("s3grants.test").debug("written to file")

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, TimedRotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].backupCount == 3
        file_handlers[0].flush()
        assert "written to file" in (log_dir / LOG_FILE_NAME).read_text()

    def test_noisy_loggers_quieted(self):
        configure_logging("INFO")

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_noisy_loggers_follow_debug(self):
        configure_logging("DEBUG")
        assert logging.getLogger("botocore").level == logging.DEBUG

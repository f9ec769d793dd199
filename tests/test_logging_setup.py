"""Unit tests for logging setup."""

import logging
from logging.handlers import RotatingFileHandler

from protocom.config.models import LoggingConfig
from protocom.utils.logging_setup import setup_logging


def test_console_only(restore_root_logger):
    setup_logging(LoggingConfig(level="warning"))
    assert restore_root_logger.level == logging.WARNING
    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0], logging.StreamHandler)


def test_file_handler(restore_root_logger, tmp_path):
    log_file = tmp_path / "protocom.log"
    setup_logging(LoggingConfig(level="DEBUG", file=str(log_file)))

    assert any(isinstance(h, RotatingFileHandler) for h in restore_root_logger.handlers)
    logging.getLogger("protocom.test").debug("written to file")
    for handler in restore_root_logger.handlers:
        handler.flush()
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_repeated_setup_replaces_handlers(restore_root_logger):
    setup_logging(LoggingConfig())
    setup_logging(LoggingConfig())
    assert len(restore_root_logger.handlers) == 1

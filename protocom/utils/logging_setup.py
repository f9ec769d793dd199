"""
Logging setup for the console driver.

stdout carries the script's info channel, so log records always go to
stderr and, optionally, to a rotating file.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

from protocom.config.models import LoggingConfig


LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def _attach(root: logging.Logger, handler: logging.Handler, level: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the root logger from the logging section of the config.

    Handlers installed by a previous call are replaced.
    """
    root = logging.getLogger()
    root.setLevel(config.level)
    root.handlers.clear()

    _attach(root, logging.StreamHandler(sys.stderr), config.level)

    if config.file:
        try:
            handler = RotatingFileHandler(
                config.file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        except IOError as e:
            root.error(f"Cannot open log file {config.file}: {e}")
        else:
            _attach(root, handler, config.level)
            root.info(f"Logging to file: {config.file}")

    root.debug(f"Log level {config.level}")

"""Logging setup for the command-line entry point.

Log records go to stderr; stdout carries command output for the caller.
"""

import logging
import logging.handlers
import sys

from collection_agent.config import LoggingSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(settings: LoggingSettings, verbose: bool = False) -> logging.Logger:
    """Configure the package logger and return it."""
    logger = logging.getLogger("collection_agent")
    logger.setLevel(logging.DEBUG if verbose else getattr(logging, settings.level.upper()))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if settings.log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

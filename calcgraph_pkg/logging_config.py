"""Structured logging for calcgraph.

All loggers live under the ``calcgraph`` namespace. The library attaches only
a ``NullHandler``; applications (the CLI among them) call ``setup_logging``.
"""

import logging
import os
import sys
from datetime import datetime
from typing import Optional

ROOT_LOGGER = "calcgraph"

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RECORD_FIELDS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


class StructuredFormatter(logging.Formatter):
    """One line per record: timestamp, level, logger, message, then key=value context."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        line = f"{timestamp} [{record.levelname}] {record.name}: {record.getMessage()}"
        context = {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS}
        if context:
            line += " " + " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the ``calcgraph`` logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR; defaults to $CALCGRAPH_LOG_LEVEL,
            then WARNING
        log_file: Extra file destination; defaults to $CALCGRAPH_LOG_FILE.
            Records always go to stderr as well.

    Returns:
        The configured ``calcgraph`` logger
    """
    level = level or os.getenv("CALCGRAPH_LOG_LEVEL", "WARNING")
    log_file = log_file or os.getenv("CALCGRAPH_LOG_FILE")

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = StructuredFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a calcgraph module, e.g. ``get_logger("sampler")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")

"""Logging setup shared by the scrape pipeline, API and CLI.

Every module asks for its logger through :func:`get_logger`. Records go to the
console and to a size-rotated file under ``BOOKMIRROR_LOG_DIR`` (``logs`` by
default). Context passed through ``extra=`` (category, url, source id and
diagnostic fields) is appended to the line as ``key=value`` pairs.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_DIR = os.getenv("BOOKMIRROR_LOG_DIR", "logs")
LOG_FILE = os.path.join(LOG_DIR, "app.log")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
MAX_BYTES = 1_000_000
BACKUP_COUNT = 3

CONTEXT_KEYS = ("category", "url", "source_id", "loaded", "diagnostic")
DETAIL_PREFIX = "d_"


class ContextFormatter(logging.Formatter):
    """Formatter that renders known ``extra`` attributes after the message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = [
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        ]
        pairs.extend(
            f"{key[len(DETAIL_PREFIX):]}={value}"
            for key, value in sorted(vars(record).items())
            if key.startswith(DETAIL_PREFIX) and value is not None
        )
        if pairs:
            line = f"{line} | {' '.join(pairs)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """Return a logger with console and rotating file handlers attached once."""

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    os.makedirs(LOG_DIR, exist_ok=True)
    logger.setLevel(DEFAULT_LEVEL)
    logger.propagate = False
    formatter = ContextFormatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        handler.setLevel(DEFAULT_LEVEL)
        logger.addHandler(handler)

    return logger

"""Centralized logging utilities for semsearch."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import CONFIG

_LOGGER: Optional[logging.Logger] = None

# Extra record attributes appended to the message as key=value pairs.
_EXTRA_FIELDS = (
    ("collection", "collection"),
    ("field", "field"),
    ("strategy", "strategy"),
    ("index_name", "index"),
    ("outcome", "outcome"),
    ("result_count", "results"),
    ("elapsed_ms", "elapsed_ms"),
)


class ExtraFormatter(logging.Formatter):
    """Formatter that renders search-specific ``extra`` fields inline."""

    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for attr, label in _EXTRA_FIELDS:
            if hasattr(record, attr):
                extras.append(f"{label}={getattr(record, attr)}")
        if not extras:
            return super().format(record)
        # records are shared between handlers; restore the message afterwards
        original = record.msg
        record.msg = f"{record.msg} [{', '.join(extras)}]"
        try:
            return super().format(record)
        finally:
            record.msg = original


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Configure package-wide logging and return the ``semsearch`` logger."""

    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    log_dir = CONFIG.paths.state_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "semsearch.log"

    logger = logging.getLogger("semsearch")
    logger.setLevel(level if isinstance(level, int) else getattr(logging, str(level).upper(), logging.INFO))

    formatter = ExtraFormatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if os.environ.get("SEMSEARCH_LOG_TO_STDOUT", "0") == "1":
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    logger.debug("Logging initialized at %s", log_path)
    _LOGGER = logger
    return logger

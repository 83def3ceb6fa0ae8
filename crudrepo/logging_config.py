"""Logging configuration for crudrepo.

Provides a JSON formatted logger named ``crudrepo`` and remote/fallback
statistics for the cache-aside repository.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_NAME = "crudrepo"
LOG_FILE = Path("logs/crudrepo.log")
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

# Attributes present on every LogRecord. Anything else is considered an extra field.
DEFAULT_LOG_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    """Formatter returning log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short description
        base: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in DEFAULT_LOG_RECORD_ATTRS
        }
        table = extras.pop("table", None)
        if table is not None:
            base["table"] = table
        if extras:
            base["extra"] = extras
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def get_logger() -> logging.Logger:
    """Return the configured ``crudrepo`` logger.

    Module loggers (``crudrepo.repositories.cached`` and friends) propagate
    into it, so configuring once covers the whole package.
    """
    logger = logging.getLogger(LOG_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    formatter = JsonFormatter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG)
    stream_handler.setFormatter(formatter)

    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    logger.addHandler(stream_handler)
    logger.addHandler(file_handler)
    logger.propagate = False
    return logger


class FallbackStats:
    """Counts reads answered by the remote endpoint versus the local mirror."""

    def __init__(self) -> None:
        self._remote = 0
        self._fallbacks = 0
        self._logger = logging.getLogger(LOG_NAME)

    def record_remote(self) -> None:
        """Record a read served by the remote endpoint."""
        self._remote += 1

    def record_fallback(self) -> None:
        """Record a read served from the local mirror."""
        self._fallbacks += 1

    @property
    def remote(self) -> int:
        return self._remote

    @property
    def fallbacks(self) -> int:
        return self._fallbacks

    @property
    def fallback_rate(self) -> float:
        """Return the share of local fallbacks as a percentage."""
        total = self._remote + self._fallbacks
        return (self._fallbacks / total * 100) if total else 0.0

    def log_fallback_rate(self) -> None:
        """Log the current fallback rate."""
        self._logger.info(
            "Local fallback rate", extra={"fallback_rate": round(self.fallback_rate, 2)}
        )

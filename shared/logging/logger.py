"""
JSON log lines for the GitGud backend.

One object per line on stdout. Retry and cache events attach their
context (attempt number, delay, cache key prefix, topic) through the
standard ``extra=`` mechanism; those keys are promoted to top-level
fields so a log query can filter on them directly.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

CONTEXT_FIELDS = (
    "topic_id",
    "session_id",
    "cache_key",
    "attempt",
    "max_attempts",
    "delay_ms",
    "status",
    "retry_after_seconds",
)

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai")


class JSONFormatter(logging.Formatter):

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = record.__dict__.get(field)
            if value is not None:
                entry[field] = value

        if record.exc_info and record.exc_info[1]:
            entry["exc_type"] = type(record.exc_info[1]).__name__
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(service_name: str, level_name: str | None = None) -> logging.Logger:
    """
    Route every logger through one stdout JSON handler.

    ``level_name`` wins over ``LOG_LEVEL``; unknown names fall back to INFO.
    Safe to call again (handlers are replaced, not stacked).
    """
    level_name = (level_name or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    service_logger = logging.getLogger(service_name)
    service_logger.debug("JSON logging configured at %s", level_name)
    return service_logger

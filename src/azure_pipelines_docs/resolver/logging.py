"""Structured JSON logging for the resolver.

Each record becomes one JSON object on stderr (stdout carries command
payloads). Context the resolver attaches via `extra=` is promoted to top-level
keys when it belongs to the lookup schema (`url`, `task`, `query`, ...);
anything else lands under `extra`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

# Keys the resolver logs for fetches, lookups and searches.
CONTEXT_KEYS: tuple[str, ...] = (
    "url",
    "task",
    "query",
    "source",
    "organization",
    "attempt",
    "delay_seconds",
    "matches",
    "error",
)

# Attributes every LogRecord carries; anything beyond these came from `extra=`.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        supplied = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        for key in CONTEXT_KEYS:
            if key in supplied:
                payload[key] = supplied.pop(key)
        if supplied:
            payload["extra"] = supplied

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, *, stream: TextIO | None = None) -> None:
    """Route all logging through a single JSON handler (stderr by default)."""

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    # urllib3 logs every connection at DEBUG.
    logging.getLogger("urllib3").setLevel(max(root.level, logging.INFO))

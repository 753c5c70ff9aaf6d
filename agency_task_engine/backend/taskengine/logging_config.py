# backend/taskengine/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .middleware.request_id import get_request_id

# copied onto the JSON line when passed via `extra=`
EXTRA_FIELDS = (
    "event",
    "method",
    "path",
    "query",
    "status_code",
    "latency_ms",
    "client_id",
    "assignment_id",
    "task_count",
    "skipped",
    "clamped",
    "mode",
)


def _level(env_name: str, default: str) -> str:
    return (os.getenv(env_name) or default).strip().upper()


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the current request id."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = getattr(record, "request_id", None) or get_request_id()
        if rid:
            line["request_id"] = rid

        line.update({k: getattr(record, k) for k in EXTRA_FIELDS if hasattr(record, k)})

        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(line, ensure_ascii=False, default=str)


def configure_logging() -> None:
    level = _level("LOG_LEVEL", "INFO")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    # replaces whatever a previous call (or a reloader) installed
    root.handlers[:] = [handler]
    root.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(_level("SQL_LOG_LEVEL", "WARNING"))

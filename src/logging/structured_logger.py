"""Structured JSON logging configuration.

Records carry request_id and user_id when a request context is active, so
log lines from one HTTP request can be correlated. Secrets and emails are
masked in stdout output.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from src.logging.pii_sanitizer import sanitize_pii

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)

_EXTRA_FIELDS = ("duration_ms", "status_code", "method", "path")


class JSONFormatter(logging.Formatter):
    """Formats log records as structured JSON with PII sanitization."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "event": sanitize_pii(record.getMessage()),
        }

        request_id = getattr(record, "request_id", None) or request_id_var.get()
        if request_id:
            log_entry["request_id"] = request_id
        user_id = getattr(record, "user_id", None) or user_id_var.get()
        if user_id:
            log_entry["user_id"] = user_id

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = sanitize_pii(str(record.exc_info[1]))

        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", format_type: str = "json") -> None:
    """Configure application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format_type: "json" for structured JSON, "text" for human-readable.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root.addHandler(handler)

    # Reduce noise from libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

"""Structured JSON logging with correlation-id and user context."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

CORRELATION_ID_CTX: ContextVar[str] = ContextVar("correlation_id", default="")
REQUEST_USER_CTX: ContextVar[str] = ContextVar("request_user_id", default="")


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record, enriched with request context."""

    extra_fields: tuple[str, ...] = (
        "user_id",
        "error_code",
        "path",
        "method",
        "status_code",
        "subject",
    )

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": CORRELATION_ID_CTX.get(),
        }
        if request_user := REQUEST_USER_CTX.get():
            payload["request_user_id"] = request_user

        payload.update(
            (name, getattr(record, name))
            for name in self.extra_fields
            if getattr(record, name, None) not in (None, "")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Replace root handlers with a single stdout JSON handler."""
    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setFormatter(JsonLogFormatter())
    logging.basicConfig(
        level=logging.getLevelNamesMapping().get(level.upper(), logging.INFO),
        handlers=[stdout_handler],
        force=True,
    )


def set_correlation_id(correlation_id: str) -> None:
    CORRELATION_ID_CTX.set(correlation_id)


def set_request_user(user_id: str) -> None:
    """Bind the authenticated caller id to the current request context."""
    REQUEST_USER_CTX.set(user_id)

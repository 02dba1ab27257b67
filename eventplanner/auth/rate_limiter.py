"""Fixed-window request limiter for public auth endpoints, backed by SQLite."""

from __future__ import annotations

import logging
import time
from typing import Callable

from eventplanner.api.errors import ApiError, ApiErrorCode
from eventplanner.core.database import Database

LOGGER = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later"


def _epoch_seconds() -> int:
    return int(time.time())


class AuthRateLimiter:
    """Count requests per ``(scope, key)`` and reject once a window is full."""

    def __init__(
        self,
        database: Database,
        *,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], int] = _epoch_seconds,
    ) -> None:
        """Initialize limiter storage and policy parameters."""
        self._db = database
        self._max_requests = max(1, int(max_requests))
        self._window_seconds = max(1, int(window_seconds))
        self._clock = clock

    def hit(self, scope: str, key: str) -> None:
        """Record one request; raise 429 when the current window is exhausted."""
        now = int(self._clock())
        client_key = key.strip().lower() or "unknown"
        with self._db.transaction() as conn:
            row = conn.execute(
                """
                SELECT hits, window_started_at
                FROM auth_rate_limits
                WHERE scope = ? AND client_key = ?
                """,
                (scope, client_key),
            ).fetchone()

            if row is None or (now - int(row["window_started_at"])) >= self._window_seconds:
                hits = 1
                window_started_at = now
            else:
                hits = int(row["hits"]) + 1
                window_started_at = int(row["window_started_at"])

            conn.execute(
                """
                INSERT INTO auth_rate_limits(scope, client_key, hits, window_started_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(scope, client_key) DO UPDATE SET
                  hits = excluded.hits,
                  window_started_at = excluded.window_started_at
                """,
                (scope, client_key, hits, window_started_at),
            )

        if hits > self._max_requests:
            LOGGER.warning(
                "rate_limit_exceeded",
                extra={"path": scope, "error_code": str(ApiErrorCode.RATE_LIMIT_EXCEEDED)},
            )
            raise ApiError(
                status_code=429,
                error_code=ApiErrorCode.RATE_LIMIT_EXCEEDED,
                message=RATE_LIMIT_MESSAGE,
            )

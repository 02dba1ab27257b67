"""Shared SQLite connection with re-entrant transactions."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock

from eventplanner.core.migrations import apply_migrations

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime so that string order equals time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    """Inverse of ``format_timestamp``; ``None`` passes through."""
    if not value:
        return None
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class Database:
    """Single SQLite connection guarded by a re-entrant lock.

    ``transaction()`` blocks may nest; only the outermost block commits or
    rolls back, so a service can group several repository writes into one
    atomic unit.
    """

    def __init__(self, database_path: Path) -> None:
        """Migrate the schema and open the shared connection."""
        apply_migrations(database_path)
        self._path = database_path
        self._connection = sqlite3.connect(str(database_path), check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA foreign_keys = ON")
        self._lock = RLock()
        self._depth = 0

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside a (possibly nested) transaction."""
        with self._lock:
            self._depth += 1
            try:
                yield self._connection
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self._connection.rollback()
                raise
            self._depth -= 1
            if self._depth == 0:
                self._connection.commit()

    def close(self) -> None:
        """Close SQLite resources."""
        with self._lock:
            self._connection.close()

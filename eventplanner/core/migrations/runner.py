"""Forward-only SQL migrations for the credential, token and rate-limit tables."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

MIGRATIONS_DIR = Path(__file__).resolve().parent / "sql"

LOGGER = logging.getLogger(__name__)

_LEDGER_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  migration_id TEXT PRIMARY KEY,
  applied_at INTEGER NOT NULL
)
"""


def _recorded_ids(connection: sqlite3.Connection) -> set[str]:
    rows = connection.execute("SELECT migration_id FROM schema_migrations").fetchall()
    return {row[0] for row in rows}


def _pending(connection: sqlite3.Connection) -> list[Path]:
    done = _recorded_ids(connection)
    return [path for path in sorted(MIGRATIONS_DIR.glob("*.sql")) if path.name not in done]


def apply_migrations(database_path: Path) -> list[str]:
    """Run every unapplied ``sql/*.sql`` file by name order; return applied ids."""
    database_path.parent.mkdir(parents=True, exist_ok=True)
    applied: list[str] = []
    with closing(sqlite3.connect(str(database_path))) as connection:
        connection.execute("PRAGMA foreign_keys = ON")
        connection.execute(_LEDGER_DDL)
        for script in _pending(connection):
            connection.executescript(script.read_text(encoding="utf-8"))
            connection.execute(
                "INSERT INTO schema_migrations(migration_id, applied_at) "
                "VALUES (?, strftime('%s','now'))",
                (script.name,),
            )
            applied.append(script.name)
        connection.commit()

    if applied:
        LOGGER.info("migrations_applied: %s", ", ".join(applied))
    return applied

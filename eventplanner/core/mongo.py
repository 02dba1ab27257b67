"""Optional MongoDB backend: connection and versioned index migrations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import pymongo
from pymongo.errors import PyMongoError

from eventplanner.core.config import DatabaseConfig
from eventplanner.core.logging import CORRELATION_ID_CTX

LOGGER = logging.getLogger(__name__)

MigrationFn = Callable[[Any], None]


def _migration_0001_users_indexes(db: Any) -> None:
    db["users"].create_index("user_id", unique=True)
    db["users"].create_index("email", unique=True)


def _migration_0002_auth_tokens_indexes(db: Any) -> None:
    db["auth_tokens"].create_index("token_id", unique=True)
    db["auth_tokens"].create_index("token_hash")
    db["auth_tokens"].create_index(
        [("user_id", pymongo.ASCENDING), ("token_type", pymongo.ASCENDING)]
    )


MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("0001_users_indexes", _migration_0001_users_indexes),
    ("0002_auth_tokens_indexes", _migration_0002_auth_tokens_indexes),
]


def apply_mongo_migrations(db: Any) -> list[str]:
    """Run index migrations missing from ``schema_migrations``; return their ids."""
    ledger = db["schema_migrations"]
    ledger.create_index("migration_id", unique=True)

    pending = [
        (name, step)
        for name, step in MIGRATIONS
        if ledger.find_one({"migration_id": name}) is None
    ]
    for name, step in pending:
        step(db)
        ledger.insert_one(
            {
                "migration_id": name,
                "applied_at": datetime.now(timezone.utc),
                "correlation_id": CORRELATION_ID_CTX.get(),
            }
        )
        LOGGER.info("mongo_migration_applied: %s", name)
    return [name for name, _ in pending]


def connect_mongo(config: DatabaseConfig) -> Any | None:
    """Return a migrated Mongo database handle, or ``None`` to use SQLite.

    An unreachable server is logged and treated as "not configured".
    """
    if not config.mongodb_uri:
        return None

    client: Any = pymongo.MongoClient(
        config.mongodb_uri, serverSelectionTimeoutMS=3000, tz_aware=True
    )
    try:
        client.admin.command("ping")
        db = client[config.mongodb_db]
        apply_mongo_migrations(db)
    except PyMongoError:
        LOGGER.warning("mongo_unavailable_falling_back_to_sqlite", exc_info=True)
        client.close()
        return None
    return db

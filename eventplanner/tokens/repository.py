"""Token store: persistence of hashed single-use auth tokens."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import pymongo

from eventplanner.core.database import Database, format_timestamp, parse_timestamp
from eventplanner.tokens.models import AuthToken, TokenType

_COLUMNS = "token_id, user_id, token_hash, token_type, expires_at, used_at, created_at"


def _row_to_token(row: sqlite3.Row) -> AuthToken:
    return AuthToken(
        token_id=row["token_id"],
        user_id=row["user_id"],
        token_hash=row["token_hash"],
        token_type=TokenType(row["token_type"]),
        expires_at=parse_timestamp(row["expires_at"]),
        used_at=parse_timestamp(row["used_at"]),
        created_at=parse_timestamp(row["created_at"]),
    )


class TokenRepository:
    """Auth token repository with SQLite primary and optional MongoDB backend."""

    def __init__(self, database: Database, mongo_db: Any | None = None) -> None:
        """Bind to the shared SQLite database or, when given, a Mongo database."""
        self._db = database
        self._mongo_tokens = mongo_db["auth_tokens"] if mongo_db is not None else None

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Group several writes into one transaction (no-op on MongoDB)."""
        if self._mongo_tokens is not None:
            yield
            return
        with self._db.transaction():
            yield

    def create(self, token: AuthToken) -> AuthToken:
        """Insert a new token row."""
        if self._mongo_tokens is not None:
            doc = token.model_dump()
            doc["token_type"] = str(token.token_type)
            self._mongo_tokens.insert_one(doc)
            return token

        with self._db.transaction() as conn:
            conn.execute(
                f"INSERT INTO auth_tokens({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    token.token_id,
                    token.user_id,
                    token.token_hash,
                    str(token.token_type),
                    format_timestamp(token.expires_at),
                    format_timestamp(token.used_at) if token.used_at else None,
                    format_timestamp(token.created_at),
                ),
            )
        return token

    def find_active_by_hash(
        self, token_hash: str, token_type: TokenType, now: datetime
    ) -> AuthToken | None:
        """Find an unused, unexpired token of ``token_type`` by its hash."""
        if self._mongo_tokens is not None:
            doc = self._mongo_tokens.find_one(
                {
                    "token_hash": token_hash,
                    "token_type": str(token_type),
                    "used_at": None,
                    "expires_at": {"$gt": now},
                },
                {"_id": 0},
            )
            return AuthToken.model_validate(doc) if doc else None

        with self._db.transaction() as conn:
            row = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM auth_tokens
                WHERE token_hash = ? AND token_type = ?
                  AND used_at IS NULL AND expires_at > ?
                LIMIT 1
                """,
                (token_hash, str(token_type), format_timestamp(now)),
            ).fetchone()
        return _row_to_token(row) if row else None

    def find_latest_active_for_user(
        self, user_id: str, token_type: TokenType, now: datetime
    ) -> AuthToken | None:
        """Return the newest unused, unexpired token of a type for a user."""
        if self._mongo_tokens is not None:
            doc = self._mongo_tokens.find_one(
                {
                    "user_id": user_id,
                    "token_type": str(token_type),
                    "used_at": None,
                    "expires_at": {"$gt": now},
                },
                {"_id": 0},
                sort=[("created_at", pymongo.DESCENDING)],
            )
            return AuthToken.model_validate(doc) if doc else None

        with self._db.transaction() as conn:
            row = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM auth_tokens
                WHERE user_id = ? AND token_type = ?
                  AND used_at IS NULL AND expires_at > ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT 1
                """,
                (user_id, str(token_type), format_timestamp(now)),
            ).fetchone()
        return _row_to_token(row) if row else None

    def list_for_user(self, user_id: str, token_type: TokenType) -> list[AuthToken]:
        """Return all tokens of a type for a user, oldest first."""
        if self._mongo_tokens is not None:
            docs = self._mongo_tokens.find(
                {"user_id": user_id, "token_type": str(token_type)},
                {"_id": 0},
                sort=[("created_at", pymongo.ASCENDING)],
            )
            return [AuthToken.model_validate(doc) for doc in docs]

        with self._db.transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM auth_tokens
                WHERE user_id = ? AND token_type = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (user_id, str(token_type)),
            ).fetchall()
        return [_row_to_token(row) for row in rows]

    def mark_used(self, token_id: str, used_at: datetime) -> bool:
        """Set ``used_at`` if still unset; return whether this call consumed it."""
        if self._mongo_tokens is not None:
            result = self._mongo_tokens.update_one(
                {"token_id": token_id, "used_at": None},
                {"$set": {"used_at": used_at}},
            )
            return result.modified_count == 1

        with self._db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE auth_tokens SET used_at = ? WHERE token_id = ? AND used_at IS NULL",
                (format_timestamp(used_at), token_id),
            )
        return cursor.rowcount == 1

    def invalidate_for_user(
        self, user_id: str, token_type: TokenType, used_at: datetime
    ) -> int:
        """Mark every unused token of a type for a user as used."""
        if self._mongo_tokens is not None:
            result = self._mongo_tokens.update_many(
                {"user_id": user_id, "token_type": str(token_type), "used_at": None},
                {"$set": {"used_at": used_at}},
            )
            return int(result.modified_count)

        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE auth_tokens SET used_at = ?
                WHERE user_id = ? AND token_type = ? AND used_at IS NULL
                """,
                (format_timestamp(used_at), user_id, str(token_type)),
            )
        return int(cursor.rowcount)

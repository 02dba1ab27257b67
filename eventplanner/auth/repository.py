"""Credential store: persistence of user accounts."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from pymongo.errors import DuplicateKeyError

from eventplanner.auth.models import User, normalize_email
from eventplanner.core.database import Database, format_timestamp, parse_timestamp

_COLUMNS = (
    "user_id, name, email, password_hash, is_email_verified, "
    "two_factor_enabled, created_at, updated_at"
)


class DuplicateEmailError(Exception):
    """Raised when the unique email constraint rejects an insert."""


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        user_id=row["user_id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        is_email_verified=bool(row["is_email_verified"]),
        two_factor_enabled=bool(row["two_factor_enabled"]),
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
    )


class UserRepository:
    """User repository with SQLite primary and optional MongoDB backend."""

    def __init__(self, database: Database, mongo_db: Any | None = None) -> None:
        """Bind to the shared SQLite database or, when given, a Mongo database."""
        self._db = database
        self._mongo_users = mongo_db["users"] if mongo_db is not None else None

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Group writes across the credential and token stores."""
        if self._mongo_users is not None:
            yield
            return
        with self._db.transaction():
            yield

    def create(self, user: User) -> User:
        """Insert a user; the store's unique email constraint is authoritative."""
        user = user.model_copy(update={"email": normalize_email(user.email)})
        if self._mongo_users is not None:
            try:
                self._mongo_users.insert_one(user.model_dump())
            except DuplicateKeyError as exc:
                raise DuplicateEmailError(user.email) from exc
            return user

        try:
            with self._db.transaction() as conn:
                conn.execute(
                    f"INSERT INTO users({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        user.user_id,
                        user.name,
                        user.email,
                        user.password_hash,
                        int(user.is_email_verified),
                        int(user.two_factor_enabled),
                        format_timestamp(user.created_at),
                        format_timestamp(user.updated_at),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmailError(user.email) from exc
        return user

    def get_by_email(self, email: str) -> User | None:
        """Get user by email, case-insensitively."""
        key = normalize_email(email)
        if self._mongo_users is not None:
            doc = self._mongo_users.find_one({"email": key}, {"_id": 0})
            return User.model_validate(doc) if doc else None

        with self._db.transaction() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE email = ?", (key,)
            ).fetchone()
        return _row_to_user(row) if row else None

    def get_by_id(self, user_id: str) -> User | None:
        """Get user by id."""
        if self._mongo_users is not None:
            doc = self._mongo_users.find_one({"user_id": user_id}, {"_id": 0})
            return User.model_validate(doc) if doc else None

        with self._db.transaction() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE user_id = ?", (user_id,)
            ).fetchone()
        return _row_to_user(row) if row else None

    def set_email_verified(self, user_id: str, verified: bool, now: datetime) -> None:
        self._update(user_id, {"is_email_verified": verified}, now)

    def set_password_hash(self, user_id: str, password_hash: str, now: datetime) -> None:
        self._update(user_id, {"password_hash": password_hash}, now)

    def set_two_factor_enabled(self, user_id: str, enabled: bool, now: datetime) -> None:
        self._update(user_id, {"two_factor_enabled": enabled}, now)

    def _update(self, user_id: str, fields: dict[str, Any], now: datetime) -> None:
        if self._mongo_users is not None:
            self._mongo_users.update_one(
                {"user_id": user_id}, {"$set": {**fields, "updated_at": now}}
            )
            return

        assignments = ", ".join(f"{column} = ?" for column in fields)
        values = [int(v) if isinstance(v, bool) else v for v in fields.values()]
        with self._db.transaction() as conn:
            conn.execute(
                f"UPDATE users SET {assignments}, updated_at = ? WHERE user_id = ?",
                (*values, format_timestamp(now), user_id),
            )

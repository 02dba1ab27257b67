"""Pydantic models for single-use auth tokens."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class TokenType(StrEnum):
    """Purpose of a single-use token."""

    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"
    TWO_FACTOR = "TWO_FACTOR"


class AuthToken(BaseModel):
    """Persisted token row; only the hash of the secret is stored."""

    token_id: str
    user_id: str
    token_hash: str
    token_type: TokenType
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime

    def is_active(self, now: datetime) -> bool:
        """Return whether the token is unused and not yet expired."""
        return self.used_at is None and self.expires_at > now


class IssuedToken(BaseModel):
    """Freshly created token together with its one-time plaintext."""

    token: AuthToken
    plaintext: str

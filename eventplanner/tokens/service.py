"""Token service: issue, verify and consume single-use tokens and OTPs.

Long opaque tokens (email verification, password reset) are hashed with
SHA-256 so they can be looked up directly by hash. Two-factor codes have only
10**6 possible values, so they get a slow salted hash instead; that rules out
lookup by hash, and verification fetches the user's latest active code and
compares against it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Callable

from eventplanner.core.database import utc_now
from eventplanner.core.errors import DomainError, ErrorKind
from eventplanner.core.security import (
    DEFAULT_HASH_ROUNDS,
    generate_hex_token,
    generate_numeric_code,
    hash_password,
    sha256_hex,
    verify_password,
)
from eventplanner.tokens.models import AuthToken, IssuedToken, TokenType
from eventplanner.tokens.repository import TokenRepository

OTP_LENGTH = 6
TOKEN_BYTE_LENGTH = 32

INVALID_TOKEN_MESSAGE = "Invalid or expired token"
INVALID_OTP_MESSAGE = "Invalid or expired OTP"


class TokenService:
    """Single-use token lifecycle on top of the token store."""

    def __init__(
        self,
        repo: TokenRepository,
        *,
        otp_hash_rounds: int = DEFAULT_HASH_ROUNDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._otp_hash_rounds = otp_hash_rounds
        self._clock = clock

    def create_token(
        self, user_id: str, token_type: TokenType, ttl_minutes: int
    ) -> IssuedToken:
        """Issue a new token, invalidating earlier ones of the same type.

        The plaintext is returned only here and is never stored.
        """
        if ttl_minutes <= 0:
            raise ValueError("ttl_minutes must be positive")

        if token_type is TokenType.TWO_FACTOR:
            plaintext = generate_numeric_code(OTP_LENGTH)
            token_hash = hash_password(plaintext, self._otp_hash_rounds)
        else:
            plaintext = generate_hex_token(TOKEN_BYTE_LENGTH)
            token_hash = sha256_hex(plaintext)

        now = self._clock()
        token = AuthToken(
            token_id=str(uuid.uuid4()),
            user_id=user_id,
            token_hash=token_hash,
            token_type=token_type,
            expires_at=now + timedelta(minutes=ttl_minutes),
            created_at=now,
        )
        with self._repo.atomic():
            self._repo.invalidate_for_user(user_id, token_type, now)
            self._repo.create(token)
        return IssuedToken(token=token, plaintext=plaintext)

    def verify_token(self, plaintext: str, token_type: TokenType) -> AuthToken:
        """Resolve an active long token by its plaintext.

        Unknown, wrong-type, used and expired tokens all fail identically.
        """
        if token_type is TokenType.TWO_FACTOR:
            raise ValueError("Use verify_otp_for_user for TWO_FACTOR tokens")

        token = self._repo.find_active_by_hash(
            sha256_hex(plaintext), token_type, self._clock()
        )
        if token is None:
            raise DomainError(ErrorKind.INVALID_TOKEN, INVALID_TOKEN_MESSAGE)
        return token

    def verify_otp_for_user(self, user_id: str, otp: str) -> AuthToken:
        """Check ``otp`` against the user's latest active two-factor code."""
        token = self._repo.find_latest_active_for_user(
            user_id, TokenType.TWO_FACTOR, self._clock()
        )
        if token is None or not verify_password(otp, token.token_hash):
            raise DomainError(ErrorKind.INVALID_OTP, INVALID_OTP_MESSAGE)
        return token

    def consume_token(self, token_id: str) -> None:
        """Mark a token used; a token can be consumed only once."""
        if not self._repo.mark_used(token_id, self._clock()):
            raise DomainError(ErrorKind.INVALID_TOKEN, INVALID_TOKEN_MESSAGE)

    def invalidate_user_tokens(self, user_id: str, token_type: TokenType) -> int:
        """Revoke every unused token of a type for a user."""
        return self._repo.invalidate_for_user(user_id, token_type, self._clock())

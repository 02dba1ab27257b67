"""Stateless access/refresh token issuance.

Access and refresh tokens are signed with different secrets. Nothing is
persisted: a refresh token stays usable until it expires, and rotation only
hands the client a newer one.
"""

from __future__ import annotations

import time
import uuid
from typing import Any, Callable

from eventplanner.auth.models import SessionClaims, SessionPair, User
from eventplanner.core.config import AuthConfig
from eventplanner.core.security import build_signed_token, decode_signed_token

ACCESS = "access"
REFRESH = "refresh"


def _epoch_seconds() -> int:
    return int(time.time())


class SessionIssuer:
    """Sign and verify session tokens for a given ``AuthConfig``."""

    def __init__(
        self, config: AuthConfig, clock: Callable[[], int] = _epoch_seconds
    ) -> None:
        self._config = config
        self._clock = clock

    def issue_pair(self, user: User) -> SessionPair:
        """Mint a fresh access/refresh pair embedding the user's identity."""
        now = self._clock()
        access = self._sign(
            user, ACCESS, now, self._config.access_token_ttl_seconds, self._config.access_secret
        )
        refresh = self._sign(
            user, REFRESH, now, self._config.refresh_token_ttl_seconds, self._config.refresh_secret
        )
        return SessionPair(access_token=access, refresh_token=refresh)

    def decode_access(self, token: str) -> SessionClaims:
        return self._decode(token, ACCESS, self._config.access_secret)

    def decode_refresh(self, token: str) -> SessionClaims:
        return self._decode(token, REFRESH, self._config.refresh_secret)

    def _sign(
        self, user: User, token_type: str, now: int, ttl_seconds: int, secret: str
    ) -> str:
        payload: dict[str, Any] = {
            "iss": self._config.issuer,
            "sub": user.user_id,
            "email": user.email,
            "name": user.name,
            "type": token_type,
            "iat": now,
            "exp": now + ttl_seconds,
            "jti": uuid.uuid4().hex,
        }
        return build_signed_token(payload, secret)

    def _decode(self, token: str, expected_type: str, secret: str) -> SessionClaims:
        """Verify signature, expiry, issuer and type; ``ValueError`` otherwise."""
        payload = decode_signed_token(token, secret, now=self._clock())
        if str(payload.get("iss") or "") != self._config.issuer:
            raise ValueError("Invalid token issuer")
        if str(payload.get("type") or "") != expected_type:
            raise ValueError("Invalid token type")
        user_id = str(payload.get("sub") or "")
        if not user_id:
            raise ValueError("Token has no subject")
        return SessionClaims(
            user_id=user_id,
            email=str(payload.get("email") or ""),
            name=str(payload.get("name") or ""),
            token_type=expected_type,
            jti=str(payload.get("jti") or ""),
            expires_at=int(payload["exp"]),
        )

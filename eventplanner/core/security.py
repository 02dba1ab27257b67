"""Security primitives: password/OTP hashing, random secrets and token signing."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
import time
from typing import Any

DEFAULT_HASH_ROUNDS = 120_000
_HASH_ALGO = "pbkdf2_sha256"
_SALT_BYTES = 16
_TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _unb64url(value: str) -> bytes:
    """Decode unpadded URL-safe base64; ``ValueError`` on bad input."""
    try:
        return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid base64 segment") from exc


def _pbkdf2(secret: str, salt: bytes, rounds: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt, rounds)


def hash_password(password: str, rounds: int = DEFAULT_HASH_ROUNDS) -> str:
    """Hash a secret as ``pbkdf2_sha256$<rounds>$<salt>$<digest>``.

    Used for account passwords and for short one-time codes, where a slow,
    salted hash is required because the input space is small.
    """
    salt = os.urandom(_SALT_BYTES)
    digest = _pbkdf2(password, salt, rounds)
    return "$".join([_HASH_ALGO, str(rounds), _b64url(salt), _b64url(digest)])


def verify_password(password: str, stored_hash: str) -> bool:
    """Constant-time check of ``password`` against ``hash_password`` output."""
    parts = (stored_hash or "").split("$")
    if len(parts) != 4 or parts[0] != _HASH_ALGO:
        return False
    try:
        rounds = int(parts[1])
        salt = _unb64url(parts[2])
        expected = _unb64url(parts[3])
    except ValueError:
        return False
    if rounds <= 0:
        return False
    return hmac.compare_digest(_pbkdf2(password, salt, rounds), expected)


def sha256_hex(value: str) -> str:
    """Fast deterministic digest for high-entropy tokens (lookup by hash)."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_hex_token(num_bytes: int = 32) -> str:
    """Return a random hex secret of ``num_bytes`` bytes."""
    return secrets.token_hex(num_bytes)


def generate_numeric_code(length: int = 6) -> str:
    """Return a uniformly random numeric code, leading zeros allowed."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def _json_segment(data: dict[str, Any]) -> str:
    return _b64url(json.dumps(data, separators=(",", ":")).encode("utf-8"))


def _signature(signing_input: str, secret_key: str) -> bytes:
    return hmac.new(
        secret_key.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256
    ).digest()


def build_signed_token(payload: dict[str, Any], secret_key: str) -> str:
    """Sign ``payload`` as a compact HS256 JWT."""
    signing_input = f"{_json_segment(_TOKEN_HEADER)}.{_json_segment(payload)}"
    return f"{signing_input}.{_b64url(_signature(signing_input, secret_key))}"


def decode_signed_token(
    token: str, secret_key: str, *, now: int | None = None
) -> dict[str, Any]:
    """Verify signature and ``exp`` and return the claims.

    Raises ``ValueError`` for malformed, forged or expired tokens; tokens
    without ``exp`` are rejected.
    """
    segments = (token or "").split(".")
    if len(segments) != 3:
        raise ValueError("Malformed token")
    signing_input = f"{segments[0]}.{segments[1]}"
    try:
        signature = _unb64url(segments[2])
        expected = _signature(signing_input, secret_key)
    except (UnicodeEncodeError, ValueError) as exc:
        raise ValueError("Malformed token") from exc
    if not hmac.compare_digest(expected, signature):
        raise ValueError("Invalid token signature")

    try:
        payload = json.loads(_unb64url(segments[1]).decode("utf-8"))
        exp = int(payload.get("exp") or 0)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError("Invalid token payload") from exc

    current = int(time.time()) if now is None else now
    if exp <= current:
        raise ValueError("Token expired")
    return payload

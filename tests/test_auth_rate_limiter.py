from __future__ import annotations

from pathlib import Path

import pytest

from eventplanner.api.errors import ApiError
from eventplanner.auth.rate_limiter import AuthRateLimiter
from eventplanner.core.database import Database


def _limiter(tmp_path: Path, now: dict[str, int]) -> AuthRateLimiter:
    return AuthRateLimiter(
        Database(tmp_path / "state.db"),
        max_requests=2,
        window_seconds=300,
        clock=lambda: now["value"],
    )


def test_rate_limiter_blocks_after_threshold(tmp_path: Path) -> None:
    now = {"value": 1_000}
    limiter = _limiter(tmp_path, now)

    limiter.hit("login", "127.0.0.1")
    limiter.hit("login", "127.0.0.1")
    with pytest.raises(ApiError) as exc:
        limiter.hit("login", "127.0.0.1")

    assert exc.value.status_code == 429
    assert exc.value.detail == {
        "code": "RATE_LIMIT_EXCEEDED",
        "message": "Too many requests, please try again later",
    }


def test_rate_limiter_scopes_and_keys_are_independent(tmp_path: Path) -> None:
    now = {"value": 1_000}
    limiter = _limiter(tmp_path, now)

    limiter.hit("login", "127.0.0.1")
    limiter.hit("login", "127.0.0.1")

    limiter.hit("signup", "127.0.0.1")
    limiter.hit("login", "10.0.0.2")


def test_rate_limiter_window_resets(tmp_path: Path) -> None:
    now = {"value": 1_000}
    limiter = _limiter(tmp_path, now)
    limiter.hit("login", "127.0.0.1")
    limiter.hit("login", "127.0.0.1")

    now["value"] = 1_300

    limiter.hit("login", "127.0.0.1")


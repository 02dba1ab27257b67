from __future__ import annotations

import pytest

from eventplanner.core.config import DEV_ACCESS_SECRET, AppConfig, parse_duration


@pytest.mark.parametrize(
    ("raw", "seconds"),
    [("15m", 900), ("7d", 604800), ("2h", 7200), ("45s", 45), ("3600", 3600)],
)
def test_parse_duration_units(raw: str, seconds: int) -> None:
    assert parse_duration(raw) == seconds


@pytest.mark.parametrize("raw", ["", "abc", "10w", "0m", "-5m"])
def test_parse_duration_rejects_invalid(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ["APP_ENV", "JWT_SECRET", "JWT_REFRESH_SECRET", "SMTP_USER", "SMTP_PASS"]:
        monkeypatch.delenv(name, raising=False)

    config = AppConfig.from_env()

    assert config.environment == "development"
    assert config.auth.access_token_ttl_seconds == 900
    assert config.auth.refresh_token_ttl_seconds == 7 * 24 * 3600
    assert config.auth.access_secret == DEV_ACCESS_SECRET
    assert config.auth.cookie_secure is False
    assert config.tokens.email_verification_minutes == 1440
    assert config.tokens.password_reset_minutes == 60
    assert config.tokens.two_factor_minutes == 10
    assert config.mail.enabled is False
    assert config.security.rate_limit_max_requests == 20
    assert config.security.rate_limit_window_seconds == 900


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_ACCESS_EXPIRY", "5m")
    monkeypatch.setenv("FRONTEND_URL", "https://app.example.com/")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example.com, https://b.example.com")
    monkeypatch.setenv("SMTP_USER", "mailer")
    monkeypatch.setenv("SMTP_PASS", "app-password")

    config = AppConfig.from_env()

    assert config.auth.access_token_ttl_seconds == 300
    assert config.mail.frontend_url == "https://app.example.com"
    assert config.security.cors_allowed_origins == [
        "https://a.example.com",
        "https://b.example.com",
    ]
    assert config.mail.enabled is True


def test_production_requires_real_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("JWT_SECRET", raising=False)
    monkeypatch.delenv("JWT_REFRESH_SECRET", raising=False)

    with pytest.raises(ValueError, match="JWT_SECRET"):
        AppConfig.from_env()


def test_production_rejects_shared_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("JWT_SECRET", "same-value")
    monkeypatch.setenv("JWT_REFRESH_SECRET", "same-value")

    with pytest.raises(ValueError, match="must differ"):
        AppConfig.from_env()


def test_production_enables_secure_cookie(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("JWT_SECRET", "access-prod")
    monkeypatch.setenv("JWT_REFRESH_SECRET", "refresh-prod")
    monkeypatch.delenv("COOKIE_SECURE", raising=False)

    config = AppConfig.from_env()

    assert config.is_production
    assert config.auth.cookie_secure is True

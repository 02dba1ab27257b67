"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

DEV_ACCESS_SECRET = "dev-insecure-access-secret-change-me"
DEV_REFRESH_SECRET = "dev-insecure-refresh-secret-change-me"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """Parse ``"15m"``/``"7d"``/``"3600"`` style durations into seconds."""
    match = _DURATION_RE.match(value or "")
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    seconds = int(amount) * _DURATION_UNITS[unit]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AuthConfig:
    """Session signing and password hashing settings."""

    access_secret: str
    refresh_secret: str
    access_token_ttl_seconds: int
    refresh_token_ttl_seconds: int
    issuer: str
    password_hash_rounds: int
    cookie_secure: bool = False


@dataclass(frozen=True)
class TokenConfig:
    """Lifetimes of single-use tokens, in minutes."""

    email_verification_minutes: int = 24 * 60
    password_reset_minutes: int = 60
    two_factor_minutes: int = 10


@dataclass(frozen=True)
class MailConfig:
    """Outgoing mail relay settings; empty credentials disable sending."""

    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    mail_from: str
    mail_from_name: str
    frontend_url: str
    timeout_seconds: int = 30

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)


@dataclass(frozen=True)
class DatabaseConfig:
    """Storage locations for the credential and token stores."""

    sqlite_path: str
    mongodb_uri: str = ""
    mongodb_db: str = "event_planner"


@dataclass(frozen=True)
class LoggingConfig:
    """Structured logging configuration."""

    level: str


@dataclass(frozen=True)
class SecurityConfig:
    """API perimeter security settings."""

    cors_allowed_origins: list[str]
    request_max_bytes: int
    rate_limit_max_requests: int
    rate_limit_window_seconds: int


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    environment: str
    auth: AuthConfig
    tokens: TokenConfig
    mail: MailConfig
    database: DatabaseConfig
    logging: LoggingConfig
    security: SecurityConfig

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> None:
        """Refuse insecure secrets outside development."""
        if not self.is_production:
            return
        if self.auth.access_secret in {"", DEV_ACCESS_SECRET}:
            raise ValueError("JWT_SECRET must be set in production")
        if self.auth.refresh_secret in {"", DEV_REFRESH_SECRET}:
            raise ValueError("JWT_REFRESH_SECRET must be set in production")
        if self.auth.access_secret == self.auth.refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ")

    @staticmethod
    def from_env() -> "AppConfig":
        """Build app config from process environment."""
        environment = os.getenv("APP_ENV", "development").strip().lower() or "development"
        access_secret = os.getenv("JWT_SECRET", "").strip() or DEV_ACCESS_SECRET
        refresh_secret = os.getenv("JWT_REFRESH_SECRET", "").strip() or DEV_REFRESH_SECRET
        access_ttl = parse_duration(os.getenv("JWT_ACCESS_EXPIRY", "15m"))
        refresh_ttl = parse_duration(os.getenv("JWT_REFRESH_EXPIRY", "7d"))
        issuer = os.getenv("JWT_ISSUER", "event-planner").strip() or "event-planner"
        hash_rounds = int(os.getenv("PASSWORD_HASH_ROUNDS", "120000"))
        cookie_secure = _env_flag(
            "COOKIE_SECURE", "1" if environment == "production" else "0"
        )

        cors_allowed_origins = [
            origin.strip()
            for origin in os.getenv(
                "CORS_ALLOWED_ORIGINS", "http://localhost:5173"
            ).split(",")
            if origin.strip()
        ]

        config = AppConfig(
            environment=environment,
            auth=AuthConfig(
                access_secret=access_secret,
                refresh_secret=refresh_secret,
                access_token_ttl_seconds=access_ttl,
                refresh_token_ttl_seconds=refresh_ttl,
                issuer=issuer,
                password_hash_rounds=hash_rounds,
                cookie_secure=cookie_secure,
            ),
            tokens=TokenConfig(
                email_verification_minutes=int(
                    os.getenv("EMAIL_VERIFICATION_EXPIRY_MINUTES", "1440")
                ),
                password_reset_minutes=int(
                    os.getenv("PASSWORD_RESET_EXPIRY_MINUTES", "60")
                ),
                two_factor_minutes=int(os.getenv("TWO_FACTOR_EXPIRY_MINUTES", "10")),
            ),
            mail=MailConfig(
                smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com").strip(),
                smtp_port=int(os.getenv("SMTP_PORT", "587")),
                smtp_user=os.getenv("SMTP_USER", "").strip(),
                smtp_password=os.getenv("SMTP_PASS", "").strip(),
                mail_from=os.getenv("EMAIL_FROM", "noreply@example.com").strip(),
                mail_from_name=os.getenv("EMAIL_FROM_NAME", "Event Planner").strip(),
                frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173")
                .strip()
                .rstrip("/"),
            ),
            database=DatabaseConfig(
                sqlite_path=os.getenv("DATABASE_PATH", "runtime/event_planner.db").strip()
                or "runtime/event_planner.db",
                mongodb_uri=os.getenv("MONGODB_URI", "").strip(),
                mongodb_db=os.getenv("MONGODB_DB", "event_planner").strip()
                or "event_planner",
            ),
            logging=LoggingConfig(level=os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"),
            security=SecurityConfig(
                cors_allowed_origins=cors_allowed_origins,
                request_max_bytes=int(os.getenv("REQUEST_MAX_BYTES", str(1024 * 1024))),
                rate_limit_max_requests=int(
                    os.getenv("AUTH_RATE_LIMIT_MAX_REQUESTS", "20")
                ),
                rate_limit_window_seconds=int(
                    os.getenv("AUTH_RATE_LIMIT_WINDOW_SECONDS", "900")
                ),
            ),
        )
        config.validate()
        return config

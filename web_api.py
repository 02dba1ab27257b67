from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventplanner.api.contracts import ApiSuccessResponse, HealthData
from eventplanner.api.http_setup import register_exception_handlers, register_http_middleware
from eventplanner.auth.middleware import create_auth_middleware
from eventplanner.auth.rate_limiter import AuthRateLimiter
from eventplanner.auth.repository import UserRepository
from eventplanner.auth.router import create_auth_router
from eventplanner.auth.service import AuthService
from eventplanner.auth.sessions import SessionIssuer
from eventplanner.core.config import AppConfig
from eventplanner.core.database import Database
from eventplanner.core.logging import setup_logging
from eventplanner.core.mongo import connect_mongo
from eventplanner.mail.service import build_email_dispatcher
from eventplanner.tokens.repository import TokenRepository
from eventplanner.tokens.service import TokenService

load_dotenv()
LOGGER = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent


def _database_path(config: AppConfig) -> Path:
    path = Path(config.database.sqlite_path)
    return path if path.is_absolute() else (APP_ROOT / path).resolve()


def create_app(config: AppConfig | None = None) -> FastAPI:
    config = config or AppConfig.from_env()
    setup_logging(config.logging.level)

    app = FastAPI(title="Event Planner API", version="1.0.0")

    database = Database(_database_path(config))
    mongo_db = connect_mongo(config.database)
    users = UserRepository(database, mongo_db)
    tokens = TokenService(
        TokenRepository(database, mongo_db),
        otp_hash_rounds=config.auth.password_hash_rounds,
    )
    auth_service = AuthService(
        users=users,
        tokens=tokens,
        sessions=SessionIssuer(config.auth),
        mailer=build_email_dispatcher(config.mail, config.tokens),
        config=config.auth,
        token_config=config.tokens,
    )
    rate_limiter = AuthRateLimiter(
        database,
        max_requests=config.security.rate_limit_max_requests,
        window_seconds=config.security.rate_limit_window_seconds,
    )

    app.middleware("http")(create_auth_middleware(auth_service))
    register_http_middleware(app, config=config, logger=LOGGER)
    register_exception_handlers(
        app, logger=LOGGER, expose_internal_errors=not config.is_production
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    app.include_router(create_auth_router(auth_service, rate_limiter, config.auth))

    @app.get("/api/health", response_model=ApiSuccessResponse[HealthData])
    def health() -> ApiSuccessResponse[HealthData]:
        return ApiSuccessResponse[HealthData](data=HealthData(status="ok"))

    @app.on_event("shutdown")
    def close_database() -> None:
        database.close()

    LOGGER.info(
        "app_started",
        extra={"path": str(database.path), "subject": "mongo" if mongo_db is not None else "sqlite"},
    )
    return app


app = create_app()

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Coroutine, cast

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import Response

from eventplanner.api.http_setup import (
    format_validation_errors,
    register_exception_handlers,
    register_http_middleware,
)
from eventplanner.core.config import (
    AppConfig,
    DatabaseConfig,
    LoggingConfig,
    MailConfig,
    SecurityConfig,
    TokenConfig,
)
from eventplanner.core.errors import DomainError, ErrorKind
from tests.factories import auth_config

LOGGER = logging.getLogger(__name__)


def _config() -> AppConfig:
    return AppConfig(
        environment="development",
        auth=auth_config(),
        tokens=TokenConfig(),
        mail=MailConfig(
            smtp_host="smtp.example.com",
            smtp_port=587,
            smtp_user="",
            smtp_password="",
            mail_from="noreply@example.com",
            mail_from_name="Event Planner",
            frontend_url="http://localhost:5173",
        ),
        database=DatabaseConfig(sqlite_path="runtime/test.db"),
        logging=LoggingConfig(level="INFO"),
        security=SecurityConfig(
            cors_allowed_origins=["http://localhost:5173"],
            request_max_bytes=8,
            rate_limit_max_requests=20,
            rate_limit_window_seconds=900,
        ),
    )


def _request(path: str, method: str = "GET", headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    scope: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": b"",
        "root_path": "",
        "headers": headers or [],
        "client": ("127.0.0.1", 1234),
        "server": ("testserver", 80),
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, receive)


def _dispatch_by_name(app: FastAPI, name: str):
    for middleware in app.user_middleware:
        dispatch = middleware.kwargs.get("dispatch")
        if callable(dispatch) and getattr(dispatch, "__name__", "") == name:
            return dispatch
    raise AssertionError(f"Dispatch {name!r} not found")


def _resolve_response(result: Response | Awaitable[Response]) -> Response:
    if inspect.iscoroutine(result):
        return asyncio.run(cast(Coroutine[Any, Any, Response], result))
    return cast(Response, result)


def _app(*, expose_internal_errors: bool = True) -> FastAPI:
    app = FastAPI()
    register_http_middleware(app, config=_config(), logger=LOGGER)
    register_exception_handlers(
        app, logger=LOGGER, expose_internal_errors=expose_internal_errors
    )
    return app


def _body(response: Response) -> dict[str, Any]:
    return json.loads(bytes(response.body))


def test_http_setup_adds_security_headers_and_request_id() -> None:
    app = _app()
    dispatch = _dispatch_by_name(app, "request_logging_middleware")

    request = _request("/ok", headers=[(b"x-request-id", b"req-123")])

    async def call_next(_request: Request) -> Response:
        return Response(content="ok", status_code=200)

    response = asyncio.run(dispatch(request, call_next))
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"


def test_http_setup_generates_request_id_when_missing() -> None:
    app = _app()
    dispatch = _dispatch_by_name(app, "request_logging_middleware")

    async def call_next(_request: Request) -> Response:
        return Response(content="ok", status_code=200)

    response = asyncio.run(dispatch(_request("/ok"), call_next))
    assert len(response.headers["X-Request-ID"]) == 32


def test_http_setup_rejects_large_request_before_handler() -> None:
    app = _app()
    dispatch = _dispatch_by_name(app, "request_size_limit_middleware")
    request = _request("/echo", method="POST", headers=[(b"content-length", b"20")])

    async def call_next(_request: Request) -> Response:
        raise AssertionError("handler must not run")

    response = asyncio.run(dispatch(request, call_next))
    assert response.status_code == 413
    assert _body(response)["error"]["code"] == "REQUEST_TOO_LARGE"
    assert _body(response)["success"] is False


def test_http_setup_maps_domain_errors_to_status() -> None:
    app = _app()
    handler = app.exception_handlers[DomainError]

    response = _resolve_response(
        handler(_request("/api/auth/signup"), DomainError(ErrorKind.EMAIL_ALREADY_EXISTS, "Email already in use"))
    )

    assert response.status_code == 409
    assert _body(response) == {
        "success": False,
        "data": None,
        "error": {"code": "EMAIL_ALREADY_EXISTS", "message": "Email already in use"},
    }


def test_http_setup_serializes_http_exception_payload() -> None:
    app = _app()
    handler = app.exception_handlers[HTTPException]
    response: Response = _resolve_response(
        handler(
            _request("/api/auth/refresh"),
            HTTPException(
                status_code=401,
                detail={"code": "NO_REFRESH_TOKEN", "message": "Refresh token not found"},
            ),
        )
    )
    assert response.status_code == 401
    assert _body(response)["error"] == {
        "code": "NO_REFRESH_TOKEN",
        "message": "Refresh token not found",
    }


def test_http_setup_handles_unexpected_exceptions() -> None:
    app = _app()
    handler = app.exception_handlers[Exception]
    response: Response = _resolve_response(handler(_request("/boom"), RuntimeError("boom")))
    assert response.status_code == 500
    assert _body(response)["error"] == {"code": "INTERNAL_SERVER_ERROR", "message": "boom"}


def test_http_setup_hides_internal_error_details_in_production() -> None:
    app = _app(expose_internal_errors=False)
    handler = app.exception_handlers[Exception]
    response: Response = _resolve_response(
        handler(_request("/boom"), RuntimeError("db password is hunter2"))
    )
    assert response.status_code == 500
    assert "hunter2" not in bytes(response.body).decode("utf-8")


def test_http_setup_handles_validation_exception() -> None:
    app = _app()
    handler = app.exception_handlers[RequestValidationError]
    errors = [
        {"type": "missing", "loc": ("body", "email"), "msg": "Field required"},
        {
            "type": "value_error",
            "loc": ("body", "password"),
            "msg": "Value error, Password must be at least 8 characters long",
        },
    ]
    response: Response = _resolve_response(
        handler(_request("/validation"), RequestValidationError(errors))
    )
    assert response.status_code == 400
    assert _body(response)["error"] == {
        "code": "VALIDATION_ERROR",
        "message": "email is required, Password must be at least 8 characters long",
    }


def test_format_validation_errors_handles_bad_json() -> None:
    assert format_validation_errors(
        [{"type": "json_invalid", "loc": ("body", 12), "msg": "JSON decode error"}]
    ) == "Invalid JSON payload received"
    assert format_validation_errors([]) == "Invalid request"

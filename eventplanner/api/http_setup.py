"""HTTP middleware and exception handler wiring for FastAPI apps."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from eventplanner.api.errors import (
    STATUS_BY_KIND,
    ApiErrorCode,
    error_envelope,
    to_error_payload,
)
from eventplanner.core.config import AppConfig
from eventplanner.core.errors import DomainError
from eventplanner.core.logging import set_correlation_id, set_request_user

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "Content-Security-Policy": (
        "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
    ),
}

_VALUE_ERROR_PREFIX = "Value error, "
_EMAIL_FORMAT_PREFIX = "value is not a valid email address"
INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
_GENERIC_500_MESSAGE = "An unexpected error occurred"


def _describe_error(error: Any) -> str:
    kind = str(error.get("type", ""))
    if kind == "json_invalid":
        return "Invalid JSON payload received"
    if kind == "missing":
        path = [str(part) for part in error.get("loc", ()) if part != "body"]
        return f"{path[-1] if path else 'body'} is required"
    message = str(error.get("msg", "Invalid value"))
    if message.startswith(_EMAIL_FORMAT_PREFIX):
        return INVALID_EMAIL_MESSAGE
    return message.removeprefix(_VALUE_ERROR_PREFIX)


def format_validation_errors(errors: Sequence[Any]) -> str:
    """Join pydantic error entries into one human-readable message."""
    return ", ".join(_describe_error(error) for error in errors) or "Invalid request"


def _request_extra(request: Request, status_code: int, **fields: Any) -> dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
        **fields,
    }


def _declared_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length") or 0)
    except ValueError:
        return 0


def register_http_middleware(app: FastAPI, *, config: AppConfig, logger: Any) -> None:
    """Attach request-size, correlation-id and security-header middleware."""
    max_bytes = config.security.request_max_bytes

    @app.middleware("http")
    async def request_size_limit_middleware(request: Request, call_next):
        if _declared_length(request) > max_bytes:
            return JSONResponse(
                status_code=413,
                content=error_envelope(
                    ApiErrorCode.REQUEST_TOO_LARGE,
                    f"Request size exceeds configured limit ({max_bytes} bytes).",
                ),
            )
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-correlation-id")
            or uuid.uuid4().hex
        )
        set_correlation_id(request_id)
        set_request_user("")
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        response.headers["X-Request-ID"] = request_id
        logger.info("request_completed", extra=_request_extra(request, response.status_code))
        return response


def register_exception_handlers(
    app: FastAPI, *, logger: Any, expose_internal_errors: bool = True
) -> None:
    """Attach handlers that render every failure as the error envelope."""

    @app.exception_handler(DomainError)
    async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
        status_code = STATUS_BY_KIND.get(exc.kind, 500)
        logger.warning(
            "domain_error",
            extra=_request_extra(request, status_code, error_code=str(exc.kind)),
        )
        return JSONResponse(
            status_code=status_code,
            content=error_envelope(str(exc.kind), exc.message),
        )

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        payload = to_error_payload(exc.detail, exc.status_code)
        logger.warning(
            "http_exception",
            extra=_request_extra(request, exc.status_code, error_code=payload["code"]),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(payload["code"], payload["message"]),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        code = ApiErrorCode.VALIDATION_ERROR
        logger.warning(
            "validation_exception",
            extra=_request_extra(request, 400, error_code=str(code)),
        )
        return JSONResponse(
            status_code=400,
            content=error_envelope(code, format_validation_errors(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unexpected_exception", extra=_request_extra(request, 500))
        if expose_internal_errors:
            message = str(exc) or "Internal server error"
        else:
            message = _GENERIC_500_MESSAGE
        return JSONResponse(
            status_code=500,
            content=error_envelope(ApiErrorCode.INTERNAL_SERVER_ERROR, message),
        )

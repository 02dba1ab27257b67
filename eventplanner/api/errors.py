"""Shared API error codes, status mapping and envelope helpers."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from fastapi import HTTPException

from eventplanner.core.errors import ErrorKind


class ApiErrorCode(StrEnum):
    """Machine-readable API error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_OTP = "INVALID_OTP"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EMAIL_ALREADY_VERIFIED = "EMAIL_ALREADY_VERIFIED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    EMAIL_DELIVERY_FAILED = "EMAIL_DELIVERY_FAILED"
    UNAUTHORIZED = "UNAUTHORIZED"
    NO_REFRESH_TOKEN = "NO_REFRESH_TOKEN"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    REQUEST_TOO_LARGE = "REQUEST_TOO_LARGE"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.EMAIL_ALREADY_EXISTS: 409,
    ErrorKind.INVALID_TOKEN: 400,
    ErrorKind.INVALID_OTP: 400,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.EMAIL_ALREADY_VERIFIED: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INVALID_REFRESH_TOKEN: 401,
    ErrorKind.EMAIL_DELIVERY_FAILED: 502,
}


class ApiError(HTTPException):
    """HTTP exception carrying stable API error envelope."""

    def __init__(
        self, *, status_code: int, error_code: ApiErrorCode, message: str
    ) -> None:
        """Build an HTTP exception with standard detail structure."""
        super().__init__(
            status_code=status_code,
            detail={"code": str(error_code), "message": message},
        )


def to_error_payload(detail: Any, status_code: int) -> dict[str, str]:
    """Normalize HTTP exception detail into ``{code, message}``."""
    if isinstance(detail, dict):
        code = str(detail.get("code") or f"HTTP_{status_code}")
        message = str(detail.get("message") or detail.get("detail") or "HTTP error")
        return {"code": code, "message": message}
    if status_code == 404:
        return {"code": str(ApiErrorCode.NOT_FOUND), "message": str(detail or "Not found")}
    return {
        "code": f"HTTP_{status_code}",
        "message": str(detail or "HTTP error"),
    }


def error_envelope(code: str, message: str) -> dict[str, Any]:
    """Body of every failed response."""
    return {"success": False, "data": None, "error": {"code": code, "message": message}}

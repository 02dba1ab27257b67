"""Domain error kinds raised by services and mapped to HTTP at the boundary."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Stable machine-readable failure kinds for auth operations."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_OTP = "INVALID_OTP"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EMAIL_ALREADY_VERIFIED = "EMAIL_ALREADY_VERIFIED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    EMAIL_DELIVERY_FAILED = "EMAIL_DELIVERY_FAILED"


class DomainError(Exception):
    """Failure of a domain operation, tagged with its ``ErrorKind``."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"DomainError(kind={self.kind!s}, message={self.message!r})"

"""HTTP middleware that enforces bearer auth on protected API routes."""

from __future__ import annotations

from collections.abc import Collection
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse

from eventplanner.api.errors import ApiErrorCode, error_envelope
from eventplanner.auth.service import AuthService
from eventplanner.core.errors import DomainError
from eventplanner.core.logging import set_request_user

PROTECTED_PATHS = frozenset({"/api/auth/2fa", "/api/auth/me"})


def extract_bearer_token(authorization: str | None) -> str:
    """Extract bearer token from authorization header value."""
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def create_auth_middleware(
    service: AuthService, protected_paths: Collection[str] = PROTECTED_PATHS
) -> Callable:
    """Create middleware function that validates access tokens on protected paths."""

    async def auth_middleware(request: Request, call_next: Callable):
        """Attach the caller's claims to request state or reject with 401."""
        if request.url.path.rstrip("/") not in protected_paths:
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization"))
        if not token:
            return JSONResponse(
                status_code=401,
                content=error_envelope(ApiErrorCode.UNAUTHORIZED, "Authentication required"),
            )

        try:
            claims = service.authenticate_access_token(token)
        except DomainError as exc:
            return JSONResponse(
                status_code=401,
                content=error_envelope(str(exc.kind), exc.message),
            )

        request.state.user = claims
        set_request_user(claims.user_id)
        return await call_next(request)

    return auth_middleware

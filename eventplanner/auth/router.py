"""Authentication API router."""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Request, Response

from eventplanner.api.contracts import (
    ApiErrorResponse,
    ApiSuccessResponse,
    AuthData,
    MessageData,
    TwoFactorChallengeData,
    UserData,
)
from eventplanner.api.errors import ApiError, ApiErrorCode
from eventplanner.auth.models import (
    AuthResult,
    EmailRequest,
    LoginRequest,
    MessageResult,
    ResetPasswordRequest,
    SignupRequest,
    ToggleTwoFactorRequest,
    VerifyEmailRequest,
    VerifyTwoFactorRequest,
)
from eventplanner.auth.rate_limiter import AuthRateLimiter
from eventplanner.auth.service import AuthService
from eventplanner.core.config import AuthConfig

REFRESH_COOKIE_NAME = "refreshToken"
REFRESH_COOKIE_PARAM = Cookie(default=None, alias=REFRESH_COOKIE_NAME)

_ERRORS_400 = {400: {"model": ApiErrorResponse}}
_ERRORS_401 = {401: {"model": ApiErrorResponse}}
_ERRORS_429 = {429: {"model": ApiErrorResponse}}


def set_refresh_cookie(response: Response, token: str, config: AuthConfig) -> None:
    """Hand the refresh token to the browser as an HttpOnly cookie."""
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token,
        max_age=config.refresh_token_ttl_seconds,
        path="/",
        secure=config.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def clear_refresh_cookie(response: Response, config: AuthConfig) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        path="/",
        secure=config.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def _client_ip(request: Request) -> str:
    return (request.client.host if request.client else "") or "unknown"


def create_auth_router(
    service: AuthService, rate_limiter: AuthRateLimiter, config: AuthConfig
) -> APIRouter:
    """Build authentication router for the account and session endpoints."""
    router = APIRouter(prefix="/api/auth", tags=["auth"])

    def _session_response(
        result: AuthResult, response: Response
    ) -> ApiSuccessResponse[AuthData]:
        set_refresh_cookie(response, result.session.refresh_token, config)
        return ApiSuccessResponse[AuthData](
            data=AuthData(user=result.user, access_token=result.session.access_token)
        )

    def _message_response(result: MessageResult) -> ApiSuccessResponse[MessageData]:
        return ApiSuccessResponse[MessageData](data=MessageData(message=result.message))

    @router.post(
        "/signup",
        status_code=201,
        response_model=ApiSuccessResponse[AuthData],
        responses={**_ERRORS_400, 409: {"model": ApiErrorResponse}, **_ERRORS_429},
    )
    def signup(
        req: SignupRequest, request: Request, response: Response
    ) -> ApiSuccessResponse[AuthData]:
        """Register an account and start a session right away."""
        rate_limiter.hit("signup", _client_ip(request))
        return _session_response(service.signup(req), response)

    @router.post(
        "/login",
        response_model=ApiSuccessResponse[AuthData | TwoFactorChallengeData],
        responses={**_ERRORS_400, **_ERRORS_401, **_ERRORS_429},
    )
    def login(
        req: LoginRequest, request: Request, response: Response
    ) -> ApiSuccessResponse[AuthData | TwoFactorChallengeData]:
        """Authenticate with credentials; 2FA accounts get a challenge instead."""
        rate_limiter.hit("login", _client_ip(request))
        result = service.login(req)
        if isinstance(result, AuthResult):
            return _session_response(result, response)
        return ApiSuccessResponse[AuthData | TwoFactorChallengeData](
            data=TwoFactorChallengeData(user_id=result.user_id)
        )

    @router.post(
        "/verify-2fa",
        response_model=ApiSuccessResponse[AuthData],
        responses={**_ERRORS_400, 404: {"model": ApiErrorResponse}, **_ERRORS_429},
    )
    def verify_two_factor(
        req: VerifyTwoFactorRequest, response: Response
    ) -> ApiSuccessResponse[AuthData]:
        rate_limiter.hit("verify-2fa", req.user_id)
        return _session_response(service.verify_two_factor(req.user_id, req.otp), response)

    @router.post(
        "/refresh",
        response_model=ApiSuccessResponse[AuthData],
        responses=_ERRORS_401,
    )
    def refresh(
        response: Response, refresh_token: str | None = REFRESH_COOKIE_PARAM
    ) -> ApiSuccessResponse[AuthData]:
        """Issue a new session pair from the refresh cookie."""
        if not refresh_token:
            raise ApiError(
                status_code=401,
                error_code=ApiErrorCode.NO_REFRESH_TOKEN,
                message="Refresh token not found",
            )
        return _session_response(service.refresh_access_token(refresh_token), response)

    @router.post("/logout", response_model=ApiSuccessResponse[MessageData])
    def logout(response: Response) -> ApiSuccessResponse[MessageData]:
        clear_refresh_cookie(response, config)
        return _message_response(service.logout())

    @router.post(
        "/verify-email",
        response_model=ApiSuccessResponse[MessageData],
        responses=_ERRORS_400,
    )
    def verify_email(req: VerifyEmailRequest) -> ApiSuccessResponse[MessageData]:
        return _message_response(service.verify_email(req.token))

    @router.post(
        "/resend-verification",
        response_model=ApiSuccessResponse[MessageData],
        responses=_ERRORS_400,
    )
    def resend_verification(req: EmailRequest) -> ApiSuccessResponse[MessageData]:
        return _message_response(service.resend_verification_email(req.email))

    @router.post(
        "/forgot-password",
        response_model=ApiSuccessResponse[MessageData],
        responses=_ERRORS_400,
    )
    def forgot_password(req: EmailRequest) -> ApiSuccessResponse[MessageData]:
        return _message_response(service.forgot_password(req.email))

    @router.post(
        "/reset-password",
        response_model=ApiSuccessResponse[MessageData],
        responses=_ERRORS_400,
    )
    def reset_password(req: ResetPasswordRequest) -> ApiSuccessResponse[MessageData]:
        return _message_response(service.reset_password(req.token, req.new_password))

    @router.post(
        "/2fa",
        response_model=ApiSuccessResponse[MessageData],
        responses={**_ERRORS_400, **_ERRORS_401},
    )
    def toggle_two_factor(
        req: ToggleTwoFactorRequest, request: Request
    ) -> ApiSuccessResponse[MessageData]:
        """Enable or disable emailed login codes for the authenticated user."""
        claims = request.state.user
        return _message_response(service.enable_two_factor(claims.user_id, req.enable))

    @router.get(
        "/me",
        response_model=ApiSuccessResponse[UserData],
        responses={**_ERRORS_401, 404: {"model": ApiErrorResponse}},
    )
    def me(request: Request) -> ApiSuccessResponse[UserData]:
        """Return the authenticated user's current profile."""
        claims = request.state.user
        return ApiSuccessResponse[UserData](
            data=UserData(user=service.get_profile(claims.user_id))
        )

    return router

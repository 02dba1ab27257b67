"""Public API response contracts."""

from eventplanner.api.contracts.models import (
    ApiErrorBody,
    ApiErrorResponse,
    ApiSuccessResponse,
    AuthData,
    HealthData,
    MessageData,
    TwoFactorChallengeData,
    UserData,
)

__all__ = [
    "ApiErrorBody",
    "ApiErrorResponse",
    "ApiSuccessResponse",
    "AuthData",
    "HealthData",
    "MessageData",
    "TwoFactorChallengeData",
    "UserData",
]

"""Pydantic API response models used in OpenAPI contracts."""

from __future__ import annotations

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from eventplanner.auth.models import CamelModel, PublicUser

DataT = TypeVar("DataT")


class ApiErrorBody(BaseModel):
    """Error part of the response envelope."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")


class ApiErrorResponse(BaseModel):
    """Stable envelope for failed API responses."""

    success: Literal[False] = False
    data: None = None
    error: ApiErrorBody


class ApiSuccessResponse(BaseModel, Generic[DataT]):
    """Stable envelope for successful API responses."""

    success: Literal[True] = True
    data: DataT
    error: None = None


class HealthData(BaseModel):
    """Health check payload."""

    status: Literal["ok"]


class AuthData(CamelModel):
    """Authenticated profile plus the in-memory access token."""

    user: PublicUser
    access_token: str


class TwoFactorChallengeData(CamelModel):
    """Login paused for the emailed one-time code; no tokens yet."""

    requires_two_factor: Literal[True] = True
    user_id: str


class UserData(CamelModel):
    """Current user profile payload."""

    user: PublicUser


class MessageData(BaseModel):
    """Payload that only carries a message."""

    message: str

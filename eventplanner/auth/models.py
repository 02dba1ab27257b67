"""Pydantic models for users, auth request payloads and service results."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

_PASSWORD_CLASSES_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
_OTP_RE = re.compile(r"^\d{6}$")


def normalize_email(value: str) -> str:
    """Canonical form used for lookups and uniqueness."""
    return value.strip().lower()


def _prepare_email(value: Any) -> str:
    """Trim and lower-case ahead of ``EmailStr`` format validation."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Please enter your email address")
    email = normalize_email(value)
    if len(email) > 255:
        raise ValueError("Email is too long (max 255 characters)")
    return email


def _validate_new_password(value: Any) -> str:
    if not isinstance(value, str) or len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if len(value) > 128:
        raise ValueError("Password is too long (max 128 characters)")
    if not _PASSWORD_CLASSES_RE.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, "
            "one lowercase letter, and one number"
        )
    return value


class User(BaseModel):
    """Persisted user record."""

    user_id: str
    name: str
    email: str
    password_hash: str
    is_email_verified: bool = False
    two_factor_enabled: bool = False
    created_at: datetime
    updated_at: datetime

    def to_public(self) -> "PublicUser":
        return PublicUser(
            id=self.user_id,
            name=self.name,
            email=self.email,
            is_email_verified=self.is_email_verified,
            two_factor_enabled=self.two_factor_enabled,
        )


class CamelModel(BaseModel):
    """Base for wire models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PublicUser(CamelModel):
    """User profile safe to return to clients."""

    id: str
    name: str
    email: str
    is_email_verified: bool
    two_factor_enabled: bool


class SignupRequest(CamelModel):
    """Signup request payload."""

    name: str
    email: EmailStr
    password: str

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Please enter your name")
        name = value.strip()
        if len(name) > 255:
            raise ValueError("Name is too long (max 255 characters)")
        return name

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        return _prepare_email(value)

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: Any) -> str:
        return _validate_new_password(value)


class LoginRequest(CamelModel):
    """Login request payload."""

    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        return _prepare_email(value)

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise ValueError("Please enter your password")
        return value


class EmailRequest(CamelModel):
    """Payload carrying only an email (resend verification, forgot password)."""

    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        return _prepare_email(value)


class VerifyEmailRequest(CamelModel):
    """Email verification payload."""

    token: str

    @field_validator("token", mode="before")
    @classmethod
    def _check_token(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Verification token is missing")
        return value.strip()


class ResetPasswordRequest(CamelModel):
    """Password reset payload."""

    token: str
    new_password: str

    @field_validator("token", mode="before")
    @classmethod
    def _check_token(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Reset token is missing")
        return value.strip()

    @field_validator("new_password", mode="before")
    @classmethod
    def _check_password(cls, value: Any) -> str:
        return _validate_new_password(value)


class VerifyTwoFactorRequest(CamelModel):
    """Second login step: user id from the challenge plus the emailed code."""

    user_id: str
    otp: str

    @field_validator("user_id", mode="before")
    @classmethod
    def _check_user_id(cls, value: Any) -> str:
        try:
            return str(uuid.UUID(str(value)))
        except ValueError as exc:
            raise ValueError("Invalid session. Please try logging in again.") from exc

    @field_validator("otp", mode="before")
    @classmethod
    def _check_otp(cls, value: Any) -> str:
        if not isinstance(value, str) or not _OTP_RE.match(value):
            raise ValueError("Please enter the 6-digit verification code")
        return value


class ToggleTwoFactorRequest(CamelModel):
    """Enable or disable two-factor login for the caller."""

    enable: bool = Field(description="True to enable, false to disable")

    @field_validator("enable", mode="before")
    @classmethod
    def _check_enable(cls, value: Any) -> bool:
        if not isinstance(value, bool):
            raise ValueError("Please specify whether to enable or disable 2FA")
        return value


@dataclass(frozen=True)
class SessionPair:
    """Signed access/refresh tokens issued together."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class SessionClaims:
    """Verified claims of an access or refresh token."""

    user_id: str
    email: str
    name: str
    token_type: str
    jti: str
    expires_at: int


@dataclass(frozen=True)
class AuthResult:
    """Successful authentication: profile plus a fresh session pair."""

    user: PublicUser
    session: SessionPair


@dataclass(frozen=True)
class TwoFactorChallenge:
    """Login paused until the emailed code is verified."""

    user_id: str


@dataclass(frozen=True)
class MessageResult:
    """Operation result that only carries a human-readable message."""

    message: str

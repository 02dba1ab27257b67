"""Authentication service: signup, login with optional 2FA, sessions and recovery."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from functools import partial
from typing import Callable

from eventplanner.auth.models import (
    AuthResult,
    LoginRequest,
    MessageResult,
    PublicUser,
    SessionClaims,
    SignupRequest,
    TwoFactorChallenge,
    User,
    normalize_email,
)
from eventplanner.auth.repository import DuplicateEmailError, UserRepository
from eventplanner.auth.sessions import SessionIssuer
from eventplanner.core.config import AuthConfig, TokenConfig
from eventplanner.core.database import utc_now
from eventplanner.core.errors import DomainError, ErrorKind
from eventplanner.core.security import hash_password, verify_password
from eventplanner.mail.service import EmailDeliveryError, EmailDispatcher
from eventplanner.tokens.models import TokenType
from eventplanner.tokens.service import INVALID_TOKEN_MESSAGE, TokenService

LOGGER = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
RESEND_VERIFICATION_MESSAGE = "If the email exists, a verification link has been sent"
FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent"


class AuthService:
    """Orchestrates the credential store, token service, sessions and mailer."""

    def __init__(
        self,
        *,
        users: UserRepository,
        tokens: TokenService,
        sessions: SessionIssuer,
        mailer: EmailDispatcher,
        config: AuthConfig,
        token_config: TokenConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._sessions = sessions
        self._mailer = mailer
        self._config = config
        self._token_config = token_config
        self._clock = clock
        # Compared against on unknown emails so login timing is uniform.
        self._dummy_hash = hash_password(uuid.uuid4().hex, config.password_hash_rounds)

    def signup(self, req: SignupRequest) -> AuthResult:
        """Create an unverified account, send the verification email, start a session."""
        email = normalize_email(req.email)
        if self._users.get_by_email(email) is not None:
            raise DomainError(ErrorKind.EMAIL_ALREADY_EXISTS, "Email already in use")

        now = self._clock()
        candidate = User(
            user_id=str(uuid.uuid4()),
            name=req.name,
            email=email,
            password_hash=hash_password(req.password, self._config.password_hash_rounds),
            created_at=now,
            updated_at=now,
        )
        try:
            user = self._users.create(candidate)
        except DuplicateEmailError as exc:
            raise DomainError(ErrorKind.EMAIL_ALREADY_EXISTS, "Email already in use") from exc

        issued = self._tokens.create_token(
            user.user_id,
            TokenType.EMAIL_VERIFICATION,
            self._token_config.email_verification_minutes,
        )
        self._send_best_effort(
            "verification",
            user,
            partial(self._mailer.send_verification_email, user.email, user.name, issued.plaintext),
        )

        LOGGER.info("user_signed_up", extra={"user_id": user.user_id})
        return self._authenticated(user)

    def login(self, req: LoginRequest) -> AuthResult | TwoFactorChallenge:
        """Check credentials; either start a session or issue a 2FA challenge."""
        user = self._users.get_by_email(req.email)
        if user is None:
            verify_password(req.password, self._dummy_hash)
            raise DomainError(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)
        if not verify_password(req.password, user.password_hash):
            raise DomainError(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        if user.two_factor_enabled:
            issued = self._tokens.create_token(
                user.user_id, TokenType.TWO_FACTOR, self._token_config.two_factor_minutes
            )
            try:
                self._mailer.send_two_factor_otp_email(user.email, user.name, issued.plaintext)
            except EmailDeliveryError as exc:
                LOGGER.error(
                    "two_factor_email_failed", extra={"user_id": user.user_id}, exc_info=True
                )
                raise DomainError(
                    ErrorKind.EMAIL_DELIVERY_FAILED,
                    "Could not send the verification code. Please try again later.",
                ) from exc
            LOGGER.info("two_factor_challenge_issued", extra={"user_id": user.user_id})
            return TwoFactorChallenge(user_id=user.user_id)

        LOGGER.info("login_succeeded", extra={"user_id": user.user_id})
        return self._authenticated(user)

    def verify_two_factor(self, user_id: str, otp: str) -> AuthResult:
        """Complete a 2FA-gated login with the emailed code."""
        user = self._require_user(user_id)
        token = self._tokens.verify_otp_for_user(user.user_id, otp)
        self._tokens.consume_token(token.token_id)
        LOGGER.info("two_factor_verified", extra={"user_id": user.user_id})
        return self._authenticated(user)

    def refresh_access_token(self, refresh_token: str) -> AuthResult:
        """Rotate the session pair from a valid refresh token.

        Claims are not trusted beyond the subject: the profile is re-read so a
        removed account cannot be refreshed back to life.
        """
        try:
            claims = self._sessions.decode_refresh(refresh_token)
        except ValueError as exc:
            raise DomainError(
                ErrorKind.INVALID_REFRESH_TOKEN, "Invalid or expired refresh token"
            ) from exc

        user = self._users.get_by_id(claims.user_id)
        if user is None:
            raise DomainError(
                ErrorKind.INVALID_REFRESH_TOKEN, "Invalid or expired refresh token"
            )
        return self._authenticated(user)

    def logout(self) -> MessageResult:
        """Sessions are stateless; the caller only drops the refresh cookie."""
        return MessageResult(message="Logged out successfully")

    def verify_email(self, token: str) -> MessageResult:
        auth_token = self._tokens.verify_token(token, TokenType.EMAIL_VERIFICATION)
        user = self._require_user(auth_token.user_id)
        if user.is_email_verified:
            raise DomainError(ErrorKind.EMAIL_ALREADY_VERIFIED, "Email is already verified")

        with self._users.atomic():
            self._tokens.consume_token(auth_token.token_id)
            self._users.set_email_verified(user.user_id, True, self._clock())

        LOGGER.info("email_verified", extra={"user_id": user.user_id})
        return MessageResult(message="Email verified successfully")

    def resend_verification_email(self, email: str) -> MessageResult:
        user = self._users.get_by_email(email)
        if user is None:
            return MessageResult(message=RESEND_VERIFICATION_MESSAGE)
        if user.is_email_verified:
            raise DomainError(ErrorKind.EMAIL_ALREADY_VERIFIED, "Email is already verified")

        issued = self._tokens.create_token(
            user.user_id,
            TokenType.EMAIL_VERIFICATION,
            self._token_config.email_verification_minutes,
        )
        self._send_best_effort(
            "verification",
            user,
            partial(self._mailer.send_verification_email, user.email, user.name, issued.plaintext),
        )
        return MessageResult(message=RESEND_VERIFICATION_MESSAGE)

    def forgot_password(self, email: str) -> MessageResult:
        """Same answer whether or not the account exists."""
        user = self._users.get_by_email(email)
        if user is None:
            return MessageResult(message=FORGOT_PASSWORD_MESSAGE)

        issued = self._tokens.create_token(
            user.user_id,
            TokenType.PASSWORD_RESET,
            self._token_config.password_reset_minutes,
        )
        self._send_best_effort(
            "password_reset",
            user,
            partial(self._mailer.send_password_reset_email, user.email, user.name, issued.plaintext),
        )
        LOGGER.info("password_reset_requested", extra={"user_id": user.user_id})
        return MessageResult(message=FORGOT_PASSWORD_MESSAGE)

    def reset_password(self, token: str, new_password: str) -> MessageResult:
        auth_token = self._tokens.verify_token(token, TokenType.PASSWORD_RESET)
        user = self._users.get_by_id(auth_token.user_id)
        if user is None:
            raise DomainError(ErrorKind.INVALID_TOKEN, INVALID_TOKEN_MESSAGE)

        password_hash = hash_password(new_password, self._config.password_hash_rounds)
        with self._users.atomic():
            self._tokens.consume_token(auth_token.token_id)
            self._users.set_password_hash(user.user_id, password_hash, self._clock())

        LOGGER.info("password_reset", extra={"user_id": user.user_id})
        return MessageResult(message="Password reset successfully")

    def enable_two_factor(self, user_id: str, enable: bool) -> MessageResult:
        """Idempotent toggle; pending codes are left untouched."""
        user = self._require_user(user_id)
        if user.two_factor_enabled != enable:
            self._users.set_two_factor_enabled(user.user_id, enable, self._clock())
            LOGGER.info(
                "two_factor_enabled" if enable else "two_factor_disabled",
                extra={"user_id": user.user_id},
            )
        return MessageResult(
            message=(
                "Two-factor authentication enabled"
                if enable
                else "Two-factor authentication disabled"
            )
        )

    def get_profile(self, user_id: str) -> PublicUser:
        return self._require_user(user_id).to_public()

    def authenticate_access_token(self, token: str) -> SessionClaims:
        """Validate a bearer access token."""
        try:
            return self._sessions.decode_access(token)
        except ValueError as exc:
            raise DomainError(ErrorKind.INVALID_TOKEN, INVALID_TOKEN_MESSAGE) from exc

    def _require_user(self, user_id: str) -> User:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise DomainError(ErrorKind.USER_NOT_FOUND, "User not found")
        return user

    def _authenticated(self, user: User) -> AuthResult:
        return AuthResult(user=user.to_public(), session=self._sessions.issue_pair(user))

    def _send_best_effort(self, kind: str, user: User, send: Callable[[], None]) -> None:
        """Deliver an email whose failure must not fail the surrounding operation."""
        try:
            send()
        except EmailDeliveryError:
            LOGGER.exception(
                "email_delivery_failed", extra={"user_id": user.user_id, "subject": kind}
            )

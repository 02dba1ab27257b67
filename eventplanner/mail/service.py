"""Email dispatch over SMTP, with a logging fallback when SMTP is unconfigured."""

from __future__ import annotations

import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol

from eventplanner.core.config import MailConfig, TokenConfig
from eventplanner.mail.templates import (
    EmailMessage,
    password_reset_email,
    two_factor_email,
    verification_email,
)

LOGGER = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """The mail relay could not accept a message."""


class EmailDispatcher(Protocol):
    def send_verification_email(self, to: str, name: str, token: str) -> None: ...

    def send_password_reset_email(self, to: str, name: str, token: str) -> None: ...

    def send_two_factor_otp_email(self, to: str, name: str, otp: str) -> None: ...


class _TemplatedDispatcher(ABC):
    """Renders account emails and hands them to ``_deliver``."""

    def __init__(self, mail: MailConfig, tokens: TokenConfig) -> None:
        self._mail = mail
        self._tokens = tokens

    def send_verification_email(self, to: str, name: str, token: str) -> None:
        self._deliver(
            verification_email(
                to,
                name,
                token,
                frontend_url=self._mail.frontend_url,
                expires_minutes=self._tokens.email_verification_minutes,
            )
        )

    def send_password_reset_email(self, to: str, name: str, token: str) -> None:
        self._deliver(
            password_reset_email(
                to,
                name,
                token,
                frontend_url=self._mail.frontend_url,
                expires_minutes=self._tokens.password_reset_minutes,
            )
        )

    def send_two_factor_otp_email(self, to: str, name: str, otp: str) -> None:
        self._deliver(
            two_factor_email(to, name, otp, expires_minutes=self._tokens.two_factor_minutes)
        )

    @abstractmethod
    def _deliver(self, message: EmailMessage) -> None: ...


class SmtpEmailDispatcher(_TemplatedDispatcher):
    """Send HTML mail through an authenticated STARTTLS relay."""

    def _deliver(self, message: EmailMessage) -> None:
        msg = MIMEText(message.html, "html", "utf-8")
        msg["Subject"] = message.subject
        msg["From"] = formataddr((self._mail.mail_from_name, self._mail.mail_from))
        msg["To"] = message.to

        try:
            with smtplib.SMTP(
                self._mail.smtp_host,
                self._mail.smtp_port,
                timeout=self._mail.timeout_seconds,
            ) as server:
                server.starttls()
                server.login(self._mail.smtp_user, self._mail.smtp_password)
                server.sendmail(self._mail.mail_from, [message.to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(
                f"Could not send '{message.subject}' to {message.to}: {exc}"
            ) from exc

        LOGGER.info("email_sent", extra={"subject": message.subject})


class LoggingEmailDispatcher(_TemplatedDispatcher):
    """No-op dispatcher: records that an email would have been sent."""

    def _deliver(self, message: EmailMessage) -> None:
        LOGGER.warning(
            "email_skipped", extra={"subject": message.subject}
        )


def build_email_dispatcher(mail: MailConfig, tokens: TokenConfig) -> EmailDispatcher:
    """Pick the SMTP dispatcher when credentials are configured."""
    if mail.enabled:
        return SmtpEmailDispatcher(mail, tokens)
    LOGGER.warning("smtp_not_configured_emails_disabled")
    return LoggingEmailDispatcher(mail, tokens)

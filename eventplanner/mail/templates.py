"""HTML bodies for account emails."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from urllib.parse import urlencode

_BUTTON_STYLE = (
    "background-color: #1677FF; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block;"
)
_FOOTNOTE_STYLE = "color: #9CA3AF; font-size: 14px; margin-top: 30px;"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


def describe_minutes(minutes: int) -> str:
    """Render a lifetime like ``1440`` as ``24 hours``."""
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def _link(frontend_url: str, path: str, token: str) -> str:
    return f"{frontend_url}{path}?{urlencode({'token': token})}"


def _wrap(body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{body}</div>"
    )


def verification_email(
    to: str, name: str, token: str, *, frontend_url: str, expires_minutes: int
) -> EmailMessage:
    url = escape(_link(frontend_url, "/verify-email", token))
    body = (
        f"<h2>Welcome, {escape(name)}!</h2>"
        "<p>Thank you for signing up. Please verify your email address by "
        "clicking the button below:</p>"
        f'<p style="margin: 30px 0;"><a href="{url}" style="{_BUTTON_STYLE}">Verify Email</a></p>'
        f'<p style="{_FOOTNOTE_STYLE}">This link will expire in '
        f"{describe_minutes(expires_minutes)}. If you didn't create an account, "
        "you can safely ignore this email.</p>"
    )
    return EmailMessage(to=to, subject="Verify Your Email Address", html=_wrap(body))


def password_reset_email(
    to: str, name: str, token: str, *, frontend_url: str, expires_minutes: int
) -> EmailMessage:
    url = escape(_link(frontend_url, "/reset-password", token))
    body = (
        f"<h2>Hello, {escape(name)}</h2>"
        "<p>We received a request to reset your password. Click the button "
        "below to create a new password:</p>"
        f'<p style="margin: 30px 0;"><a href="{url}" style="{_BUTTON_STYLE}">Reset Password</a></p>'
        f'<p style="{_FOOTNOTE_STYLE}">This link will expire in '
        f"{describe_minutes(expires_minutes)}. If you didn't request a password "
        "reset, you can safely ignore this email.</p>"
    )
    return EmailMessage(to=to, subject="Reset Your Password", html=_wrap(body))


def two_factor_email(
    to: str, name: str, otp: str, *, expires_minutes: int
) -> EmailMessage:
    body = (
        f"<h2>Hello, {escape(name)}</h2>"
        "<p>Your verification code for logging in is:</p>"
        '<p style="font-size: 32px; font-weight: bold; letter-spacing: 8px; '
        f'color: #1677FF; margin: 30px 0; text-align: center;">{escape(otp)}</p>'
        f'<p style="{_FOOTNOTE_STYLE}">This code will expire in '
        f"{describe_minutes(expires_minutes)}. If you didn't attempt to log in, "
        "please secure your account immediately.</p>"
    )
    return EmailMessage(to=to, subject="Your Login Verification Code", html=_wrap(body))

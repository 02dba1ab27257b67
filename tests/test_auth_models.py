from __future__ import annotations

import pytest
from pydantic import ValidationError

from eventplanner.api.http_setup import format_validation_errors
from eventplanner.auth.models import EmailRequest, LoginRequest, SignupRequest
from tests.factories import STRONG_PASSWORD

MALFORMED_EMAILS = [
    "ann@.x.com",
    "ann@x..com",
    "ann@-x-.com",
    "ann@x.c_m",
    "ann@x",
    "ann@",
    "@x.com",
    "ann",
    "ann smith@x.com",
]


def test_signup_rejects_malformed_emails() -> None:
    accepted = []
    for email in MALFORMED_EMAILS:
        try:
            SignupRequest(name="Ann", email=email, password=STRONG_PASSWORD)
        except ValidationError:
            continue
        accepted.append(email)

    assert accepted == []


def test_malformed_email_renders_friendly_message() -> None:
    with pytest.raises(ValidationError) as excinfo:
        LoginRequest(email="ann@x..com", password="whatever")

    assert format_validation_errors(excinfo.value.errors()) == (
        "Please enter a valid email address"
    )


def test_email_is_trimmed_and_lowercased() -> None:
    request = EmailRequest(email="  Ann.Smith@Example.COM ")

    assert request.email == "ann.smith@example.com"


def test_blank_and_oversized_emails_keep_their_messages() -> None:
    with pytest.raises(ValidationError) as blank:
        EmailRequest(email="   ")
    with pytest.raises(ValidationError) as too_long:
        EmailRequest(email="a" * 250 + "@example.com")

    assert format_validation_errors(blank.value.errors()) == "Please enter your email address"
    assert format_validation_errors(too_long.value.errors()) == (
        "Email is too long (max 255 characters)"
    )

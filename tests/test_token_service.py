from __future__ import annotations

from pathlib import Path

import pytest

from eventplanner.core.errors import DomainError, ErrorKind
from eventplanner.tokens.models import TokenType
from tests.factories import build_services, insert_user


def test_create_token_stores_only_the_hash(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)

    issued = bundle.tokens.create_token(user.user_id, TokenType.PASSWORD_RESET, 60)

    stored = bundle.token_repo.list_for_user(user.user_id, TokenType.PASSWORD_RESET)
    assert len(issued.plaintext) == 64
    assert [token.token_id for token in stored] == [issued.token.token_id]
    assert stored[0].token_hash != issued.plaintext
    assert stored[0].used_at is None


def test_create_token_rejects_non_positive_ttl(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)

    with pytest.raises(ValueError):
        bundle.tokens.create_token(user.user_id, TokenType.PASSWORD_RESET, 0)


def test_new_token_invalidates_previous_of_same_type(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)

    first = bundle.tokens.create_token(user.user_id, TokenType.EMAIL_VERIFICATION, 1440)
    bundle.tokens.create_token(user.user_id, TokenType.PASSWORD_RESET, 60)
    second = bundle.tokens.create_token(user.user_id, TokenType.EMAIL_VERIFICATION, 1440)

    with pytest.raises(DomainError) as exc:
        bundle.tokens.verify_token(first.plaintext, TokenType.EMAIL_VERIFICATION)
    assert exc.value.kind is ErrorKind.INVALID_TOKEN

    assert bundle.tokens.verify_token(
        second.plaintext, TokenType.EMAIL_VERIFICATION
    ).token_id == second.token.token_id

    active = [
        token
        for token in bundle.token_repo.list_for_user(user.user_id, TokenType.EMAIL_VERIFICATION)
        if token.is_active(bundle.clock())
    ]
    assert [token.token_id for token in active] == [second.token.token_id]
    reset_tokens = bundle.token_repo.list_for_user(user.user_id, TokenType.PASSWORD_RESET)
    assert reset_tokens[0].used_at is None


def test_verify_token_respects_type(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)
    issued = bundle.tokens.create_token(user.user_id, TokenType.PASSWORD_RESET, 60)

    with pytest.raises(DomainError):
        bundle.tokens.verify_token(issued.plaintext, TokenType.EMAIL_VERIFICATION)
    with pytest.raises(ValueError):
        bundle.tokens.verify_token(issued.plaintext, TokenType.TWO_FACTOR)


def test_consume_token_succeeds_only_once(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)
    issued = bundle.tokens.create_token(user.user_id, TokenType.PASSWORD_RESET, 60)
    token = bundle.tokens.verify_token(issued.plaintext, TokenType.PASSWORD_RESET)

    bundle.tokens.consume_token(token.token_id)

    with pytest.raises(DomainError) as exc:
        bundle.tokens.consume_token(token.token_id)
    assert exc.value.kind is ErrorKind.INVALID_TOKEN
    with pytest.raises(DomainError):
        bundle.tokens.verify_token(issued.plaintext, TokenType.PASSWORD_RESET)


def test_token_expiry_boundary(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)
    issued = bundle.tokens.create_token(user.user_id, TokenType.PASSWORD_RESET, 10)
    start = bundle.clock.now

    bundle.clock.advance(minutes=9.99)
    assert bundle.tokens.verify_token(issued.plaintext, TokenType.PASSWORD_RESET)

    bundle.clock.now = start
    bundle.clock.advance(minutes=10.01)
    with pytest.raises(DomainError) as exc:
        bundle.tokens.verify_token(issued.plaintext, TokenType.PASSWORD_RESET)
    assert exc.value.kind is ErrorKind.INVALID_TOKEN


def test_otp_verification_uses_latest_code(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)

    first = bundle.tokens.create_token(user.user_id, TokenType.TWO_FACTOR, 10)
    second = bundle.tokens.create_token(user.user_id, TokenType.TWO_FACTOR, 10)

    assert len(second.plaintext) == 6 and second.plaintext.isdigit()
    assert bundle.tokens.verify_otp_for_user(user.user_id, second.plaintext).token_id == (
        second.token.token_id
    )
    if first.plaintext != second.plaintext:
        with pytest.raises(DomainError) as exc:
            bundle.tokens.verify_otp_for_user(user.user_id, first.plaintext)
        assert exc.value.kind is ErrorKind.INVALID_OTP


def test_otp_expires_and_rejects_wrong_code(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)
    issued = bundle.tokens.create_token(user.user_id, TokenType.TWO_FACTOR, 10)
    wrong = "000000" if issued.plaintext != "000000" else "111111"

    with pytest.raises(DomainError) as exc:
        bundle.tokens.verify_otp_for_user(user.user_id, wrong)
    assert exc.value.kind is ErrorKind.INVALID_OTP

    bundle.clock.advance(minutes=10, seconds=1)
    with pytest.raises(DomainError):
        bundle.tokens.verify_otp_for_user(user.user_id, issued.plaintext)


def test_invalidate_user_tokens_counts_revoked(tmp_path: Path) -> None:
    bundle = build_services(tmp_path)
    user = insert_user(bundle.users)
    issued = bundle.tokens.create_token(user.user_id, TokenType.PASSWORD_RESET, 60)

    assert bundle.tokens.invalidate_user_tokens(user.user_id, TokenType.PASSWORD_RESET) == 1
    assert bundle.tokens.invalidate_user_tokens(user.user_id, TokenType.PASSWORD_RESET) == 0
    with pytest.raises(DomainError):
        bundle.tokens.verify_token(issued.plaintext, TokenType.PASSWORD_RESET)

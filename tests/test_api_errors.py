from __future__ import annotations

from eventplanner.api.errors import (
    STATUS_BY_KIND,
    ApiErrorCode,
    error_envelope,
    to_error_payload,
)
from eventplanner.core.errors import ErrorKind


def test_every_error_kind_has_status_and_api_code() -> None:
    for kind in ErrorKind:
        assert kind in STATUS_BY_KIND
        assert ApiErrorCode(str(kind))


def test_to_error_payload_normalizes_dict_and_plain_detail() -> None:
    assert to_error_payload({"code": "X", "message": "m"}, 400) == {"code": "X", "message": "m"}
    assert to_error_payload("Not Found", 404) == {"code": "NOT_FOUND", "message": "Not Found"}
    assert to_error_payload("Method Not Allowed", 405) == {
        "code": "HTTP_405",
        "message": "Method Not Allowed",
    }


def test_error_envelope_shape() -> None:
    assert error_envelope("INVALID_OTP", "Invalid or expired OTP") == {
        "success": False,
        "data": None,
        "error": {"code": "INVALID_OTP", "message": "Invalid or expired OTP"},
    }

"""
Unit tests for the shared/ utility modules.

Covers:
- shared.validators      (normalize_email, is_valid_email, is_valid_otp_format,
                          validate_http_url, validate_endorsement_edit)
- shared.generators      (generate_otp_code)
- shared.crypto          (hash_otp_code, constant_time_equals, b64url helpers,
                          sign_hmac, resolve_secret)
- shared.datetime_utils  (ensure_utc, to_epoch_ms)
- shared.request_utils   (get_client_ip, get_user_agent, get_site_base_url)
- shared.logging         (redact_sensitive_fields, hash_email)
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from errors import ConfigurationError
from shared.crypto import (
    b64url_decode,
    b64url_encode,
    constant_time_equals,
    hash_otp_code,
    resolve_secret,
    sign_hmac,
)
from shared.datetime_utils import ensure_utc, to_epoch_ms
from shared.generators import generate_otp_code
from shared.logging import hash_email, redact_sensitive_fields
from shared.request_utils import get_client_ip, get_site_base_url, get_user_agent
from shared.validators import (
    is_valid_email,
    is_valid_otp_format,
    normalize_email,
    validate_endorsement_edit,
    validate_http_url,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_request(headers: dict, client_host: str | None = "10.0.0.1") -> MagicMock:
    """Minimal mock of a FastAPI Request."""
    req = MagicMock()
    req.headers = headers
    if client_host is None:
        req.client = None
    else:
        req.client = MagicMock()
        req.client.host = client_host
    return req


def _valid_edit(**overrides) -> dict:
    base = dict(
        endorser_name="Ada Lovelace",
        endorsement_text="x" * 60,
        relationship_type="manager",
        linkedin_url="",
    )
    base.update(overrides)
    return base


# ---------------------------------------------------------------------------
# shared.validators
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("User@Example.com ", "user@example.com"),
        ("  MIXED@Case.ORG\t", "mixed@case.org"),
        ("already@normal.io", "already@normal.io"),
        ("", ""),
        ("not an email", "not an email"),
    ],
    ids=["trailing_space", "tabs_and_case", "unchanged", "empty", "no_validation"],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


def test_normalize_email_keeps_plus_and_dots():
    assert normalize_email("First.Last+cv@Gmail.com") == "first.last+cv@gmail.com"


@pytest.mark.parametrize(
    "value, expected",
    [("user@example.com", True), ("user@", False), ("plainaddress", False)],
    ids=["valid", "missing_domain", "no_at"],
)
def test_is_valid_email(value, expected):
    assert is_valid_email(value) is expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("004821", True),
        ("123456", True),
        ("12345", False),
        ("1234567", False),
        ("12a456", False),
        ("", False),
        ("123456\n", False),
        ("١٢٣٤٥٦", False),  # non-ASCII digits
    ],
    ids=["leading_zeros", "plain", "short", "long", "letter", "empty", "newline", "arabic"],
)
def test_is_valid_otp_format(value, expected):
    assert is_valid_otp_format(value) is expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.linkedin.com/in/ada", True),
        ("http://linkedin.com/in/ada", True),
        ("ftp://linkedin.com/in/ada", False),
        ("linkedin.com/in/ada", False),
        ("javascript:alert(1)", False),
    ],
    ids=["https", "http", "ftp", "no_scheme", "javascript"],
)
def test_validate_http_url(url, expected):
    assert validate_http_url(url) is expected


class TestValidateEndorsementEdit:
    def test_valid_edit_has_no_errors(self):
        assert validate_endorsement_edit(_valid_edit()) == []

    def test_missing_name(self):
        assert validate_endorsement_edit(_valid_edit(endorser_name="  ")) == [
            "Name is required."
        ]

    def test_name_too_long(self):
        errors = validate_endorsement_edit(_valid_edit(endorser_name="a" * 201))
        assert errors == ["Name must be 200 characters or fewer."]

    @pytest.mark.parametrize(
        "text, fragment",
        [
            ("", "required"),
            ("too short", "at least 40"),
            ("x" * 501, "500 characters or fewer"),
        ],
        ids=["empty", "short", "long"],
    )
    def test_text_bounds(self, text, fragment):
        errors = validate_endorsement_edit(_valid_edit(endorsement_text=text))
        assert len(errors) == 1
        assert fragment in errors[0]

    def test_unknown_relationship(self):
        errors = validate_endorsement_edit(_valid_edit(relationship_type="friend"))
        assert errors == [
            "Relationship is required and must be one of the provided options."
        ]

    def test_bad_linkedin_url(self):
        errors = validate_endorsement_edit(_valid_edit(linkedin_url="not a url"))
        assert len(errors) == 1
        assert "LinkedIn" in errors[0]

    def test_collects_every_error(self):
        errors = validate_endorsement_edit({"relationship_type": None})
        assert len(errors) == 3

    def test_non_string_values_treated_as_blank(self):
        errors = validate_endorsement_edit(_valid_edit(endorser_name=42))
        assert errors == ["Name is required."]


# ---------------------------------------------------------------------------
# shared.generators
# ---------------------------------------------------------------------------


class TestGenerateOtpCode:
    def test_six_ascii_digits(self):
        for _ in range(200):
            code = generate_otp_code()
            assert len(code) == 6
            assert is_valid_otp_format(code)

    def test_zero_padded(self, mocker):
        mocker.patch("shared.generators.secrets.randbelow", return_value=4821)
        assert generate_otp_code() == "004821"

    def test_draws_from_full_range(self, mocker):
        spy = mocker.patch("shared.generators.secrets.randbelow", return_value=0)
        assert generate_otp_code() == "000000"
        spy.assert_called_once_with(1_000_000)


# ---------------------------------------------------------------------------
# shared.crypto
# ---------------------------------------------------------------------------


class TestHashOtpCode:
    def test_matches_documented_construction(self):
        expected = hashlib.sha256(b"rec_1:user@example.com:123456:pepper").hexdigest()
        assert hash_otp_code("rec_1", "user@example.com", "123456", "pepper") == expected

    def test_not_plain_sha256_of_code(self):
        digest = hash_otp_code("rec_1", "user@example.com", "123456", "pepper")
        assert digest != hashlib.sha256(b"123456").hexdigest()

    @pytest.mark.parametrize(
        "args",
        [
            ("rec_2", "user@example.com", "123456", "pepper"),
            ("rec_1", "other@example.com", "123456", "pepper"),
            ("rec_1", "user@example.com", "654321", "pepper"),
            ("rec_1", "user@example.com", "123456", "other-pepper"),
        ],
        ids=["record", "email", "code", "pepper"],
    )
    def test_bound_to_every_input(self, args):
        baseline = hash_otp_code("rec_1", "user@example.com", "123456", "pepper")
        assert hash_otp_code(*args) != baseline

    def test_hex_digest_shape(self):
        digest = hash_otp_code("a", "b", "c", "d")
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)


class TestConstantTimeEquals:
    def test_equal(self):
        assert constant_time_equals("abc123", "abc123") is True

    def test_unequal_same_length(self):
        assert constant_time_equals("abc123", "abc124") is False

    def test_length_mismatch_skips_digest_compare(self, mocker):
        spy = mocker.spy(hmac, "compare_digest")
        assert constant_time_equals("abc", "abcd") is False
        spy.assert_not_called()

    def test_uses_compare_digest_for_equal_lengths(self, mocker):
        spy = mocker.spy(hmac, "compare_digest")
        constant_time_equals("abcd", "abce")
        spy.assert_called_once()

    def test_empty_strings(self):
        assert constant_time_equals("", "") is True

    def test_multibyte_length_is_byte_length(self):
        # same character count, different byte length
        assert constant_time_equals("é", "e") is False


class TestBase64Url:
    def test_unpadded_url_safe(self):
        encoded = b64url_encode(b"\xfb\xff\xfe")
        assert "=" not in encoded
        assert "+" not in encoded and "/" not in encoded

    @pytest.mark.parametrize("data", [b"", b"a", b"ab", b"abc", b"\x00\xff" * 7])
    def test_decode_restores_padding(self, data):
        assert b64url_decode(b64url_encode(data)) == data

    def test_accepts_str(self):
        assert b64url_decode(b64url_encode("héllo")) == "héllo".encode()


def test_sign_hmac_matches_stdlib():
    expected = hmac.new(b"secret", b"body", hashlib.sha256).digest()
    assert b64url_decode(sign_hmac("body", "secret")) == expected


class TestResolveSecret:
    def test_prefers_dedicated(self):
        assert resolve_secret(" dedicated ", "shared", production=True, name="X") == "dedicated"

    def test_falls_back_to_shared(self):
        assert resolve_secret("", "shared", production=True, name="X") == "shared"

    def test_blank_allowed_outside_production(self):
        assert resolve_secret("", "  ", production=False, name="X") == ""

    def test_blank_in_production_raises(self):
        with pytest.raises(ConfigurationError, match="ENDORSEMENT_OTP_PEPPER"):
            resolve_secret("", "", production=True, name="ENDORSEMENT_OTP_PEPPER")


# ---------------------------------------------------------------------------
# shared.datetime_utils
# ---------------------------------------------------------------------------


class TestDatetimeUtils:
    def test_naive_assumed_utc(self):
        result = ensure_utc(datetime(2025, 1, 1, 12, 0))
        assert result == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_converts_offset_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        result = ensure_utc(datetime(2025, 1, 1, 14, 0, tzinfo=plus_two))
        assert result == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc

    def test_none_passthrough(self):
        assert ensure_utc(None) is None

    def test_epoch_ms(self):
        assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000


# ---------------------------------------------------------------------------
# shared.request_utils
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"CF-Connecting-IP": "1.1.1.1", "X-Forwarded-For": "2.2.2.2"}, "1.1.1.1"),
        ({"X-Forwarded-For": "2.2.2.2, 3.3.3.3"}, "2.2.2.2"),
        ({"X-Real-IP": "4.4.4.4"}, "4.4.4.4"),
        ({"X-Forwarded-For": " , "}, "10.0.0.1"),
        ({}, "10.0.0.1"),
    ],
    ids=["cloudflare_wins", "xff_first", "real_ip", "blank_xff", "direct"],
)
def test_get_client_ip(headers, expected):
    assert get_client_ip(_make_request(headers)) == expected


def test_get_client_ip_unknown_without_client():
    assert get_client_ip(_make_request({}, client_host=None)) == "unknown"


def test_get_user_agent():
    assert get_user_agent(_make_request({"user-agent": "curl/8"})) == "curl/8"
    assert get_user_agent(_make_request({})) == ""


class TestSiteBaseUrl:
    def test_configured_wins_and_is_trimmed(self):
        req = _make_request({"host": "evil.example"})
        assert get_site_base_url(" https://cv.example.com/ ", req) == "https://cv.example.com"

    def test_forwarded_host_and_proto(self):
        req = _make_request({"x-forwarded-host": "cv.example.com", "x-forwarded-proto": "http, https"})
        assert get_site_base_url("", req) == "http://cv.example.com"

    def test_host_header_defaults_to_https(self):
        req = _make_request({"host": "cv.example.com", "x-forwarded-proto": "gopher"})
        assert get_site_base_url(None, req) == "https://cv.example.com"

    def test_localhost_fallback(self):
        assert get_site_base_url(None, None) == "http://localhost:3000"
        assert get_site_base_url("", _make_request({})) == "http://localhost:3000"


# ---------------------------------------------------------------------------
# shared.logging
# ---------------------------------------------------------------------------


class TestLoggingHelpers:
    def test_redacts_sensitive_fields(self):
        event = {
            "event": "otp_challenge_issued",
            "otp_code": "123456",
            "session_token": "abc.def",
            "pepper": "p",
            "endorsement_id": "rec_1",
            "status_code": 200,
        }
        result = redact_sensitive_fields(None, "info", event)
        assert result["otp_code"] == "***REDACTED***"
        assert result["session_token"] == "***REDACTED***"
        assert result["pepper"] == "***REDACTED***"
        assert result["endorsement_id"] == "rec_1"
        assert result["status_code"] == 200
        assert result["event"] == "otp_challenge_issued"

    def test_hash_email_is_stable_and_opaque(self):
        hashed = hash_email("user@example.com")
        assert hashed == hash_email("user@example.com")
        assert "user" not in hashed
        assert len(hashed) == 16

    def test_hash_email_passes_blank_through(self):
        assert hash_email("") == ""
        assert hash_email(None) is None

"""
Unit tests for the shared/ utility modules.

Covers:
- shared.phone           (normalize_phone)
- shared.validators      (first_unmet_password_rule, validate_new_password)
- shared.generators      (generate_otp_code, generate_secure_token)
- shared.crypto          (hash_otp_code, verify_otp_code)
- shared.datetime_utils  (ensure_utc, from_timestamp)
- shared.logging         (mask_phone)
- shared.logging_config  (redact_sensitive_fields)
"""

from __future__ import annotations

import hashlib
import string
from datetime import datetime, timedelta, timezone

import pytest

from errors import ValidationError, WeakPasswordError
from shared.crypto import hash_otp_code, verify_otp_code
from shared.datetime_utils import ensure_utc, from_timestamp
from shared.generators import generate_otp_code, generate_secure_token
from shared.logging import mask_phone
from shared.logging_config import redact_sensitive_fields
from shared.phone import normalize_phone
from shared.validators import (
    PASSWORD_REQUIREMENTS,
    first_unmet_password_rule,
    validate_new_password,
)


# ── normalize_phone ───────────────────────────────────────────────────────────


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        [
            "+2348012345678",
            "08012345678",
            "0801 234 5678",
            "0801-234-5678",
            "(0801) 234.5678",
            "002348012345678",
            " +234 801 234 5678 ",
        ],
    )
    def test_equivalent_forms_share_one_canonical_phone(self, raw):
        assert normalize_phone(raw) == "+2348012345678"

    def test_custom_calling_code(self):
        assert normalize_phone("07700900123", "+44") == "+447700900123"

    def test_already_international_ignores_calling_code(self):
        assert normalize_phone("+15551234567", "+44") == "+15551234567"

    @pytest.mark.parametrize("raw", [None, "", "   ", " - ( ) "])
    def test_empty_is_required_error(self, raw):
        with pytest.raises(ValidationError) as exc:
            normalize_phone(raw)
        assert exc.value.message == "Phone number is required"
        assert exc.value.field == "phone"

    @pytest.mark.parametrize(
        "raw",
        [
            "abc",
            "8012345678",  # no trunk prefix or country code
            "+234801234567x",
            "+1234567",  # 7 digits
            "+1234567890123456",  # 16 digits
        ],
    )
    def test_invalid_rejected(self, raw):
        with pytest.raises(ValidationError) as exc:
            normalize_phone(raw)
        assert exc.value.status_code == 400
        assert exc.value.field == "phone"

    def test_idempotent(self):
        once = normalize_phone("0801 234 5678")
        assert normalize_phone(once) == once


# ── password policy ───────────────────────────────────────────────────────────


class TestPasswordPolicy:
    @pytest.mark.parametrize(
        "password, rule",
        [
            ("", "Password is required"),
            (None, "Password is required"),
            ("Ab1!", "At least 8 characters"),
            ("Ab1!" + "a" * 130, "Maximum 128 characters"),
            ("ABCDEFG1!", "At least one lowercase letter"),
            ("abcdefg1!", "At least one uppercase letter"),
            ("Abcdefgh!", "At least one number"),
            ("Abcdefgh1", "At least one special character"),
        ],
    )
    def test_first_unmet_rule(self, password, rule):
        assert first_unmet_password_rule(password) == rule

    def test_length_reported_before_character_classes(self):
        # fails every rule except max length; length comes first
        assert first_unmet_password_rule("a") == "At least 8 characters"

    @pytest.mark.parametrize("password", ["NewPass1!", "Xy9_abcd", "P@ssw0rd[]", "Aa1|" * 2])
    def test_strong_passwords_pass(self, password):
        assert first_unmet_password_rule(password) is None
        validate_new_password(password)

    def test_boundaries(self):
        assert first_unmet_password_rule("Abcde1!x") is None  # exactly 8
        assert first_unmet_password_rule("Ab1!" + "a" * 124) is None  # exactly 128

    def test_weak_password_error_shape(self):
        with pytest.raises(WeakPasswordError) as exc:
            validate_new_password("weak")
        err = exc.value
        assert err.message == "Password does not meet requirements: At least 8 characters"
        assert err.field == "newPassword"
        assert err.details == {"requirements": PASSWORD_REQUIREMENTS}
        assert err.error_code == "weak_password"


# ── generators ────────────────────────────────────────────────────────────────


class TestGenerators:
    def test_otp_default_length(self):
        code = generate_otp_code()
        assert len(code) == 6
        assert all(c in string.digits for c in code)

    def test_otp_custom_length(self):
        assert len(generate_otp_code(8)) == 8

    def test_otp_keeps_leading_zeros(self, mocker):
        mocker.patch("shared.generators.secrets.choice", return_value="0")
        assert generate_otp_code() == "000000"

    def test_secure_tokens_unique(self):
        tokens = {generate_secure_token() for _ in range(50)}
        assert len(tokens) == 50


# ── crypto ────────────────────────────────────────────────────────────────────


class TestOtpHashing:
    def test_hash_is_not_plaintext(self):
        hashed = hash_otp_code("123456")
        assert "123456" not in hashed
        assert hashed.startswith("$argon2")

    def test_verify_match(self):
        assert verify_otp_code("123456", hash_otp_code("123456")) is True

    def test_verify_mismatch(self):
        assert verify_otp_code("654321", hash_otp_code("123456")) is False

    def test_verify_malformed_hash(self):
        assert verify_otp_code("123456", "not-a-hash") is False


# ── datetime_utils ────────────────────────────────────────────────────────────


class TestDatetimeUtils:
    def test_naive_assumed_utc(self):
        naive = datetime(2025, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_other_zone_converted(self):
        lagos = timezone(timedelta(hours=1))
        value = ensure_utc(datetime(2025, 1, 1, 13, 0, tzinfo=lagos))
        assert value == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert value.tzinfo == timezone.utc

    def test_none_passthrough(self):
        assert ensure_utc(None) is None

    def test_from_timestamp(self):
        assert from_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)


# ── logging helpers ───────────────────────────────────────────────────────────


class TestMaskPhone:
    def test_development_keeps_last_four(self, monkeypatch):
        monkeypatch.delenv("ENV", raising=False)
        assert mask_phone("+2348012345678") == "**********5678"

    def test_production_hashes(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        expected = hashlib.sha256(b"+2348012345678").hexdigest()[:16]
        assert mask_phone("+2348012345678") == expected

    def test_empty_passthrough(self):
        assert mask_phone(None) is None
        assert mask_phone("") == ""


class TestRedaction:
    def test_sensitive_fields_redacted(self):
        event = {
            "event": "otp_issued",
            "otp_code": "123456",
            "new_password": "NewPass1!",
            "claim_token": "abc",
            "Authorization": "Bearer x",
            "phone": "**********5678",
        }
        out = redact_sensitive_fields(None, "info", event)
        assert out["event"] == "otp_issued"
        assert out["otp_code"] == "***REDACTED***"
        assert out["new_password"] == "***REDACTED***"
        assert out["claim_token"] == "***REDACTED***"
        assert out["Authorization"] == "***REDACTED***"
        assert out["phone"] == "**********5678"

"""Tests for phone-number validation."""

from __future__ import annotations

import pytest

from courier.runtime.auth import validate_phone_number
from courier.runtime.errors import ValidationError


class TestValidatePhoneNumber:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("254712345678", "254712345678"),
            ("+254 712 345 678", "254712345678"),
            ("(254) 712-345-678", "254712345678"),
            ("1234567890", "1234567890"),
            ("123456789012345", "123456789012345"),
        ],
    )
    def test_accepts(self, raw: str, expected: str) -> None:
        assert validate_phone_number(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "123456789",           # 9 digits
            "1234567890123456",    # 16 digits
            "++254712345678",
            "2547123456ab",
            "254.712.345.678",
            "٢٥٤٧١٢٣٤٥٦٧٨",        # non-ASCII digits
        ],
    )
    def test_rejects(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            validate_phone_number(raw)

    def test_validation_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_phone_number("nope")

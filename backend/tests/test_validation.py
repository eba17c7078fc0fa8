# Overview: Pytest coverage for request payload parsers.

import pytest

from tallypos.validation import ValidationError, parse_bool, parse_number


class TestParseBool:
    def test_strict_by_default(self):
        assert parse_bool(True, "flagged") is True
        with pytest.raises(ValidationError):
            parse_bool("true", "flagged")

    @pytest.mark.parametrize("raw,expected", [
        ("true", True), ("TRUE", True), ("1", True),
        ("false", False), (" False ", False), ("0", False), ("no", False),
    ])
    def test_string_spellings(self, raw, expected):
        assert parse_bool(raw, "check_debt", allow_strings=True) is expected

    @pytest.mark.parametrize("raw", ["maybe", "", 1, None])
    def test_other_values_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_bool(raw, "check_debt", allow_strings=True)


class TestParseNumber:
    def test_bool_is_not_a_number(self):
        with pytest.raises(ValidationError):
            parse_number(True, "amount")

    def test_negative_rejected_unless_allowed(self):
        with pytest.raises(ValidationError):
            parse_number(-1, "amount")
        assert parse_number("-2.5", "onhand", allow_negative=True) == -2.5

    def test_default_for_blank(self):
        assert parse_number("", "discount", default=0.0) == 0.0

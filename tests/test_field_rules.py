"""Tests for answer-level validation helpers."""

from datetime import date, timedelta

import pytest

from validation.field_rules import (
    ValidationResult,
    count_true,
    create_boolean_map,
    has_invalid_amount,
    is_minor,
    is_past_or_today,
    is_valid_country_code,
    is_valid_email,
    is_valid_phone,
    is_valid_tax_id,
    normalize_amount,
    normalize_country_codes,
    parse_integer,
    parse_iso_date,
    parse_optional_amount,
    single_selection,
    validate_single_choice,
)


class TestOptionMaps:
    """Tests for option map decoding."""

    def test_create_boolean_map(self):
        """Unknown keys are dropped and non-booleans become False."""
        assert create_boolean_map(("a", "b"), {"a": True, "b": 1, "c": True}) == {"a": True, "b": False}

    def test_create_boolean_map_non_object(self):
        assert create_boolean_map(("a",), ["a"]) == {"a": False}

    def test_single_selection(self):
        assert single_selection({"a": True, "b": False}) == "a"
        assert single_selection({"a": True, "b": True}) is None
        assert single_selection({"a": False}) is None
        assert single_selection(None) is None

    def test_count_true(self):
        assert count_true({"a": True, "b": "yes", "c": True}) == 2

    def test_validate_single_choice_messages(self):
        """Non-objects and wrong cardinality record different messages."""
        errors = {}
        assert validate_single_choice(errors, "k", "x", ("a", "b"), "not object", "exactly one") is None
        assert errors == {"k": "not object"}

        errors = {}
        validate_single_choice(errors, "k", {"a": True, "b": True}, ("a", "b"), "not object", "exactly one")
        assert errors == {"k": "exactly one"}


class TestAmounts:
    """Tests for amount parsing."""

    @pytest.mark.parametrize("raw,expected", [
        (None, 0.0),
        ("", 0.0),
        ("12.5", 12.5),
        (-4, 0.0),
        ("abc", 0.0),
        (True, 0.0),
    ])
    def test_normalize_amount(self, raw, expected):
        assert normalize_amount(raw) == expected

    def test_has_invalid_amount(self):
        """Blank is allowed; negatives and text are not."""
        assert has_invalid_amount("") is False
        assert has_invalid_amount(None) is False
        assert has_invalid_amount("-1") is True
        assert has_invalid_amount("ten") is True
        assert has_invalid_amount(float("inf")) is True

    def test_parse_optional_amount_strips_currency(self):
        assert parse_optional_amount("$1,200.50") == 1200.5
        assert parse_optional_amount("   ") is None
        assert parse_optional_amount(-1) is None

    def test_parse_integer(self):
        assert parse_integer("2024") == 2024
        assert parse_integer(3.0) == 3
        assert parse_integer(3.5) is None
        assert parse_integer(False) is None


class TestDates:
    """Tests for ISO date rules."""

    def test_parse_iso_date_is_strict(self):
        """Only real calendar dates in YYYY-MM-DD form parse."""
        assert parse_iso_date("2024-02-29") == date(2024, 2, 29)
        assert parse_iso_date("2023-02-29") is None
        assert parse_iso_date("2024-2-1") is None
        assert parse_iso_date(20240101) is None

    def test_past_or_today(self):
        tomorrow = (date.today() + timedelta(days=2)).isoformat()
        assert is_past_or_today("2000-01-01") is True
        assert is_past_or_today(tomorrow) is False

    def test_is_minor(self):
        """Eighteen years ago (plus margin) is an adult; ten years ago is a minor."""
        today = date.today()
        assert is_minor(f"{today.year - 10}-01-01") is True
        assert is_minor(f"{today.year - 30}-01-01") is False
        assert is_minor("not a date") is False


class TestContactFormats:
    """Tests for phone, email, country and tax id formats."""

    def test_phone(self):
        assert is_valid_phone("(555) 123-4567") is True
        assert is_valid_phone("12") is False

    def test_email(self):
        assert is_valid_email("jane@example.com") is True
        assert is_valid_email("jane@example") is False

    def test_country_code(self):
        assert is_valid_country_code("us") is True
        assert is_valid_country_code("USA") is False

    def test_country_codes_deduplicated(self):
        assert normalize_country_codes(["us", "US", "ca", "Canada", 1]) == ["US", "CA"]

    def test_tax_id_needs_nine_digits(self):
        assert is_valid_tax_id("123-45-6789") is True
        assert is_valid_tax_id("12-345678") is False


class TestValidationResult:
    """Tests for ValidationResult constructors."""

    def test_from_errors(self):
        assert ValidationResult.from_errors({}, 5) == ValidationResult(is_valid=True, value=5)
        failed = ValidationResult.from_errors({"a": "bad"}, 5)
        assert failed.is_valid is False
        assert failed.value is None
        assert failed.field_errors == {"a": "bad"}

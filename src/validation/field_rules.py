"""
Field Rules.

Shared answer-level validation helpers for onboarding questions:
- Option map decoding and cardinality checks (exactly one / at least one)
- String, amount, year and ISO date normalization
- Contact formats (phone, email, ISO country code, SSN/EIN)
- Signature date and government ID date rules

All helpers are pure. Date comparisons use the current UTC calendar day.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional


FieldErrors = Dict[str, str]

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
PHONE_PATTERN = re.compile(r"^[+\d()\-.\s]{7,20}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")
PO_BOX_PATTERN = re.compile(r"p\.?\s*o\.?\s*box", re.IGNORECASE)

AMOUNT_MESSAGE = "Enter a valid non-negative amount."


@dataclass
class ValidationResult:
    """Outcome of validating a single answer."""
    is_valid: bool
    value: Any = None
    field_errors: FieldErrors = field(default_factory=dict)

    @classmethod
    def ok(cls, value: Any) -> "ValidationResult":
        return cls(is_valid=True, value=value)

    @classmethod
    def failed(cls, field_errors: FieldErrors) -> "ValidationResult":
        return cls(is_valid=False, field_errors=dict(field_errors))

    @classmethod
    def from_errors(cls, field_errors: FieldErrors, value: Any) -> "ValidationResult":
        """Fail when any error was collected, otherwise succeed with value."""
        if field_errors:
            return cls.failed(field_errors)
        return cls.ok(value)


def add_error(errors: FieldErrors, key: str, message: str) -> None:
    """Record an error unless the path already has one (first message wins)."""
    if key not in errors:
        errors[key] = message


def is_plain_object(value: Any) -> bool:
    return isinstance(value, dict)


# =============================================================================
# OPTION MAPS
# =============================================================================

def create_boolean_map(keys: Iterable[str], source: Any = None) -> Dict[str, bool]:
    """Decode an option map, keeping only real booleans for known keys."""
    record = source if isinstance(source, dict) else {}
    return {key: record.get(key) is True for key in keys}


def count_true(option_map: Dict[str, Any]) -> int:
    return sum(1 for value in option_map.values() if value is True)


def selected_keys(option_map: Dict[str, Any]) -> List[str]:
    return [key for key, value in option_map.items() if value is True]


def single_selection(option_map: Any) -> Optional[str]:
    """Return the only selected key, or None for zero or several selections."""
    if not isinstance(option_map, dict):
        return None
    selected = selected_keys(option_map)
    return selected[0] if len(selected) == 1 else None


def validate_single_choice(
    errors: FieldErrors,
    key: str,
    answer: Any,
    keys: Iterable[str],
    not_object_message: str,
    cardinality_message: str,
) -> Optional[Dict[str, bool]]:
    """Decode an exactly-one option map; returns None after recording an error."""
    if not is_plain_object(answer):
        add_error(errors, key, not_object_message)
        return None

    option_map = create_boolean_map(keys, answer)
    if count_true(option_map) != 1:
        add_error(errors, key, cardinality_message)
        return None
    return option_map


# =============================================================================
# STRINGS AND NUMBERS
# =============================================================================

def normalize_nullable_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_required_string(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_amount(value: Any) -> float:
    """Coerce a stored amount into a non-negative float, defaulting to 0."""
    if value is None or value == "":
        return 0.0
    if _is_number(value):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def has_invalid_amount(value: Any) -> bool:
    if value is None or value == "":
        return False
    if _is_number(value):
        return not math.isfinite(float(value)) or value < 0
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return True
        return not math.isfinite(number) or number < 0
    return True


def parse_optional_amount(value: Any) -> Optional[float]:
    """Parse a currency-like value; blank, negative or invalid input yields None."""
    if _is_number(value):
        number = float(value)
    elif isinstance(value, str):
        cleaned = re.sub(r"[$,\s]", "", value)
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def parse_integer(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        return int(value.strip())
    return None


def current_utc_year() -> int:
    return utc_today().year


# =============================================================================
# DATES
# =============================================================================

def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse a strict YYYY-MM-DD string into a real calendar date."""
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_valid_iso_date(value: Any) -> bool:
    return parse_iso_date(value) is not None


def is_past_date(value: Any) -> bool:
    parsed = parse_iso_date(value)
    return parsed is not None and parsed < utc_today()


def is_past_or_today(value: Any) -> bool:
    parsed = parse_iso_date(value)
    return parsed is not None and parsed <= utc_today()


def is_today_or_future(value: Any) -> bool:
    parsed = parse_iso_date(value)
    return parsed is not None and parsed >= utc_today()


def is_minor(date_of_birth: Any) -> bool:
    """True when the holder is younger than 18 as of today (UTC)."""
    born = parse_iso_date(date_of_birth)
    if born is None:
        return False
    today = utc_today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age < 18


# =============================================================================
# CONTACT FORMATS
# =============================================================================

def is_valid_phone(value: Any) -> bool:
    return isinstance(value, str) and bool(PHONE_PATTERN.match(value.strip()))


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value.strip()))


def normalize_country_code(value: Any) -> Optional[str]:
    normalized = normalize_nullable_string(value)
    return normalized.upper() if normalized else None


def is_valid_country_code(value: Any) -> bool:
    code = normalize_country_code(value)
    return code is not None and bool(COUNTRY_CODE_PATTERN.match(code))


def normalize_country_codes(value: Any) -> List[str]:
    """Upper-case, de-duplicate and keep only two-letter country codes."""
    if not isinstance(value, list):
        return []
    codes: List[str] = []
    for item in value:
        code = normalize_country_code(item)
        if code and COUNTRY_CODE_PATTERN.match(code) and code not in codes:
            codes.append(code)
    return codes


def digits_only(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return re.sub(r"\D", "", value)


def is_valid_tax_id(value: Any) -> bool:
    """SSN and EIN both carry exactly nine digits."""
    return len(digits_only(value)) == 9


def is_po_box(value: Any) -> bool:
    return isinstance(value, str) and bool(PO_BOX_PATTERN.search(value))

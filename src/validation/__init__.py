"""Field validation rules shared by the onboarding steps."""

from .field_rules import (
    AMOUNT_MESSAGE,
    FieldErrors,
    ValidationResult,
    add_error,
    create_boolean_map,
    normalize_amount,
    parse_iso_date,
    single_selection,
    validate_single_choice,
)

__all__ = [
    'AMOUNT_MESSAGE',
    'FieldErrors',
    'ValidationResult',
    'add_error',
    'create_boolean_map',
    'normalize_amount',
    'parse_iso_date',
    'single_selection',
    'validate_single_choice',
]

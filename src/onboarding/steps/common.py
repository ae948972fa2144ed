"""Question validators shared by the SFC, BAIODF and BAIV 506(c) steps."""

from __future__ import annotations

from typing import Any, Dict, Sequence

from validation.field_rules import (
    AMOUNT_MESSAGE,
    FieldErrors,
    ValidationResult,
    count_true,
    create_boolean_map,
    has_invalid_amount,
    normalize_amount,
    normalize_required_string,
)

from ..field_schema import Amount, Text

REGISTRATION_KEYS = ("rrName", "rrNo", "customerNames")


def registration_schema() -> Dict[str, Text]:
    return {key: Text() for key in REGISTRATION_KEYS}


def registration_validator(prefix: str, require_object: bool = False):
    """RR name, RR number and customer names are all required."""

    def validate(answer: Any, fields: Dict[str, Any], context: Any) -> ValidationResult:
        if require_object and not isinstance(answer, dict):
            return ValidationResult.failed({prefix: "Please provide account registration details."})

        record = answer if isinstance(answer, dict) else {}
        value = {key: normalize_required_string(record.get(key)) for key in REGISTRATION_KEYS}
        errors: FieldErrors = {}
        if not value["rrName"]:
            errors[f"{prefix}.rrName"] = "RR Name is required."
        if not value["rrNo"]:
            errors[f"{prefix}.rrNo"] = "RR No. is required."
        if not value["customerNames"]:
            errors[f"{prefix}.customerNames"] = "Customer name(s) are required."
        return ValidationResult.from_errors(errors, value)

    return validate


def amount_schema(keys: Sequence[str]) -> Dict[str, Amount]:
    return {key: Amount() for key in keys}


def amount_map_validator(prefix: str, keys: Sequence[str]):
    """Every amount in the section must be blank or a non-negative number."""

    def validate(answer: Any, fields: Dict[str, Any], context: Any) -> ValidationResult:
        if not isinstance(answer, dict):
            return ValidationResult.failed({prefix: "Please provide values for this section."})

        errors: FieldErrors = {}
        for key in keys:
            if has_invalid_amount(answer.get(key)):
                errors[f"{prefix}.{key}"] = AMOUNT_MESSAGE
        value = {key: normalize_amount(answer.get(key)) for key in keys}
        return ValidationResult.from_errors(errors, value)

    return validate


def validate_yes_no(errors: FieldErrors, key: str, answer: Any) -> Dict[str, bool]:
    """Decode a yes/no map, recording an error unless exactly one is selected."""
    option_map = create_boolean_map(("yes", "no"), answer)
    if count_true(option_map) != 1:
        errors[key] = "Select exactly one option."
    return option_map

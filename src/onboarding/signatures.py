"""Signature blocks.

A signature block is {typedSignature, printedName, date}. Required blocks
need all three parts; optional blocks are all-or-none. Signature dates are
strict YYYY-MM-DD and cannot be in the future.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from validation.field_rules import (
    FieldErrors,
    ValidationResult,
    is_past_or_today,
    is_valid_iso_date,
    normalize_nullable_string,
)

from .field_schema import NullableText

SIGNATURE_PARTS = ("typedSignature", "printedName", "date")


def signature_schema() -> Dict[str, NullableText]:
    return {part: NullableText() for part in SIGNATURE_PARTS}


def create_signature_block(source: Any) -> Dict[str, Optional[str]]:
    record = source if isinstance(source, dict) else {}
    return {part: normalize_nullable_string(record.get(part)) for part in SIGNATURE_PARTS}


def is_signature_block_empty(block: Dict[str, Optional[str]]) -> bool:
    return not any(block.get(part) for part in SIGNATURE_PARTS)


def validate_required_signature_block(block: Dict[str, Optional[str]], prefix: str, label: str) -> FieldErrors:
    errors: FieldErrors = {}

    if not block.get("typedSignature"):
        errors[f"{prefix}.typedSignature"] = f"{label} typed signature is required."

    if not block.get("printedName"):
        errors[f"{prefix}.printedName"] = f"{label} printed name is required."

    signed_on = block.get("date")
    if not signed_on:
        errors[f"{prefix}.date"] = f"{label} signature date is required."
    elif not is_valid_iso_date(signed_on):
        errors[f"{prefix}.date"] = "Enter a valid date in YYYY-MM-DD format."
    elif not is_past_or_today(signed_on):
        errors[f"{prefix}.date"] = "Signature date cannot be in the future."

    return errors


def validate_optional_signature_block(block: Dict[str, Optional[str]], prefix: str, label: str) -> FieldErrors:
    if is_signature_block_empty(block):
        return {}
    return validate_required_signature_block(block, prefix, label)


def merge_prefill_block(existing: Dict[str, Optional[str]], prefill: Optional[Dict[str, Optional[str]]]) -> Dict[str, Optional[str]]:
    """Fill each empty part of a block from a prefill block."""
    if not prefill:
        return dict(existing)
    return {
        part: existing.get(part) if existing.get(part) is not None else prefill.get(part)
        for part in SIGNATURE_PARTS
    }


# Decides whether a signer is required for the given step context
RequiredWhen = Callable[[Any], bool]


@dataclass(frozen=True)
class Signer:
    key: str
    label: str
    required: Optional[RequiredWhen] = None

    def is_required(self, context: Any) -> bool:
        return True if self.required is None else self.required(context)


def never(_context: Any) -> bool:
    return False


def joint_owner_required(context: Any) -> bool:
    return bool(getattr(context, "requires_joint_owner_signature", False))


def signature_group_validator(prefix: str, signers: Sequence[Signer]):
    """Build an answer validator for a group of signature blocks.

    The answer is a dict keyed by signer; the validated value contains one
    normalized block per signer and is merged into the signatures parent.
    """

    def validate(answer: Any, fields: Dict[str, Any], context: Any) -> ValidationResult:
        record = answer if isinstance(answer, dict) else {}
        errors: FieldErrors = {}
        value = {}

        for signer in signers:
            block = create_signature_block(record.get(signer.key))
            block_prefix = f"{prefix}.{signer.key}"
            if signer.is_required(context):
                errors.update(validate_required_signature_block(block, block_prefix, signer.label))
            else:
                errors.update(validate_optional_signature_block(block, block_prefix, signer.label))
            value[signer.key] = block

        return ValidationResult.from_errors(errors, value)

    return validate


def acknowledgement_validator(keys: Sequence[str], error_key: str, message: str):
    """Every flag in keys must be accepted."""

    def validate(answer: Any, fields: Dict[str, Any], context: Any) -> ValidationResult:
        record = answer if isinstance(answer, dict) else {}
        value = {key: record.get(key) is True for key in keys}
        if not all(value.values()):
            return ValidationResult.failed({error_key: message})
        return ValidationResult.ok(value)

    return validate

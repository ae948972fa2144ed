"""Investor Profile step 6: trusted contact."""

from __future__ import annotations

from typing import Any, Dict, List

from validation.field_rules import (
    COUNTRY_CODE_PATTERN,
    FieldErrors,
    ValidationResult,
    count_true,
    create_boolean_map,
    is_valid_email,
    is_valid_phone,
    normalize_nullable_string,
    normalize_required_string,
    single_selection,
)

from ..field_schema import YES_NO, NullableText, Options
from ..forms import FormType
from ..step_engine import Question, StepContext, StepDefinition

PHONE_KEYS = ("home", "business", "mobile")
ADDRESS_KEYS = ("line1", "city", "stateProvince", "postalCode")

SCHEMA = {
    "trustedContact": {
        "decline": Options(YES_NO),
        "contactInfo": {
            "name": NullableText(),
            "email": NullableText(),
            "phones": {key: NullableText() for key in PHONE_KEYS},
        },
        "mailingAddress": {
            "line1": NullableText(),
            "city": NullableText(),
            "stateProvince": NullableText(),
            "postalCode": NullableText(),
            "country": NullableText(upper=True),
        },
    },
}


def validate_decline(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    option_map = create_boolean_map(YES_NO, answer)
    if count_true(option_map) != 1:
        return ValidationResult.failed({"step6.trustedContact.decline": "Select exactly one option."})
    return ValidationResult.ok(option_map)


def validate_contact_info(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    phones_record = record.get("phones") if isinstance(record.get("phones"), dict) else {}
    prefix = "step6.trustedContact.contactInfo"
    name = normalize_required_string(record.get("name"))
    email = normalize_required_string(record.get("email"))
    phones = {key: normalize_nullable_string(phones_record.get(key)) for key in PHONE_KEYS}
    errors: FieldErrors = {}

    if not name:
        errors[f"{prefix}.name"] = "Trusted contact name is required."
    if not email:
        errors[f"{prefix}.email"] = "Trusted contact email is required."
    elif not is_valid_email(email):
        errors[f"{prefix}.email"] = "Enter a valid trusted contact email."

    for key, phone in phones.items():
        if phone and not is_valid_phone(phone):
            errors[f"{prefix}.phones.{key}"] = "Enter a valid phone number."
    if not any(phones.values()):
        errors[f"{prefix}.phones.mobile"] = "Enter at least one phone number (home, business, or mobile)."

    return ValidationResult.from_errors(errors, {"name": name, "email": email, "phones": phones})


def validate_mailing_address(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    prefix = "step6.trustedContact.mailingAddress"
    value = {key: normalize_required_string(record.get(key)) for key in ADDRESS_KEYS}
    value["country"] = normalize_required_string(record.get("country")).upper()
    errors: FieldErrors = {}

    messages = {
        "line1": "Mailing address is required.",
        "city": "City is required.",
        "stateProvince": "State/Province is required.",
        "postalCode": "ZIP/Postal code is required.",
    }
    for key, message in messages.items():
        if not value[key]:
            errors[f"{prefix}.{key}"] = message
    if not value["country"]:
        errors[f"{prefix}.country"] = "Country is required."
    elif not COUNTRY_CODE_PATTERN.match(value["country"]):
        errors[f"{prefix}.country"] = "Enter a valid country code."

    return ValidationResult.from_errors(errors, value)


QUESTIONS = [
    Question(id="step6.trustedContact.decline", path="trustedContact.decline", validate=validate_decline),
    Question(id="step6.trustedContact.contactInfo", path="trustedContact.contactInfo", validate=validate_contact_info),
    Question(
        id="step6.trustedContact.mailingAddress",
        path="trustedContact.mailingAddress",
        validate=validate_mailing_address,
    ),
]


def visible_question_ids(fields: Dict[str, Any], context: StepContext) -> List[str]:
    visible = ["step6.trustedContact.decline"]
    if single_selection(fields["trustedContact"]["decline"]) == "no":
        visible += ["step6.trustedContact.contactInfo", "step6.trustedContact.mailingAddress"]
    return visible


def completion_errors(fields: Dict[str, Any], context: StepContext) -> FieldErrors:
    trusted_contact = fields["trustedContact"]
    selection = single_selection(trusted_contact["decline"])
    if selection is None:
        return {"step6.trustedContact.decline": "Select whether to provide a trusted contact."}
    if selection == "yes":
        return {}

    errors: FieldErrors = {}
    errors.update(validate_contact_info(trusted_contact["contactInfo"], fields, context).field_errors)
    errors.update(validate_mailing_address(trusted_contact["mailingAddress"], fields, context).field_errors)
    return errors


DEFINITION = StepDefinition(
    form_type=FormType.INVESTOR_PROFILE,
    number=6,
    schema=SCHEMA,
    questions=QUESTIONS,
    visible=visible_question_ids,
    completion=completion_errors,
)

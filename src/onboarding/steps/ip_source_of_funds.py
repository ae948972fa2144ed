"""Investor Profile step 2: USA PATRIOT Act initial source of funds."""

from __future__ import annotations

from typing import Any, Dict

from validation.field_rules import (
    FieldErrors,
    ValidationResult,
    count_true,
    create_boolean_map,
    is_plain_object,
    normalize_nullable_string,
)

from ..field_schema import Flag, NullableText
from ..forms import FormType
from ..step_engine import Question, StepContext, StepDefinition

SOURCE_OF_FUNDS_KEYS = (
    "accountsReceivable",
    "incomeFromEarnings",
    "legalSettlement",
    "spouseParent",
    "accumulatedSavings",
    "inheritance",
    "lotteryGaming",
    "rentalIncome",
    "alimony",
    "insuranceProceeds",
    "pensionIraRetirementSavings",
    "saleOfBusiness",
    "gift",
    "investmentProceeds",
    "saleOfRealEstate",
    "other",
)

SCHEMA = {
    "initialSourceOfFunds": {
        **{key: Flag() for key in SOURCE_OF_FUNDS_KEYS},
        "otherDetails": NullableText(),
    },
}

NONE_SELECTED_MESSAGE = "Please select at least one source of funds."
OTHER_DETAILS_MESSAGE = "Please add details for Other."


def validate_source_of_funds(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    if not is_plain_object(answer):
        return ValidationResult.failed({"initialSourceOfFunds": NONE_SELECTED_MESSAGE})

    selections = create_boolean_map(SOURCE_OF_FUNDS_KEYS, answer)
    other_details = normalize_nullable_string(answer.get("otherDetails"))
    if count_true(selections) == 0:
        return ValidationResult.failed({"initialSourceOfFunds": NONE_SELECTED_MESSAGE})
    if selections["other"] and not other_details:
        return ValidationResult.failed({"initialSourceOfFunds.otherDetails": OTHER_DETAILS_MESSAGE})

    return ValidationResult.ok({**selections, "otherDetails": other_details})


def completion_errors(fields: Dict[str, Any], context: StepContext) -> FieldErrors:
    sources = fields["initialSourceOfFunds"]
    selections = create_boolean_map(SOURCE_OF_FUNDS_KEYS, sources)
    errors: FieldErrors = {}
    if count_true(selections) == 0:
        errors["initialSourceOfFunds"] = NONE_SELECTED_MESSAGE
    if selections["other"] and not sources["otherDetails"]:
        errors["initialSourceOfFunds.otherDetails"] = OTHER_DETAILS_MESSAGE
    return errors


QUESTIONS = [
    Question(
        id="step2.initialSourceOfFunds",
        path="initialSourceOfFunds",
        validate=validate_source_of_funds,
    ),
]

DEFINITION = StepDefinition(
    form_type=FormType.INVESTOR_PROFILE,
    number=2,
    schema=SCHEMA,
    questions=QUESTIONS,
    visible=lambda fields, context: ["step2.initialSourceOfFunds"],
    completion=completion_errors,
)

"""Investor Profile step 5: objectives and investment detail."""

from __future__ import annotations

from typing import Any, Dict

from validation.field_rules import (
    FieldErrors,
    ValidationResult,
    count_true,
    create_boolean_map,
    normalize_nullable_string,
    parse_integer,
    parse_optional_amount,
    single_selection,
)

from ..field_schema import YES_NO, Integer, ListOf, NullableText, OptionalAmount, Options, normalize_fields
from ..forms import FormType
from ..prefill import requires_step4_extras
from ..step_engine import Question, StepContext, StepDefinition

RISK_EXPOSURE_KEYS = ("low", "moderate", "speculation", "highRisk")
ACCOUNT_OBJECTIVE_KEYS = ("income", "longTermGrowth", "shortTermGrowth")
LIQUIDITY_NEEDS_KEYS = ("high", "medium", "low")
MIN_HORIZON_YEAR = 1900
MAX_HORIZON_YEAR = 2100

MARKET_INCOME_LABELS = {
    "equities": "Equities",
    "options": "Options",
    "fixedIncome": "Fixed Income",
    "mutualFunds": "Mutual Funds",
    "unitInvestmentTrusts": "Unit Investment Trusts",
    "exchangeTradedFunds": "Exchange-Traded Funds",
}
ALTERNATIVES_INSURANCE_LABELS = {
    "realEstate": "Real Estate",
    "insurance": "Insurance",
    "variableAnnuities": "Variable Annuities",
    "fixedAnnuities": "Fixed Annuities",
    "preciousMetals": "Precious Metals",
    "commoditiesFutures": "Commodities/Futures",
}


def is_filled_entry(entry: Dict[str, Any]) -> bool:
    return entry["label"] is not None or entry["value"] is not None


OTHER_ENTRY_SCHEMA = {"label": NullableText(), "value": OptionalAmount()}

SCHEMA = {
    "profile": {
        "riskExposure": Options(RISK_EXPOSURE_KEYS),
        "accountObjectives": Options(ACCOUNT_OBJECTIVE_KEYS),
    },
    "investments": {
        "fixedValues": {
            "marketIncome": {key: OptionalAmount() for key in MARKET_INCOME_LABELS},
            "alternativesInsurance": {key: OptionalAmount() for key in ALTERNATIVES_INSURANCE_LABELS},
        },
        "hasOther": Options(YES_NO),
        "otherEntries": {
            "entries": ListOf(OTHER_ENTRY_SCHEMA, keep=is_filled_entry),
        },
    },
    "horizonAndLiquidity": {
        "timeHorizon": {
            "fromYear": Integer(),
            "toYear": Integer(),
        },
        "liquidityNeeds": Options(LIQUIDITY_NEEDS_KEYS),
    },
}


def single_choice_validator(question_id: str, keys, label: str):

    def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        option_map = create_boolean_map(keys, answer)
        if count_true(option_map) != 1:
            return ValidationResult.failed({question_id: f"Select exactly one {label}."})
        return ValidationResult.ok(option_map)

    return validate


def validate_account_objectives(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    option_map = create_boolean_map(ACCOUNT_OBJECTIVE_KEYS, answer)
    if count_true(option_map) == 0:
        return ValidationResult.failed({"step5.profile.accountObjectives": "Select at least one investment objective."})
    return ValidationResult.ok(option_map)


def value_block_validator(question_id: str, labels: Dict[str, str]):
    """Every holding value in the block is required and non-negative."""

    def validate(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
        record = answer if isinstance(answer, dict) else {}
        value = {key: parse_optional_amount(record.get(key)) for key in labels}
        errors: FieldErrors = {
            f"{question_id}.{key}": f"{label} value is required."
            for key, label in labels.items()
            if value[key] is None
        }
        return ValidationResult.from_errors(errors, value)

    return validate


validate_market_income = value_block_validator(
    "step5.investments.fixedValues.marketIncome", MARKET_INCOME_LABELS
)
validate_alternatives_insurance = value_block_validator(
    "step5.investments.fixedValues.alternativesInsurance", ALTERNATIVES_INSURANCE_LABELS
)


def validate_other_entries(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    entries = normalize_fields(SCHEMA["investments"]["otherEntries"]["entries"], record.get("entries"))
    prefix = "step5.investments.otherEntries.entries"
    errors: FieldErrors = {}

    if not entries:
        errors[prefix] = "Add at least one other investment category and value."
    for index, entry in enumerate(entries):
        if not entry["label"]:
            errors[f"{prefix}.{index}.label"] = "Other investment label is required."
        if entry["value"] is None:
            errors[f"{prefix}.{index}.value"] = "Other investment value must be a number greater than or equal to 0."

    return ValidationResult.from_errors(errors, {"entries": entries})


def _horizon_year(record: Dict[str, Any], key: str):
    value = record.get(key)
    if isinstance(value, str):
        value = normalize_nullable_string(value)
    return parse_integer(value)


def validate_horizon_and_liquidity(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    horizon = record.get("timeHorizon") if isinstance(record.get("timeHorizon"), dict) else {}
    liquidity = create_boolean_map(LIQUIDITY_NEEDS_KEYS, record.get("liquidityNeeds"))
    from_year = _horizon_year(horizon, "fromYear")
    to_year = _horizon_year(horizon, "toYear")
    prefix = "step5.horizonAndLiquidity"
    errors: FieldErrors = {}

    if from_year is None or not MIN_HORIZON_YEAR <= from_year <= MAX_HORIZON_YEAR:
        errors[f"{prefix}.timeHorizon.fromYear"] = (
            f"Enter a valid From Year between {MIN_HORIZON_YEAR} and {MAX_HORIZON_YEAR}."
        )
    if to_year is None or not MIN_HORIZON_YEAR <= to_year <= MAX_HORIZON_YEAR:
        errors[f"{prefix}.timeHorizon.toYear"] = (
            f"Enter a valid To Year between {MIN_HORIZON_YEAR} and {MAX_HORIZON_YEAR}."
        )
    if from_year is not None and to_year is not None and from_year > to_year:
        errors[f"{prefix}.timeHorizon.toYear"] = "To Year must be greater than or equal to From Year."
    if count_true(liquidity) != 1:
        errors[f"{prefix}.liquidityNeeds"] = "Select exactly one liquidity need."

    return ValidationResult.from_errors(errors, {
        "timeHorizon": {"fromYear": from_year, "toYear": to_year},
        "liquidityNeeds": liquidity,
    })


QUESTIONS = [
    Question(
        id="step5.profile.riskExposure",
        path="profile.riskExposure",
        validate=single_choice_validator("step5.profile.riskExposure", RISK_EXPOSURE_KEYS, "risk exposure option"),
    ),
    Question(
        id="step5.profile.accountObjectives",
        path="profile.accountObjectives",
        validate=validate_account_objectives,
    ),
    Question(
        id="step5.investments.fixedValues.marketIncome",
        path="investments.fixedValues.marketIncome",
        validate=validate_market_income,
    ),
    Question(
        id="step5.investments.fixedValues.alternativesInsurance",
        path="investments.fixedValues.alternativesInsurance",
        validate=validate_alternatives_insurance,
    ),
    Question(
        id="step5.investments.hasOther",
        path="investments.hasOther",
        validate=single_choice_validator("step5.investments.hasOther", YES_NO, "option"),
    ),
    Question(
        id="step5.investments.otherEntries",
        path="investments.otherEntries",
        validate=validate_other_entries,
    ),
    Question(
        id="step5.horizonAndLiquidity",
        path="horizonAndLiquidity",
        validate=validate_horizon_and_liquidity,
    ),
]


def visible_question_ids(fields: Dict[str, Any], context: StepContext):
    visible = [
        "step5.profile.riskExposure",
        "step5.profile.accountObjectives",
        "step5.investments.fixedValues.marketIncome",
        "step5.investments.fixedValues.alternativesInsurance",
        "step5.investments.hasOther",
    ]
    if single_selection(fields["investments"]["hasOther"]) == "yes":
        visible.append("step5.investments.otherEntries")
    visible.append("step5.horizonAndLiquidity")
    return visible


def completion_errors(fields: Dict[str, Any], context: StepContext) -> FieldErrors:
    errors: FieldErrors = {}
    if count_true(fields["profile"]["riskExposure"]) != 1:
        errors["step5.profile.riskExposure"] = "Select exactly one risk exposure option."
    if count_true(fields["profile"]["accountObjectives"]) == 0:
        errors["step5.profile.accountObjectives"] = "Select at least one account investment objective."

    fixed_values = fields["investments"]["fixedValues"]
    errors.update(validate_market_income(fixed_values["marketIncome"], fields, context).field_errors)
    errors.update(validate_alternatives_insurance(fixed_values["alternativesInsurance"], fields, context).field_errors)

    has_other = single_selection(fields["investments"]["hasOther"])
    if has_other is None:
        errors["step5.investments.hasOther"] = "Select whether to add other investment categories."
    elif has_other == "yes":
        errors.update(validate_other_entries(fields["investments"]["otherEntries"], fields, context).field_errors)

    errors.update(validate_horizon_and_liquidity(fields["horizonAndLiquidity"], fields, context).field_errors)
    return errors


DEFINITION = StepDefinition(
    form_type=FormType.INVESTOR_PROFILE,
    number=5,
    schema=SCHEMA,
    questions=QUESTIONS,
    visible=visible_question_ids,
    completion=completion_errors,
    extras=requires_step4_extras,
)

"""Brokerage Alternative Investment Order and Disclosure Form, steps 1-3."""

from __future__ import annotations

from typing import Any, Dict

from validation.field_rules import (
    AMOUNT_MESSAGE,
    FieldErrors,
    ValidationResult,
    count_true,
    create_boolean_map,
    has_invalid_amount,
    is_valid_iso_date,
    normalize_amount,
    normalize_nullable_string,
    normalize_required_string,
)

from ..calculators import baiodf_concentrations, sfc_totals
from ..field_schema import YES_NO, Amount, Flag, NullableText, Options, Text
from ..forms import FormType
from ..prefill import apply_registration_prefill, merge_signature_prefill, signature_sources
from ..signatures import (
    Signer,
    acknowledgement_validator,
    joint_owner_required,
    signature_group_validator,
    signature_schema,
)
from ..step_engine import Question, StepContext, StepDefinition
from .common import registration_schema, registration_validator, validate_yes_no

# =============================================================================
# STEP 1. CUSTOMER / ACCOUNT INFORMATION
# =============================================================================

STEP_ONE_SCHEMA = {
    "accountRegistration": registration_schema(),
    "orderBasics": {
        "proposedPrincipalAmount": Amount(),
        "qualifiedAccount": Options(YES_NO),
        "qualifiedAccountRmdCertification": Flag(),
        "solicitedTrade": Options(YES_NO),
        "taxAdvantagePurchase": Options(YES_NO),
    },
}


def validate_order_basics(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    prefix = "step1.orderBasics"
    errors: FieldErrors = {}

    if has_invalid_amount(record.get("proposedPrincipalAmount")):
        errors[f"{prefix}.proposedPrincipalAmount"] = AMOUNT_MESSAGE

    qualified_account = validate_yes_no(errors, f"{prefix}.qualifiedAccount", record.get("qualifiedAccount"))
    solicited_trade = validate_yes_no(errors, f"{prefix}.solicitedTrade", record.get("solicitedTrade"))
    tax_advantage = validate_yes_no(errors, f"{prefix}.taxAdvantagePurchase", record.get("taxAdvantagePurchase"))

    certification = record.get("qualifiedAccountRmdCertification") is True
    qualified = count_true(qualified_account) == 1 and qualified_account["yes"]
    if qualified and not certification:
        errors[f"{prefix}.qualifiedAccountRmdCertification"] = (
            "Certification is required when Qualified Account is Yes."
        )

    return ValidationResult.from_errors(errors, {
        "proposedPrincipalAmount": normalize_amount(record.get("proposedPrincipalAmount")),
        "qualifiedAccount": qualified_account,
        "qualifiedAccountRmdCertification": certification and qualified,
        "solicitedTrade": solicited_trade,
        "taxAdvantagePurchase": tax_advantage,
    })


STEP_ONE_QUESTIONS = [
    Question(
        id="step1.accountRegistration",
        path="accountRegistration",
        validate=registration_validator("step1.accountRegistration"),
    ),
    Question(id="step1.orderBasics", path="orderBasics", validate=validate_order_basics),
]

STEP_ONE = StepDefinition(
    form_type=FormType.BAIODF,
    number=1,
    schema=STEP_ONE_SCHEMA,
    questions=STEP_ONE_QUESTIONS,
    visible=lambda fields, context: [question.id for question in STEP_ONE_QUESTIONS],
    prefill=apply_registration_prefill,
)

# =============================================================================
# STEP 2. CUSTOMER ORDER INFORMATION
# =============================================================================

CUSTODIAN_KEYS = ("firstClearing", "direct", "mainStar", "cnb", "kingdomTrust", "other")
POSITION_KEYS = (
    "existingIlliquidAltPositions",
    "existingSemiLiquidAltPositions",
    "existingTaxAdvantageAltPositions",
)

STEP_TWO_SCHEMA = {
    "custodianAndProduct": {
        "custodian": Options(CUSTODIAN_KEYS),
        "custodianOther": NullableText(),
        "nameOfProduct": Text(),
        "sponsorIssuer": Text(),
        "dateOfPpm": NullableText(),
        "datePpmSent": NullableText(),
    },
    "existingAltPositions": {key: Amount() for key in POSITION_KEYS},
    "netWorthAndConcentration": {
        "totalNetWorth": Amount(),
        "liquidNetWorth": Amount(),
    },
}


def _validate_required_date(errors: FieldErrors, key: str, value: Any, label: str) -> None:
    if not value:
        errors[key] = f"{label} is required."
    elif not is_valid_iso_date(value):
        errors[key] = "Enter a valid date in YYYY-MM-DD format."


def validate_custodian_and_product(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    prefix = "step2.custodianAndProduct"
    custodian = create_boolean_map(CUSTODIAN_KEYS, record.get("custodian"))
    custodian_other = normalize_nullable_string(record.get("custodianOther"))
    name_of_product = normalize_required_string(record.get("nameOfProduct"))
    sponsor_issuer = normalize_required_string(record.get("sponsorIssuer"))
    date_of_ppm = normalize_nullable_string(record.get("dateOfPpm"))
    date_ppm_sent = normalize_nullable_string(record.get("datePpmSent"))
    errors: FieldErrors = {}

    if count_true(custodian) != 1:
        errors[f"{prefix}.custodian"] = "Select exactly one custodian option."
    if custodian["other"] and not custodian_other:
        errors[f"{prefix}.custodianOther"] = "Specify the custodian when Other is selected."
    if not name_of_product:
        errors[f"{prefix}.nameOfProduct"] = "Product name is required."
    if not sponsor_issuer:
        errors[f"{prefix}.sponsorIssuer"] = "Sponsor / Issuer is required."
    _validate_required_date(errors, f"{prefix}.dateOfPpm", date_of_ppm, "Date of PPM")
    _validate_required_date(errors, f"{prefix}.datePpmSent", date_ppm_sent, "Date PPM Sent")

    return ValidationResult.from_errors(errors, {
        "custodian": custodian,
        "custodianOther": custodian_other if custodian["other"] else None,
        "nameOfProduct": name_of_product,
        "sponsorIssuer": sponsor_issuer,
        "dateOfPpm": date_of_ppm,
        "datePpmSent": date_ppm_sent,
    })


def validate_existing_positions(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    errors: FieldErrors = {}
    for key in POSITION_KEYS:
        if has_invalid_amount(record.get(key)):
            errors[f"step2.existingAltPositions.{key}"] = AMOUNT_MESSAGE
    return ValidationResult.from_errors(errors, {key: normalize_amount(record.get(key)) for key in POSITION_KEYS})


def validate_net_worth(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    record = answer if isinstance(answer, dict) else {}
    prefix = "step2.netWorthAndConcentration"
    total_net_worth = normalize_amount(record.get("totalNetWorth"))
    errors: FieldErrors = {}

    if has_invalid_amount(record.get("totalNetWorth")):
        errors[f"{prefix}.totalNetWorth"] = AMOUNT_MESSAGE
    elif total_net_worth <= 0:
        errors[f"{prefix}.totalNetWorth"] = "Total Net Worth must be greater than 0."
    if has_invalid_amount(record.get("liquidNetWorth")):
        errors[f"{prefix}.liquidNetWorth"] = AMOUNT_MESSAGE

    return ValidationResult.from_errors(errors, {
        "totalNetWorth": total_net_worth,
        "liquidNetWorth": normalize_amount(record.get("liquidNetWorth")),
    })


STEP_TWO_QUESTIONS = [
    Question(id="step2.custodianAndProduct", path="custodianAndProduct", validate=validate_custodian_and_product),
    Question(id="step2.existingAltPositions", path="existingAltPositions", validate=validate_existing_positions),
    Question(id="step2.netWorthAndConcentration", path="netWorthAndConcentration", validate=validate_net_worth),
]


def apply_net_worth_prefill(fields: Dict[str, Any], context: StepContext) -> Dict[str, Any]:
    """Seed net worth figures from the SFC totals while they are still unset."""
    if not context.has_document(FormType.SFC, 1):
        return fields

    totals = sfc_totals(context.normalized(FormType.SFC, 1))
    net_worth = dict(fields["netWorthAndConcentration"])
    if net_worth["totalNetWorth"] <= 0 and totals.totalNetWorth > 0:
        net_worth["totalNetWorth"] = totals.totalNetWorth
    if net_worth["liquidNetWorth"] <= 0 and totals.totalPotentialLiquidity >= 0:
        net_worth["liquidNetWorth"] = totals.totalPotentialLiquidity
    return {**fields, "netWorthAndConcentration": net_worth}


def step_two_concentrations(fields: Dict[str, Any], context: StepContext) -> Dict[str, float]:
    order_basics = context.normalized(FormType.BAIODF, 1)["orderBasics"]
    return baiodf_concentrations(fields, order_basics["proposedPrincipalAmount"]).to_dict()


STEP_TWO = StepDefinition(
    form_type=FormType.BAIODF,
    number=2,
    schema=STEP_TWO_SCHEMA,
    questions=STEP_TWO_QUESTIONS,
    visible=lambda fields, context: [question.id for question in STEP_TWO_QUESTIONS],
    prefill=apply_net_worth_prefill,
    derived_key="concentrations",
    derive=step_two_concentrations,
)

# =============================================================================
# STEP 3. DISCLOSURES + SIGNATURES
# =============================================================================

ACKNOWLEDGEMENT_KEYS = (
    "illiquidLongTerm",
    "reviewedProspectusOrPpm",
    "understandFeesAndExpenses",
    "noPublicMarket",
    "limitedRedemptionAndSaleRisk",
    "speculativeMayLoseInvestment",
    "distributionsMayVaryOrStop",
    "meetsSuitabilityStandards",
    "featuresRisksDiscussed",
    "meetsFinancialGoalsAndAccurate",
)

STEP_THREE_SCHEMA = {
    "acknowledgements": {key: Flag() for key in ACKNOWLEDGEMENT_KEYS},
    "signatures": {
        "accountOwner": signature_schema(),
        "jointAccountOwner": signature_schema(),
        "financialProfessional": signature_schema(),
    },
}

STEP_THREE_QUESTIONS = [
    Question(
        id="step3.acknowledgements",
        path="acknowledgements",
        validate=acknowledgement_validator(
            ACKNOWLEDGEMENT_KEYS, "step3.acknowledgements", "All required disclosures must be acknowledged."
        ),
    ),
    Question(
        id="step3.signatures.accountOwners",
        path="signatures",
        merge_keys=("accountOwner", "jointAccountOwner"),
        validate=signature_group_validator(
            "step3.signatures.accountOwners",
            [
                Signer("accountOwner", "Account Owner"),
                Signer("jointAccountOwner", "Joint Account Owner", joint_owner_required),
            ],
        ),
    ),
    Question(
        id="step3.signatures.financialProfessional",
        path="signatures",
        merge_keys=("financialProfessional",),
        validate=signature_group_validator(
            "step3.signatures.financialProfessional",
            [Signer("financialProfessional", "Financial Professional")],
        ),
    ),
]


def step_three_prefill(fields: Dict[str, Any], context: StepContext) -> Dict[str, Any]:
    """Signatures come from SFC step 2, falling back to Investor Profile step 7."""
    prefill = signature_sources(context, (FormType.SFC, 2), (FormType.INVESTOR_PROFILE, 7))
    return merge_signature_prefill(fields, prefill, context)


STEP_THREE = StepDefinition(
    form_type=FormType.BAIODF,
    number=3,
    schema=STEP_THREE_SCHEMA,
    questions=STEP_THREE_QUESTIONS,
    visible=lambda fields, context: [question.id for question in STEP_THREE_QUESTIONS],
    prefill=step_three_prefill,
)

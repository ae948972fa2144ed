"""Statement of Financial Condition: financials (step 1) and finalization (step 2)."""

from __future__ import annotations

from typing import Any, Dict

from validation.field_rules import FieldErrors, ValidationResult, normalize_nullable_string

from ..calculators import sfc_totals
from ..field_schema import Flag, NullableText
from ..forms import FormType
from ..prefill import apply_registration_prefill, merge_signature_prefill, resolve_signature_block
from ..signatures import (
    Signer,
    acknowledgement_validator,
    joint_owner_required,
    never,
    signature_group_validator,
    signature_schema,
)
from ..step_engine import Question, StepContext, StepDefinition
from .common import REGISTRATION_KEYS, amount_map_validator, amount_schema, registration_schema, registration_validator

# =============================================================================
# STEP 1. FINANCIALS
# =============================================================================

AMOUNT_SECTIONS = {
    "liquidNonQualifiedAssets": (
        "cashMoneyMarketsCds",
        "brokerageNonManaged",
        "managedAccounts",
        "mutualFundsDirect",
        "annuitiesLessSurrenderCharges",
        "cashValueLifeInsurance",
        "otherBusinessAssetsCollectibles",
    ),
    "liabilities": (
        "mortgagePrimaryResidence",
        "mortgagesSecondaryInvestment",
        "homeEquityLoans",
        "creditCards",
        "otherLiabilities",
    ),
    "illiquidNonQualifiedAssets": (
        "primaryResidence",
        "investmentRealEstate",
        "privateBusiness",
    ),
    "liquidQualifiedAssets": (
        "cashMoneyMarketsCds",
        "retirementPlans",
        "brokerageNonManaged",
        "managedAccounts",
        "mutualFundsDirect",
        "annuities",
    ),
    "incomeSummary": (
        "salaryCommissions",
        "investmentIncome",
        "pension",
        "socialSecurity",
        "netRentalIncome",
        "other",
    ),
    "illiquidQualifiedAssets": ("purchaseAmountValue",),
}

STEP_ONE_SCHEMA = {
    "accountRegistration": registration_schema(),
    **{section: amount_schema(keys) for section, keys in AMOUNT_SECTIONS.items()},
}

STEP_ONE_QUESTIONS = [
    Question(
        id="step1.accountRegistration",
        path="accountRegistration",
        validate=registration_validator("step1.accountRegistration", require_object=True),
    ),
] + [
    Question(
        id=f"step1.{section}",
        path=section,
        validate=amount_map_validator(f"step1.{section}", keys),
    )
    for section, keys in AMOUNT_SECTIONS.items()
]

REGISTRATION_LABELS = {"rrName": "RR Name", "rrNo": "RR No.", "customerNames": "Customer name(s)"}


def step_one_visible(fields: Dict[str, Any], context: StepContext):
    return [question.id for question in STEP_ONE_QUESTIONS]


def step_one_completion(fields: Dict[str, Any], context: StepContext) -> FieldErrors:
    # Amounts are always valid once normalized; only the registration can be missing.
    errors: FieldErrors = {}
    for key in REGISTRATION_KEYS:
        if not fields["accountRegistration"][key].strip():
            errors[f"step1.accountRegistration.{key}"] = f"{REGISTRATION_LABELS[key]} is required."
    return errors


def step_one_totals(fields: Dict[str, Any], context: StepContext) -> Dict[str, float]:
    return sfc_totals(fields).to_dict()


STEP_ONE = StepDefinition(
    form_type=FormType.SFC,
    number=1,
    schema=STEP_ONE_SCHEMA,
    questions=STEP_ONE_QUESTIONS,
    visible=step_one_visible,
    completion=step_one_completion,
    prefill=apply_registration_prefill,
    derived_key="totals",
    derive=step_one_totals,
)

# =============================================================================
# STEP 2. FINALIZATION
# =============================================================================

ACKNOWLEDGEMENT_KEYS = (
    "attestDataAccurateComplete",
    "agreeReportMaterialChanges",
    "understandMayNeedRecertification",
    "understandMayNeedSupportingDocumentation",
    "understandInfoUsedForBestInterestRecommendations",
)

STEP_TWO_SCHEMA = {
    "notes": {
        "notes": NullableText(),
        "additionalNotes": NullableText(),
    },
    "acknowledgements": {key: Flag() for key in ACKNOWLEDGEMENT_KEYS},
    "signatures": {
        "accountOwner": signature_schema(),
        "jointAccountOwner": signature_schema(),
        "financialProfessional": signature_schema(),
        "registeredPrincipal": signature_schema(),
    },
}


def validate_notes(answer: Any, fields: Dict[str, Any], context: StepContext) -> ValidationResult:
    if not isinstance(answer, dict):
        return ValidationResult.failed({"step2.notes": "Please provide notes."})
    return ValidationResult.ok({
        "notes": normalize_nullable_string(answer.get("notes")),
        "additionalNotes": normalize_nullable_string(answer.get("additionalNotes")),
    })


STEP_TWO_QUESTIONS = [
    Question(id="step2.notes", path="notes", validate=validate_notes),
    Question(
        id="step2.acknowledgements",
        path="acknowledgements",
        validate=acknowledgement_validator(
            ACKNOWLEDGEMENT_KEYS, "step2.acknowledgements", "All acknowledgements must be accepted."
        ),
    ),
    Question(
        id="step2.signatures.accountOwners",
        path="signatures",
        merge_keys=("accountOwner", "jointAccountOwner"),
        validate=signature_group_validator(
            "step2.signatures.accountOwners",
            [
                Signer("accountOwner", "Account Owner"),
                Signer("jointAccountOwner", "Joint Account Owner", joint_owner_required),
            ],
        ),
    ),
    Question(
        id="step2.signatures.firm",
        path="signatures",
        merge_keys=("financialProfessional", "registeredPrincipal"),
        validate=signature_group_validator(
            "step2.signatures.firm",
            [
                Signer("financialProfessional", "Financial Professional"),
                Signer("registeredPrincipal", "Registered Principal", never),
            ],
        ),
    ),
]


def step_two_visible(fields: Dict[str, Any], context: StepContext):
    return [question.id for question in STEP_TWO_QUESTIONS]


def step_two_completion(fields: Dict[str, Any], context: StepContext) -> FieldErrors:
    # Notes are optional for completion.
    errors: FieldErrors = {}
    for question in STEP_TWO_QUESTIONS[1:]:
        result = question.validate(question.current_answer(fields), fields, context)
        errors.update(result.field_errors)
    return errors


def step_two_prefill(fields: Dict[str, Any], context: StepContext) -> Dict[str, Any]:
    """Carry the Investor Profile step 7 signatures forward."""
    investor_signatures = context.normalized(FormType.INVESTOR_PROFILE, 7)["signatures"]
    prefill = {
        "accountOwner": resolve_signature_block(investor_signatures["accountOwner"]),
        "jointAccountOwner": resolve_signature_block(investor_signatures["jointAccountOwner"]),
        "financialProfessional": resolve_signature_block(investor_signatures["financialProfessional"]),
        "registeredPrincipal": resolve_signature_block(investor_signatures["supervisorPrincipal"]),
    }
    return merge_signature_prefill(fields, prefill, context)


STEP_TWO = StepDefinition(
    form_type=FormType.SFC,
    number=2,
    schema=STEP_TWO_SCHEMA,
    questions=STEP_TWO_QUESTIONS,
    visible=step_two_visible,
    completion=step_two_completion,
    prefill=step_two_prefill,
)

"""Brokerage Accredited Investor Verification Form for SEC Rule 506(c), steps 1-2."""

from __future__ import annotations

from typing import Any, Dict

from ..field_schema import Flag
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
from .common import registration_schema, registration_validator

STEP_ONE_QUESTIONS = [
    Question(
        id="step1.accountRegistration",
        path="accountRegistration",
        validate=registration_validator("step1.accountRegistration"),
    ),
]

STEP_ONE = StepDefinition(
    form_type=FormType.BAIV_506C,
    number=1,
    schema={"accountRegistration": registration_schema()},
    questions=STEP_ONE_QUESTIONS,
    visible=lambda fields, context: ["step1.accountRegistration"],
    prefill=apply_registration_prefill,
)

ACKNOWLEDGEMENT_KEYS = (
    "rule506cGuidelineAcknowledged",
    "secRuleReviewedAndUnderstood",
    "incomeOrNetWorthVerified",
    "documentationReviewed",
)

STEP_TWO_SCHEMA = {
    "acknowledgements": {key: Flag() for key in ACKNOWLEDGEMENT_KEYS},
    "signatures": {
        "accountOwner": signature_schema(),
        "jointAccountOwner": signature_schema(),
        "financialProfessional": signature_schema(),
    },
}

STEP_TWO_QUESTIONS = [
    Question(
        id="step2.acknowledgements",
        path="acknowledgements",
        validate=acknowledgement_validator(
            ACKNOWLEDGEMENT_KEYS, "step2.acknowledgements", "All required acknowledgements must be accepted."
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
        id="step2.signatures.financialProfessional",
        path="signatures",
        merge_keys=("financialProfessional",),
        validate=signature_group_validator(
            "step2.signatures.financialProfessional",
            [Signer("financialProfessional", "Financial Professional")],
        ),
    ),
]


def step_two_prefill(fields: Dict[str, Any], context: StepContext) -> Dict[str, Any]:
    prefill = signature_sources(
        context,
        (FormType.BAIODF, 3),
        (FormType.SFC, 2),
        (FormType.INVESTOR_PROFILE, 7),
    )
    return merge_signature_prefill(fields, prefill, context)


STEP_TWO = StepDefinition(
    form_type=FormType.BAIV_506C,
    number=2,
    schema=STEP_TWO_SCHEMA,
    questions=STEP_TWO_QUESTIONS,
    visible=lambda fields, context: [question.id for question in STEP_TWO_QUESTIONS],
    prefill=step_two_prefill,
)

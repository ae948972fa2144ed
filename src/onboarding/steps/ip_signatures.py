"""Investor Profile step 7: certifications and signatures."""

from __future__ import annotations

from typing import Any, Dict

from ..forms import FormType
from ..signatures import (
    Signer,
    acknowledgement_validator,
    create_signature_block,
    joint_owner_required,
    never,
    signature_group_validator,
    signature_schema,
)
from ..field_schema import Flag, get_path
from ..step_engine import Question, StepContext, StepDefinition

ACCEPTANCE_KEYS = (
    "attestationsAccepted",
    "taxpayerCertificationAccepted",
    "usPersonDefinitionAcknowledged",
)

SCHEMA = {
    "certifications": {
        "acceptances": {key: Flag() for key in ACCEPTANCE_KEYS},
    },
    "signatures": {
        "accountOwner": signature_schema(),
        "jointAccountOwner": signature_schema(),
        "financialProfessional": signature_schema(),
        "supervisorPrincipal": signature_schema(),
    },
}

QUESTIONS = [
    Question(
        id="step7.certifications.acceptances",
        path="certifications.acceptances",
        validate=acknowledgement_validator(
            ACCEPTANCE_KEYS,
            "step7.certifications.acceptances",
            "All required attestations and certifications must be accepted.",
        ),
    ),
    Question(
        id="step7.signatures.accountOwners",
        path="signatures",
        merge_keys=("accountOwner", "jointAccountOwner"),
        validate=signature_group_validator(
            "step7.signatures.accountOwners",
            [
                Signer("accountOwner", "Account Owner"),
                Signer("jointAccountOwner", "Joint Account Owner", joint_owner_required),
            ],
        ),
    ),
    Question(
        id="step7.signatures.firm",
        path="signatures",
        merge_keys=("financialProfessional", "supervisorPrincipal"),
        validate=signature_group_validator(
            "step7.signatures.firm",
            [
                Signer("financialProfessional", "Financial Professional"),
                Signer("supervisorPrincipal", "Supervisor / Principal", never),
            ],
        ),
    ),
]


def visible_question_ids(fields: Dict[str, Any], context: StepContext):
    return [question.id for question in QUESTIONS]


def _fill_printed_name(block: Dict[str, Any], name: Any) -> Dict[str, Any]:
    if block.get("printedName") or not isinstance(name, str) or not name.strip():
        return block
    filled = dict(block)
    filled["printedName"] = name.strip()
    return filled


def prefill(fields: Dict[str, Any], context: StepContext) -> Dict[str, Any]:
    """Default printed names from the holder steps and the advisor."""
    signatures = dict(fields["signatures"])
    primary = context.normalized(FormType.INVESTOR_PROFILE, 3)
    signatures["accountOwner"] = _fill_printed_name(
        create_signature_block(signatures["accountOwner"]), get_path(primary, "holder.name")
    )

    if context.requires_joint_owner_signature:
        secondary = context.normalized(FormType.INVESTOR_PROFILE, 4)
        signatures["jointAccountOwner"] = _fill_printed_name(
            create_signature_block(signatures["jointAccountOwner"]), get_path(secondary, "holder.name")
        )

    signatures["financialProfessional"] = _fill_printed_name(
        create_signature_block(signatures["financialProfessional"]), context.advisor_name
    )
    return {**fields, "signatures": signatures}


DEFINITION = StepDefinition(
    form_type=FormType.INVESTOR_PROFILE,
    number=7,
    schema=SCHEMA,
    questions=QUESTIONS,
    visible=visible_question_ids,
    prefill=prefill,
)

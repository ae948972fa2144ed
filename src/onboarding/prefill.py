"""Cross-form context and prefill.

Facts derived from the Investor Profile account type (step 4 requirement,
joint-owner signatures, default holder kind) and the prefill rules that
copy values between forms. Prefill only fills values that are still
empty or zero; it never overwrites something the user entered.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from validation.field_rules import normalize_nullable_string, single_selection

from .field_schema import get_path
from .forms import FormType
from .signatures import SIGNATURE_PARTS, create_signature_block, merge_prefill_block
from .step_engine import StepContext

PERSON_ACCOUNT_TYPES = frozenset({
    "individual",
    "custodial",
    "jointTenant",
    "transferOnDeathIndividual",
    "transferOnDeathJoint",
})

STEP4_REQUIRED_ACCOUNT_TYPES = frozenset({
    "jointTenant",
    "transferOnDeathJoint",
    "trust",
    "corporation",
    "corporatePensionProfitSharing",
    "limitedLiabilityCompany",
    "individualSingleMemberLlc",
    "partnership",
    "nonprofitOrganization",
    "exemptOrganization",
    "estate",
})


def selected_primary_type(investor_step1: Dict[str, Any]) -> Optional[str]:
    return single_selection(get_path(investor_step1, "typeOfAccount.primaryType"))


def infer_default_holder_kind(investor_step1: Dict[str, Any]) -> str:
    primary_type = selected_primary_type(investor_step1)
    if primary_type is None or primary_type in PERSON_ACCOUNT_TYPES:
        return "person"
    return "entity"


def is_step4_required(investor_step1: Dict[str, Any]) -> bool:
    """A secondary holder step exists only for a single multi-party account type."""
    return selected_primary_type(investor_step1) in STEP4_REQUIRED_ACCOUNT_TYPES


def build_context(
    client_id: str,
    client_name: str,
    advisor_name: str,
    documents: Dict[Tuple[FormType, int], Any],
) -> StepContext:
    context = StepContext(
        client_id=client_id,
        client_name=client_name or "",
        advisor_name=advisor_name or "",
        documents=dict(documents),
    )
    investor_step1 = context.normalized(FormType.INVESTOR_PROFILE, 1)
    context.requires_step4 = is_step4_required(investor_step1)
    context.default_holder_kind = infer_default_holder_kind(investor_step1)
    return context


# =============================================================================
# PREFILL RULES
# =============================================================================

def apply_holder_kind_default(fields: Dict[str, Any], context: StepContext) -> Dict[str, Any]:
    """Select person or entity from the account type when no kind is chosen yet."""
    kind = get_path(fields, "holder.kind") or {}
    if any(value is True for value in kind.values()):
        return fields
    holder = dict(fields["holder"])
    holder["kind"] = {
        "person": context.default_holder_kind == "person",
        "entity": context.default_holder_kind == "entity",
    }
    return {**fields, "holder": holder}


def apply_registration_prefill(fields: Dict[str, Any], context: StepContext) -> Dict[str, Any]:
    """Copy RR name, RR number and customer names from Investor Profile step 1."""
    investor_registration = context.normalized(FormType.INVESTOR_PROFILE, 1)["accountRegistration"]
    sources = {
        "rrName": investor_registration.get("rrName"),
        "rrNo": investor_registration.get("rrNo"),
        "customerNames": investor_registration.get("customerNames") or context.client_name,
    }

    registration = dict(fields["accountRegistration"])
    for key, source in sources.items():
        value = normalize_nullable_string(source)
        if not registration.get(key) and value:
            registration[key] = value
    return {**fields, "accountRegistration": registration}


def resolve_signature_block(*candidates: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """Take each signature part from the first candidate block that has it."""
    blocks = [create_signature_block(candidate) for candidate in candidates if candidate]
    resolved = {}
    for part in SIGNATURE_PARTS:
        resolved[part] = next((block[part] for block in blocks if block[part] is not None), None)
    return resolved


def signature_sources(context: StepContext, *sources: Tuple[FormType, int]) -> Dict[str, Dict[str, Optional[str]]]:
    """Resolve account owner, joint owner and financial professional blocks from earlier forms."""
    documents = [context.normalized(form_type, number)["signatures"] for form_type, number in sources]
    resolved = {
        key: resolve_signature_block(*(signatures.get(key) for signatures in documents))
        for key in ("accountOwner", "jointAccountOwner", "financialProfessional")
    }
    if not resolved["financialProfessional"]["printedName"]:
        resolved["financialProfessional"]["printedName"] = normalize_nullable_string(context.advisor_name)
    return resolved


def merge_signature_prefill(
    fields: Dict[str, Any],
    prefill: Dict[str, Dict[str, Optional[str]]],
    context: StepContext,
) -> Dict[str, Any]:
    """Merge prefill blocks part by part; the joint block only when it is required."""
    signatures = dict(fields["signatures"])
    for key, block in prefill.items():
        if key == "jointAccountOwner" and not context.requires_joint_owner_signature:
            continue
        signatures[key] = merge_prefill_block(create_signature_block(signatures.get(key)), block)
    return {**fields, "signatures": signatures}


def requires_step4_extras(context: StepContext) -> Dict[str, Any]:
    """Response flag telling the client whether Investor Profile step 4 applies."""
    return {"requiresStep4": context.requires_step4}

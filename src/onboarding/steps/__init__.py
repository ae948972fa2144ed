"""Step definitions for every onboarding form, keyed by (form, step number)."""

from __future__ import annotations

from typing import Dict, Tuple

from ..exceptions import NotFoundError
from ..forms import FormType
from ..step_engine import StepDefinition
from . import (
    baiodf,
    baiv_506c,
    ip_account_holder,
    ip_account_registration,
    ip_objectives,
    ip_signatures,
    ip_source_of_funds,
    ip_trusted_contact,
    sfc,
)

_DEFINITIONS = [
    ip_account_registration.DEFINITION,
    ip_source_of_funds.DEFINITION,
    ip_account_holder.PRIMARY_HOLDER,
    ip_account_holder.SECONDARY_HOLDER,
    ip_objectives.DEFINITION,
    ip_trusted_contact.DEFINITION,
    ip_signatures.DEFINITION,
    sfc.STEP_ONE,
    sfc.STEP_TWO,
    baiodf.STEP_ONE,
    baiodf.STEP_TWO,
    baiodf.STEP_THREE,
    baiv_506c.STEP_ONE,
    baiv_506c.STEP_TWO,
]

STEP_REGISTRY: Dict[Tuple[FormType, int], StepDefinition] = {
    (definition.form_type, definition.number): definition for definition in _DEFINITIONS
}


def get_step_definition(form_type: FormType, step_number: int) -> StepDefinition:
    """Look up a step; raises NotFoundError for steps outside the form."""
    definition = STEP_REGISTRY.get((FormType(form_type), step_number))
    if definition is None:
        raise NotFoundError(f"Unknown step {step_number} for form {FormType(form_type).value}.")
    return definition


__all__ = ["STEP_REGISTRY", "get_step_definition"]

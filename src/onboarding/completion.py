"""Completion Gate.

Decides whether a step and its form are complete. Each form has a single
gating step whose successful write completes the form; writes to any
other step keep the form IN_PROGRESS. A COMPLETED form never regresses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from validation.field_rules import FieldErrors

from .forms import FormType, OnboardingStatus, get_form
from .step_engine import StepContext
from .steps import get_step_definition

logger = logging.getLogger(__name__)

JOINT_SIGNATURE_STEPS = frozenset({
    (FormType.INVESTOR_PROFILE, 7),
    (FormType.SFC, 2),
    (FormType.BAIODF, 3),
    (FormType.BAIV_506C, 2),
})


@dataclass
class GateResult:
    status: OnboardingStatus
    requires_joint_owner_signature: bool
    is_complete: bool


def requires_joint_owner_signature(form_type: FormType, step_number: int, context: StepContext) -> bool:
    """Joint-owner signatures apply to signature steps of multi-party accounts."""
    return is_signature_step(form_type, step_number) and context.requires_joint_owner_signature


def step_completion_errors(form_type: FormType, step_number: int, context: StepContext) -> FieldErrors:
    """Completion errors of a stored step, read through normalization and prefill."""
    definition = get_step_definition(form_type, step_number)
    fields = definition.prepare(context.documents.get((FormType(form_type), step_number)), context)
    return definition.completion_errors(fields, context)


def incomplete_steps(form_type: FormType, context: StepContext) -> Dict[int, FieldErrors]:
    """Completion errors per required step of a form, in step order, omitting complete steps."""
    pending: Dict[int, FieldErrors] = {}
    for info in get_form(form_type).steps:
        if not get_step_definition(form_type, info.number).required_for(context):
            continue
        errors = step_completion_errors(form_type, info.number, context)
        if errors:
            pending[info.number] = errors
    return pending


def form_status_after_write(
    form_type: FormType,
    step_number: int,
    current_status: Optional[OnboardingStatus],
    form_errors: Dict[int, FieldErrors],
) -> OnboardingStatus:
    """Status policy applied after a successful write to one step."""
    if current_status == OnboardingStatus.COMPLETED:
        return OnboardingStatus.COMPLETED
    if step_number == get_form(form_type).gating_step and not form_errors:
        return OnboardingStatus.COMPLETED
    return OnboardingStatus.IN_PROGRESS


def form_status_after_review(
    current_status: Optional[OnboardingStatus],
    form_errors: Dict[int, FieldErrors],
) -> OnboardingStatus:
    """A review save completes the form as soon as every required step is complete."""
    if current_status == OnboardingStatus.COMPLETED or not form_errors:
        return OnboardingStatus.COMPLETED
    return OnboardingStatus.IN_PROGRESS


def evaluate_gate(
    form_type: FormType,
    step_number: int,
    fields: Dict,
    context: StepContext,
    current_status: Optional[OnboardingStatus],
    form_errors: Dict[int, FieldErrors],
) -> GateResult:
    """Evaluate one written step and the resulting form status.

    Args:
        fields: The step's fields after the write.
        context: Cross-form context, already holding the written document.
        current_status: Form status before the write.
        form_errors: Output of incomplete_steps for the whole form.
    """
    status = form_status_after_write(form_type, step_number, current_status, form_errors)

    if status != current_status:
        logger.debug("Form %s status %s -> %s", FormType(form_type).value, current_status, status.value)

    return step_gate(form_type, step_number, fields, context, status)


def step_gate(
    form_type: FormType,
    step_number: int,
    fields: Dict,
    context: StepContext,
    status: OnboardingStatus,
) -> GateResult:
    """Gate outputs of one step for an already decided form status."""
    definition = get_step_definition(form_type, step_number)
    return GateResult(
        status=status,
        requires_joint_owner_signature=requires_joint_owner_signature(form_type, step_number, context),
        is_complete=not definition.completion_errors(fields, context),
    )


def is_signature_step(form_type: FormType, step_number: int) -> bool:
    return (FormType(form_type), step_number) in JOINT_SIGNATURE_STEPS

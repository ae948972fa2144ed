"""Regulatory Onboarding Step-Flow Engine.

This module drives the multi-step onboarding forms an advisor completes
for a client:
- Investor Profile (7 steps)
- Statement of Financial Condition (2 steps)
- Brokerage Alternative Investment Order and Disclosure (3 steps)
- Brokerage Accredited Investor Verification, Rule 506(c) (2 steps)

For every step it resolves the active questions, validates and applies
one answer at a time, advances the cursor, computes derived figures and
decides step, form and cross-form completion.
"""

from onboarding.completion import GateResult, evaluate_gate, incomplete_steps
from onboarding.cursor import Cursor, advance, resolve_cursor
from onboarding.exceptions import (
    FormNotSelectedError,
    InactiveQuestionError,
    NotFoundError,
    OnboardingError,
    StepNotRequiredError,
    ValidationError,
)
from onboarding.forms import FORM_CATALOG, FormType, OnboardingStatus, form_by_slug, get_form
from onboarding.prefill import build_context
from onboarding.routing import next_onboarding_route, next_route_after_completion, resume_route
from onboarding.step_engine import Question, StepContext, StepDefinition
from onboarding.steps import STEP_REGISTRY, get_step_definition

__all__ = [
    "GateResult",
    "evaluate_gate",
    "incomplete_steps",
    "Cursor",
    "advance",
    "resolve_cursor",
    "FormNotSelectedError",
    "InactiveQuestionError",
    "NotFoundError",
    "OnboardingError",
    "StepNotRequiredError",
    "ValidationError",
    "FORM_CATALOG",
    "FormType",
    "OnboardingStatus",
    "form_by_slug",
    "get_form",
    "build_context",
    "next_onboarding_route",
    "next_route_after_completion",
    "resume_route",
    "Question",
    "StepContext",
    "StepDefinition",
    "STEP_REGISTRY",
    "get_step_definition",
]

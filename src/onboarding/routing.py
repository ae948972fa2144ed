"""Cross-Form Router.

Computes where the advisor goes next: the resume route of a form (its
first incomplete step, else the gating step) and the route after a form
completes (the next pending selected form in priority order, else the
dashboard).
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional

from validation.field_rules import FieldErrors

from .forms import FormType, OnboardingStatus, get_form, sort_by_priority, step_route

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARD_ROUTE = "/dashboard"


def resume_route(client_id: str, form_type: FormType, step_errors: Mapping[int, FieldErrors]) -> str:
    """Route of the first step with completion errors, else of the gating step.

    Args:
        step_errors: Completion errors keyed by step number; complete steps may be omitted.
    """
    form = get_form(form_type)
    for info in form.steps:
        if step_errors.get(info.number):
            return step_route(client_id, form.form_type, info.number)
    return step_route(client_id, form.form_type, form.gating_step)


def next_route_after_completion(
    client_id: str,
    completed_form: FormType,
    selected_forms: Iterable[FormType],
    pending_steps: Mapping[FormType, Optional[Dict[int, FieldErrors]]],
    dashboard_route: str = DEFAULT_DASHBOARD_ROUTE,
) -> str:
    """Route after completed_form finished its gating step.

    pending_steps maps each selected form to its incomplete steps; a form
    mapped to None has no onboarding record yet and starts at step 1.
    """
    ordered = sort_by_priority(selected_forms)
    completed_form = FormType(completed_form)
    later_forms = ordered[ordered.index(completed_form) + 1:] if completed_form in ordered else ordered

    for form_type in later_forms:
        if form_type not in pending_steps or pending_steps[form_type] is None:
            route = step_route(client_id, form_type, 1)
            logger.debug("Routing %s to unstarted form %s", client_id, form_type.value)
            return route
        errors = pending_steps[form_type]
        if errors:
            return resume_route(client_id, form_type, errors)

    return dashboard_route


def next_onboarding_route(
    client_id: str,
    selected_forms: Iterable[FormType],
    statuses: Mapping[FormType, OnboardingStatus],
    pending_steps: Mapping[FormType, Dict[int, FieldErrors]],
) -> Optional[str]:
    """Resume route of the first selected form that is not COMPLETED, if any."""
    for form_type in sort_by_priority(selected_forms):
        status = statuses.get(form_type, OnboardingStatus.NOT_STARTED)
        if status == OnboardingStatus.COMPLETED:
            continue
        return resume_route(client_id, form_type, pending_steps.get(form_type) or {})
    return None

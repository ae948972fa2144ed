"""
Form catalog.

Static metadata for the four onboarding forms: code, route slug, title,
ordered steps and the single gating step whose success completes the form.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class FormType(str, Enum):
    """Onboarding form codes, declared in routing priority order."""
    INVESTOR_PROFILE = "INVESTOR_PROFILE"
    SFC = "SFC"
    BAIODF = "BAIODF"
    BAIV_506C = "BAIV_506C"


class OnboardingStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class StepInfo:
    number: int
    key: str
    label: str


@dataclass(frozen=True)
class FormDefinition:
    form_type: FormType
    slug: str
    title: str
    gating_step: int
    steps: Tuple[StepInfo, ...]

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step(self, number: int) -> Optional[StepInfo]:
        for info in self.steps:
            if info.number == number:
                return info
        return None


FORM_CATALOG: Dict[FormType, FormDefinition] = {
    FormType.INVESTOR_PROFILE: FormDefinition(
        form_type=FormType.INVESTOR_PROFILE,
        slug="investor-profile",
        title="Investor Profile",
        gating_step=7,
        steps=(
            StepInfo(1, "STEP_1_ACCOUNT_REGISTRATION", "STEP 1. ACCOUNT REGISTRATION"),
            StepInfo(2, "STEP_2_USA_PATRIOT_ACT_INFORMATION", "STEP 2. USA PATRIOT ACT INFORMATION"),
            StepInfo(3, "STEP_3_PRIMARY_ACCOUNT_HOLDER_INFORMATION", "STEP 3. PRIMARY ACCOUNT HOLDER INFORMATION"),
            StepInfo(
                4,
                "STEP_4_SECONDARY_ACCOUNT_HOLDER_INFORMATION",
                "STEP 4. SECONDARY ACCOUNT HOLDER INFORMATION (Joint Holder #2, Trustee #1, Entity Manager)",
            ),
            StepInfo(5, "STEP_5_OBJECTIVES_AND_INVESTMENT_DETAIL", "STEP 5. OBJECTIVES AND INVESTMENT DETAIL"),
            StepInfo(6, "STEP_6_TRUSTED_CONTACT", "STEP 6. TRUSTED CONTACT"),
            StepInfo(7, "STEP_7_SIGNATURES", "STEP 7. SIGNATURES"),
        ),
    ),
    FormType.SFC: FormDefinition(
        form_type=FormType.SFC,
        slug="statement-of-financial-condition",
        title="Statement of Financial Condition",
        gating_step=2,
        steps=(
            StepInfo(1, "STEP_1_FINANCIALS", "STEP 1. STATEMENT OF FINANCIAL CONDITION"),
            StepInfo(2, "STEP_2_FINALIZATION", "STEP 2. STATEMENT OF FINANCIAL CONDITION"),
        ),
    ),
    FormType.BAIODF: FormDefinition(
        form_type=FormType.BAIODF,
        slug="brokerage-alternative-investment-order-disclosure",
        title="Brokerage Alternative Investment Order and Disclosure Form",
        gating_step=3,
        steps=(
            StepInfo(1, "STEP_1_CUSTOMER_ACCOUNT_INFORMATION", "STEP 1. CUSTOMER / ACCOUNT INFORMATION"),
            StepInfo(2, "STEP_2_CUSTOMER_ORDER_INFORMATION", "STEP 2. CUSTOMER ORDER INFORMATION"),
            StepInfo(3, "STEP_3_DISCLOSURES_AND_SIGNATURES", "STEP 3. DISCLOSURES + SIGNATURES"),
        ),
    ),
    FormType.BAIV_506C: FormDefinition(
        form_type=FormType.BAIV_506C,
        slug="brokerage-accredited-investor-verification",
        title="Brokerage Accredited Investor Verification Form for SEC Rule 506(c)",
        gating_step=2,
        steps=(
            StepInfo(1, "STEP_1_CLIENT_ACCOUNT_INFORMATION", "STEP 1. CLIENT / ACCOUNT INFORMATION"),
            StepInfo(2, "STEP_2_ACKNOWLEDGEMENTS_AND_SIGNATURES", "STEP 2. ACKNOWLEDGEMENTS AND SIGNATURES"),
        ),
    ),
}

FORM_SEQUENCE: List[FormType] = list(FormType)


def get_form(form_type: FormType) -> FormDefinition:
    return FORM_CATALOG[FormType(form_type)]


def form_by_slug(slug: str) -> Optional[FormDefinition]:
    for definition in FORM_CATALOG.values():
        if definition.slug == slug:
            return definition
    return None


def step_route(client_id: str, form_type: FormType, step_number: int) -> str:
    """Client-facing path of a form step, e.g. /clients/abc/investor-profile/step-3."""
    return f"/clients/{client_id}/{get_form(form_type).slug}/step-{step_number}"


def sort_by_priority(form_types) -> List[FormType]:
    selected = {FormType(item) for item in form_types}
    return [form_type for form_type in FORM_SEQUENCE if form_type in selected]

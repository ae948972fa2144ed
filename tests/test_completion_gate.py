"""Tests for step completion and form status policy."""

from onboarding.completion import (
    evaluate_gate,
    form_status_after_review,
    form_status_after_write,
    incomplete_steps,
    requires_joint_owner_signature,
    step_gate,
)
from onboarding.forms import FormType, OnboardingStatus
from onboarding.steps import get_step_definition

IP = FormType.INVESTOR_PROFILE
SFC = FormType.SFC
BAIV = FormType.BAIV_506C


def complete_baiv(signature):
    return {
        (BAIV, 1): {"accountRegistration": {"rrName": "Rita", "rrNo": "7", "customerNames": "Jane"}},
        (BAIV, 2): {
            "acknowledgements": {
                "rule506cGuidelineAcknowledged": True,
                "secRuleReviewedAndUnderstood": True,
                "incomeOrNetWorthVerified": True,
                "documentationReviewed": True,
            },
            "signatures": {"accountOwner": signature(), "financialProfessional": signature("Alex Advisor")},
        },
    }


class TestStatusPolicy:
    """Tests for status transitions."""

    def test_non_gating_step_keeps_form_in_progress(self):
        """Writing step 1 never completes a form, even if every step is complete."""
        assert form_status_after_write(SFC, 1, OnboardingStatus.NOT_STARTED, {}) == OnboardingStatus.IN_PROGRESS

    def test_gating_step_completes_when_form_complete(self):
        assert form_status_after_write(SFC, 2, OnboardingStatus.IN_PROGRESS, {}) == OnboardingStatus.COMPLETED

    def test_gating_step_with_pending_steps(self):
        pending = {1: {"step1.accountRegistration.rrName": "RR Name is required."}}
        assert form_status_after_write(SFC, 2, OnboardingStatus.IN_PROGRESS, pending) == OnboardingStatus.IN_PROGRESS

    def test_completed_never_regresses(self):
        pending = {1: {"x": "y"}}
        assert form_status_after_write(SFC, 1, OnboardingStatus.COMPLETED, pending) == OnboardingStatus.COMPLETED
        assert form_status_after_review(OnboardingStatus.COMPLETED, pending) == OnboardingStatus.COMPLETED

    def test_review_save_completes_any_step(self):
        """Review saves are not tied to the gating step."""
        assert form_status_after_review(OnboardingStatus.IN_PROGRESS, {}) == OnboardingStatus.COMPLETED
        assert form_status_after_review(None, {2: {"x": "y"}}) == OnboardingStatus.IN_PROGRESS


class TestIncompleteSteps:
    """Tests for incomplete_steps."""

    def test_everything_pending_for_new_form(self, make_context):
        pending = incomplete_steps(BAIV, make_context(client_name=""))
        assert sorted(pending) == [1, 2]

    def test_complete_form(self, make_context, signature):
        assert incomplete_steps(BAIV, make_context(complete_baiv(signature))) == {}

    def test_step4_skipped_when_not_required(self, make_context, investor_step1):
        """An individual account never waits on the secondary holder."""
        individual = incomplete_steps(IP, make_context({(IP, 1): investor_step1("individual")}))
        joint = incomplete_steps(IP, make_context({(IP, 1): investor_step1("jointTenant")}))
        assert 4 not in individual
        assert 1 not in individual
        assert 4 in joint
        assert 1 in joint


class TestEvaluateGate:
    """Tests for evaluate_gate."""

    def test_gating_write_completes_form(self, make_context, signature):
        documents = complete_baiv(signature)
        context = make_context(documents)
        fields = documents[(BAIV, 2)]
        prepared = get_step_definition(BAIV, 2).prepare(fields, context)

        result = evaluate_gate(BAIV, 2, prepared, context, OnboardingStatus.IN_PROGRESS, {})
        assert result.status == OnboardingStatus.COMPLETED
        assert result.is_complete is True
        assert result.requires_joint_owner_signature is False

    def test_incomplete_gating_step(self, make_context):
        context = make_context()
        prepared = get_step_definition(BAIV, 2).prepare(None, context)
        pending = incomplete_steps(BAIV, context)

        result = evaluate_gate(BAIV, 2, prepared, context, OnboardingStatus.NOT_STARTED, pending)
        assert result.status == OnboardingStatus.IN_PROGRESS
        assert result.is_complete is False

    def test_joint_signature_flag_only_on_signature_steps(self, make_context, investor_step1):
        context = make_context({(IP, 1): investor_step1("jointTenant")})
        assert requires_joint_owner_signature(IP, 7, context) is True
        assert requires_joint_owner_signature(SFC, 2, context) is True
        assert requires_joint_owner_signature(IP, 3, context) is False

    def test_step_gate_keeps_given_status(self, make_context, investor_step1):
        """Reads report the stored status with the step's own gate outputs."""
        context = make_context({(IP, 1): investor_step1("jointTenant")})
        prepared = get_step_definition(SFC, 2).prepare(None, context)

        result = step_gate(SFC, 2, prepared, context, OnboardingStatus.COMPLETED)
        assert result.status == OnboardingStatus.COMPLETED
        assert result.requires_joint_owner_signature is True
        assert result.is_complete is False

"""Tests for the Brokerage Accredited Investor Verification (506(c)) steps."""

import pytest

from onboarding.completion import requires_joint_owner_signature
from onboarding.exceptions import InactiveQuestionError, ValidationError
from onboarding.forms import FormType
from onboarding.steps import get_step_definition

BAIV = FormType.BAIV_506C
BAIODF = FormType.BAIODF
SFC = FormType.SFC
IP = FormType.INVESTOR_PROFILE


class TestRegistration:
    """Tests for BAIV step 1."""

    def test_single_question(self, make_context):
        definition = get_step_definition(BAIV, 1)
        assert definition.resolve(definition.default_fields(), make_context()) == ["step1.accountRegistration"]

    def test_missing_registration_values(self, make_context):
        definition = get_step_definition(BAIV, 1)
        with pytest.raises(ValidationError) as exc_info:
            definition.submit(
                definition.default_fields(), "step1.accountRegistration", {"rrName": "Rita"}, make_context()
            )
        assert exc_info.value.field_errors == {
            "step1.accountRegistration.rrNo": "RR No. is required.",
            "step1.accountRegistration.customerNames": "Customer name(s) are required.",
        }

    def test_complete_after_valid_write(self, make_context):
        """The cursor stays on the only question and the step is complete."""
        definition = get_step_definition(BAIV, 1)
        context = make_context()
        outcome = definition.submit(
            definition.default_fields(),
            "step1.accountRegistration",
            {"rrName": "Rita", "rrNo": "7", "customerNames": "Jane"},
            context,
        )
        assert outcome.cursor.question_id == "step1.accountRegistration"
        assert outcome.cursor.index == 0
        assert definition.completion_errors(outcome.fields, context) == {}


class TestVerification:
    """Tests for BAIV step 2."""

    def test_four_acknowledgements(self, make_context):
        definition = get_step_definition(BAIV, 2)
        assert set(definition.default_fields()["acknowledgements"]) == {
            "rule506cGuidelineAcknowledged",
            "secRuleReviewedAndUnderstood",
            "incomeOrNetWorthVerified",
            "documentationReviewed",
        }
        result = definition.validate(
            "step2.acknowledgements", {"documentationReviewed": True}, definition.default_fields(), make_context()
        )
        assert result.field_errors == {
            "step2.acknowledgements": "All required acknowledgements must be accepted."
        }

    def test_no_firm_question(self, make_context):
        """Only the financial professional signs for the firm on this form."""
        definition = get_step_definition(BAIV, 2)
        with pytest.raises(ValidationError) as exc_info:
            definition.submit(definition.default_fields(), "step2.signatures.firm", {}, make_context())
        assert not isinstance(exc_info.value, InactiveQuestionError)
        assert exc_info.value.field_errors == {"questionId": "Unsupported onboarding question."}

    def test_signature_source_order(self, make_context, signature):
        """BAIODF step 3 wins over SFC step 2, which wins over Investor Profile step 7."""
        context = make_context({
            (BAIODF, 3): {"signatures": {"accountOwner": {"typedSignature": "From BAIODF"}}},
            (SFC, 2): {"signatures": {"accountOwner": signature("From SFC")}},
            (IP, 7): {"signatures": {"accountOwner": signature("From IP")}},
        })
        block = get_step_definition(BAIV, 2).prepare(None, context)["signatures"]["accountOwner"]
        assert block["typedSignature"] == "From BAIODF"
        assert block["printedName"] == "From SFC"

    def test_joint_signature_for_joint_accounts(self, make_context, investor_step1, signature):
        context = make_context({
            (IP, 1): investor_step1("transferOnDeathJoint"),
            (IP, 7): {"signatures": {"jointAccountOwner": signature("Joe Joint")}},
        })
        definition = get_step_definition(BAIV, 2)
        fields = definition.prepare(None, context)
        assert requires_joint_owner_signature(BAIV, 2, context) is True
        assert fields["signatures"]["jointAccountOwner"] == signature("Joe Joint")

    def test_prefill_is_idempotent(self, make_context, signature):
        context = make_context({(SFC, 2): {"signatures": {"accountOwner": signature()}}})
        definition = get_step_definition(BAIV, 2)
        once = definition.prepare(None, context)
        assert definition.prepare(once, context) == once

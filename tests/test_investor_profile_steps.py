"""Tests for the seven Investor Profile steps."""

import pytest

from onboarding.completion import requires_joint_owner_signature
from onboarding.exceptions import InactiveQuestionError, ValidationError
from onboarding.forms import FormType
from onboarding.prefill import apply_holder_kind_default
from onboarding.steps import get_step_definition

IP = FormType.INVESTOR_PROFILE


def step(number):
    return get_step_definition(IP, number)


class TestAccountRegistration:
    """Tests for step 1: account registration and type of account."""

    def test_base_questions_visible_without_account_type(self, make_context):
        """Only the registration questions and the type picker are active."""
        definition = step(1)
        visible = definition.resolve(definition.default_fields(), make_context())
        assert visible == [
            "rrName",
            "rrNo",
            "customerNames",
            "accountNo",
            "accountRegistration.retailRetirement",
            "typeOfAccount.primaryType",
        ]

    def test_trust_reveals_follow_ups_and_advances(self, make_context):
        """Choosing trust reveals its questions and the cursor moves onto the first one."""
        definition = step(1)
        outcome = definition.submit(
            definition.default_fields(), "typeOfAccount.primaryType", {"trust": True}, make_context()
        )
        assert outcome.visible_question_ids[-2:] == [
            "typeOfAccount.trust.establishmentDate",
            "typeOfAccount.trust.trustType",
        ]
        assert outcome.cursor.question_id == "typeOfAccount.trust.establishmentDate"
        assert outcome.cursor.index == 6

    def test_two_account_types_rejected(self, make_context):
        definition = step(1)
        with pytest.raises(ValidationError) as exc_info:
            definition.submit(
                definition.default_fields(),
                "typeOfAccount.primaryType",
                {"trust": True, "individual": True},
                make_context(),
            )
        assert exc_info.value.field_errors == {"typeOfAccount.primaryType": "Please choose exactly one option."}

    def test_hidden_follow_up_rejected(self, make_context):
        """A trust question cannot be answered before trust is chosen."""
        definition = step(1)
        with pytest.raises(InactiveQuestionError):
            definition.submit(
                definition.default_fields(), "typeOfAccount.trust.trustType", {"living": True}, make_context()
            )

    def test_unknown_question_rejected(self, make_context):
        definition = step(1)
        with pytest.raises(ValidationError) as exc_info:
            definition.submit(definition.default_fields(), "nope", "x", make_context())
        assert exc_info.value.field_errors == {"questionId": "Unsupported onboarding question."}

    def test_number_of_tenants_needs_two(self, make_context, investor_step1):
        definition = step(1)
        fields = definition.normalize(investor_step1("jointTenant"))
        with pytest.raises(ValidationError) as exc_info:
            definition.submit(fields, "typeOfAccount.joint.numberOfTenants", "1", make_context())
        assert "typeOfAccount.joint.numberOfTenants" in exc_info.value.field_errors

    def test_hidden_branch_ignored_by_completion(self, make_context, investor_step1):
        """Stale trust answers do not block completion once the type changes."""
        definition = step(1)
        document = investor_step1("individual")
        document["typeOfAccount"]["trust"] = {"establishmentDate": "bad-date", "trustType": {}}
        fields = definition.normalize(document)
        assert fields["typeOfAccount"]["trust"]["establishmentDate"] == "bad-date"
        assert definition.completion_errors(fields, make_context()) == {}

    def test_completion_reports_missing_trust_details(self, make_context, investor_step1):
        definition = step(1)
        fields = definition.normalize(investor_step1("trust"))
        errors = definition.completion_errors(fields, make_context())
        assert errors == {
            "typeOfAccount.trust.establishmentDate": "Trust establishment date is required.",
            "typeOfAccount.trust.trustType": "Select one trust type.",
        }

    def test_legacy_root_values_are_lifted(self):
        """Older documents stored registration values at the root."""
        fields = step(1).normalize({"rrName": "Old Rep", "accountType": {"retirement": True}})
        assert fields["accountRegistration"]["rrName"] == "Old Rep"
        assert fields["accountRegistration"]["retailRetirement"] == {"retail": False, "retirement": True}

    def test_requires_step4_flag(self, make_context, investor_step1):
        """Step 1 responses tell the client whether step 4 applies."""
        joint = make_context({(IP, 1): investor_step1("jointTenant")})
        single = make_context({(IP, 1): investor_step1("individual")})
        assert step(1).extras(joint) == {"requiresStep4": True}
        assert step(1).extras(single) == {"requiresStep4": False}


class TestSourceOfFunds:
    """Tests for step 2: USA PATRIOT Act source of funds."""

    def test_nothing_selected(self, make_context):
        definition = step(2)
        result = definition.validate("step2.initialSourceOfFunds", {}, definition.default_fields(), make_context())
        assert result.field_errors == {"initialSourceOfFunds": "Please select at least one source of funds."}

    def test_other_requires_details(self, make_context):
        definition = step(2)
        result = definition.validate(
            "step2.initialSourceOfFunds", {"other": True}, definition.default_fields(), make_context()
        )
        assert result.field_errors == {"initialSourceOfFunds.otherDetails": "Please add details for Other."}

    def test_details_kept_without_other(self, make_context):
        """Other details stay stored when Other is not selected."""
        definition = step(2)
        result = definition.validate(
            "step2.initialSourceOfFunds",
            {"gift": True, "otherDetails": " leftover "},
            definition.default_fields(),
            make_context(),
        )
        assert result.is_valid
        assert result.value["otherDetails"] == "leftover"

    def test_hidden_details_survive_prepare(self, make_context):
        definition = step(2)
        raw = {"initialSourceOfFunds": {"gift": True, "other": False, "otherDetails": "Lottery win"}}
        fields = definition.prepare(raw, make_context())
        assert fields["initialSourceOfFunds"]["otherDetails"] == "Lottery win"
        assert definition.completion_errors(fields, make_context()) == {}

    def test_hidden_details_survive_review_save(self, service):
        service.create_client("Jane Client", client_id="c1", selected_forms=["INVESTOR_PROFILE"])
        saved = service.save_review("c1", "investor-profile", 2, {
            "initialSourceOfFunds": {"gift": True, "other": False, "otherDetails": "Lottery win"},
        })
        assert saved["step"]["fields"]["initialSourceOfFunds"]["otherDetails"] == "Lottery win"

        reread = service.get_step("c1", "investor-profile", 2)
        assert reread["step"]["fields"]["initialSourceOfFunds"]["otherDetails"] == "Lottery win"


class TestAccountHolders:
    """Tests for steps 3 and 4: primary and secondary holders."""

    def test_entity_account_defaults_holder_kind(self, make_context, investor_step1):
        """A trust account starts its holder step as an entity."""
        context = make_context({(IP, 1): investor_step1("trust")})
        fields = step(3).prepare(None, context)
        assert fields["holder"]["kind"] == {"person": False, "entity": True}

        visible = step(3).resolve(fields, context)
        assert "step3.holder.taxId.ssn" not in visible
        assert "step3.holder.gender" not in visible
        assert "step3.holder.taxId.hasEin" in visible

    def test_person_questions(self, make_context):
        definition = step(3)
        context = make_context()
        fields = definition.prepare(None, context)
        visible = definition.resolve(fields, context)
        assert "step3.holder.taxId.ssn" in visible
        assert "step3.holder.contact.dateOfBirth" in visible
        assert "step3.holder.employment.occupation" not in visible

    def test_employment_reveals_employer_questions(self, make_context):
        definition = step(3)
        context = make_context()
        fields = definition.prepare(None, context)
        outcome = definition.submit(fields, "step3.holder.employment.status", {"employed": True}, context)
        assert "step3.holder.employment.occupation" in outcome.visible_question_ids
        assert outcome.cursor.question_id == "step3.holder.employment.occupation"

    def test_holder_kind_default_is_idempotent(self, make_context, investor_step1):
        """Prefill applied twice gives the same document and never overrides a choice."""
        context = make_context({(IP, 1): investor_step1("corporation")})
        fields = step(3).normalize(None)
        once = apply_holder_kind_default(fields, context)
        assert apply_holder_kind_default(once, context) == once

        chosen = step(3).normalize({"holder": {"kind": {"person": True}}})
        assert apply_holder_kind_default(chosen, context)["holder"]["kind"] == {"person": True, "entity": False}

    def test_invalid_email(self, make_context):
        definition = step(3)
        context = make_context()
        with pytest.raises(ValidationError) as exc_info:
            definition.submit(definition.prepare(None, context), "step3.holder.contact.email", "jane@", context)
        assert exc_info.value.field_errors == {"step3.holder.contact.email": "Enter a valid email."}

    def test_income_range_order(self, make_context):
        definition = step(3)
        context = make_context()
        result = definition.validate(
            "step3.financial.annualIncomeRange",
            {"fromBracket": "1m_5m", "toBracket": "under_50k"},
            definition.prepare(None, context),
            context,
        )
        assert result.field_errors == {
            "step3.financial.annualIncomeRange.toBracket": "The From range must be less than or equal to the To range."
        }

    def test_step4_required_only_for_multi_party_accounts(self, make_context, investor_step1):
        assert step(4).required_for(make_context({(IP, 1): investor_step1("jointTenant")})) is True
        assert step(4).required_for(make_context({(IP, 1): investor_step1("trust")})) is True
        assert step(4).required_for(make_context({(IP, 1): investor_step1("individual")})) is False
        assert step(4).required_for(make_context()) is False

    def test_secondary_holder_may_be_homemaker(self, make_context):
        """Only the secondary holder offers the homemaker status."""
        context = make_context()
        secondary = step(4).validate(
            "step4.holder.employment.status", {"homemaker": True}, step(4).prepare(None, context), context
        )
        primary = step(3).validate(
            "step3.holder.employment.status", {"homemaker": True}, step(3).prepare(None, context), context
        )
        assert secondary.is_valid
        assert not primary.is_valid

    def test_empty_holder_step_is_incomplete(self, make_context):
        context = make_context()
        errors = step(3).completion_errors(step(3).prepare(None, context), context)
        assert errors
        assert all(key.startswith("step3.") for key in errors)


class TestObjectives:
    """Tests for step 5: objectives and investment detail."""

    def test_risk_exposure_exactly_one(self, make_context):
        definition = step(5)
        result = definition.validate(
            "step5.profile.riskExposure",
            {"low": True, "highRisk": True},
            definition.default_fields(),
            make_context(),
        )
        assert result.field_errors == {"step5.profile.riskExposure": "Select exactly one risk exposure option."}

    def test_other_entries_follow_has_other(self, make_context):
        definition = step(5)
        context = make_context()
        fields = definition.default_fields()
        assert "step5.investments.otherEntries" not in definition.resolve(fields, context)

        outcome = definition.submit(fields, "step5.investments.hasOther", {"yes": True}, context)
        assert "step5.investments.otherEntries" in outcome.visible_question_ids
        assert outcome.cursor.question_id == "step5.investments.otherEntries"

    def test_other_entries_need_label_and_value(self, make_context):
        definition = step(5)
        result = definition.validate(
            "step5.investments.otherEntries",
            {"entries": [{"label": "Art", "value": None}, {"label": None, "value": "5"}]},
            definition.default_fields(),
            make_context(),
        )
        assert result.field_errors == {
            "step5.investments.otherEntries.entries.0.value": (
                "Other investment value must be a number greater than or equal to 0."
            ),
            "step5.investments.otherEntries.entries.1.label": "Other investment label is required.",
        }

    def test_horizon_order(self, make_context):
        definition = step(5)
        result = definition.validate(
            "step5.horizonAndLiquidity",
            {"timeHorizon": {"fromYear": "2030", "toYear": 2020}, "liquidityNeeds": {"low": True}},
            definition.default_fields(),
            make_context(),
        )
        assert result.field_errors == {
            "step5.horizonAndLiquidity.timeHorizon.toYear": "To Year must be greater than or equal to From Year."
        }

    def test_market_values_required(self, make_context):
        definition = step(5)
        answer = {key: 0 for key in definition.default_fields()["investments"]["fixedValues"]["marketIncome"]}
        answer["equities"] = ""
        result = definition.validate(
            "step5.investments.fixedValues.marketIncome", answer, definition.default_fields(), make_context()
        )
        assert result.field_errors == {
            "step5.investments.fixedValues.marketIncome.equities": "Equities value is required."
        }


class TestTrustedContact:
    """Tests for step 6: trusted contact."""

    def test_declining_hides_contact_questions(self, make_context):
        definition = step(6)
        context = make_context()
        outcome = definition.submit(
            definition.default_fields(), "step6.trustedContact.decline", {"yes": True}, context
        )
        assert outcome.visible_question_ids == ["step6.trustedContact.decline"]
        assert definition.completion_errors(outcome.fields, context) == {}

    def test_providing_contact_requires_details(self, make_context):
        definition = step(6)
        context = make_context()
        outcome = definition.submit(
            definition.default_fields(), "step6.trustedContact.decline", {"no": True}, context
        )
        assert outcome.cursor.question_id == "step6.trustedContact.contactInfo"
        errors = definition.completion_errors(outcome.fields, context)
        assert errors["step6.trustedContact.contactInfo.name"] == "Trusted contact name is required."
        assert errors["step6.trustedContact.mailingAddress.country"] == "Country is required."

    def test_unanswered_decline(self, make_context):
        definition = step(6)
        assert definition.completion_errors(definition.default_fields(), make_context()) == {
            "step6.trustedContact.decline": "Select whether to provide a trusted contact."
        }

    def test_contact_info_formats(self, make_context):
        definition = step(6)
        fields = definition.normalize({"trustedContact": {"decline": {"no": True}}})
        result = definition.validate(
            "step6.trustedContact.contactInfo",
            {"name": "Tom", "email": "tom-at-example", "phones": {"home": "12"}},
            fields,
            make_context(),
        )
        assert result.field_errors == {
            "step6.trustedContact.contactInfo.email": "Enter a valid trusted contact email.",
            "step6.trustedContact.contactInfo.phones.home": "Enter a valid phone number.",
        }

    def test_contact_needs_a_phone(self, make_context):
        definition = step(6)
        fields = definition.normalize({"trustedContact": {"decline": {"no": True}}})
        result = definition.validate(
            "step6.trustedContact.contactInfo",
            {"name": "Tom", "email": "tom@example.com", "phones": {}},
            fields,
            make_context(),
        )
        assert result.field_errors == {
            "step6.trustedContact.contactInfo.phones.mobile": (
                "Enter at least one phone number (home, business, or mobile)."
            ),
        }


class TestSignatures:
    """Tests for step 7: certifications and signatures."""

    def test_printed_names_prefilled(self, make_context):
        """Account owner from the primary holder, financial professional from the advisor."""
        context = make_context({(IP, 3): {"holder": {"name": "Jane Q. Client"}}}, advisor_name="Alex Advisor")
        fields = step(7).prepare(None, context)
        assert fields["signatures"]["accountOwner"]["printedName"] == "Jane Q. Client"
        assert fields["signatures"]["financialProfessional"]["printedName"] == "Alex Advisor"
        assert fields["signatures"]["jointAccountOwner"]["printedName"] is None

    def test_joint_owner_required_for_joint_accounts(self, make_context, investor_step1, signature):
        context = make_context({(IP, 1): investor_step1("jointTenant")})
        definition = step(7)
        assert requires_joint_owner_signature(IP, 7, context) is True

        with pytest.raises(ValidationError) as exc_info:
            definition.submit(
                definition.prepare(None, context),
                "step7.signatures.accountOwners",
                {"accountOwner": signature()},
                context,
            )
        assert "step7.signatures.accountOwners.jointAccountOwner.typedSignature" in exc_info.value.field_errors

    def test_future_signature_date(self, make_context):
        definition = step(7)
        context = make_context()
        result = definition.validate(
            "step7.signatures.accountOwners",
            {"accountOwner": {"typedSignature": "J", "printedName": "J", "date": "2999-01-01"}},
            definition.prepare(None, context),
            context,
        )
        assert result.field_errors == {
            "step7.signatures.accountOwners.accountOwner.date": "Signature date cannot be in the future."
        }

    def test_supervisor_block_is_all_or_none(self, make_context, signature):
        definition = step(7)
        context = make_context()
        fields = definition.prepare(None, context)
        empty = definition.validate(
            "step7.signatures.firm", {"financialProfessional": signature("Alex")}, fields, context
        )
        partial = definition.validate(
            "step7.signatures.firm",
            {"financialProfessional": signature("Alex"), "supervisorPrincipal": {"printedName": "Sam"}},
            fields,
            context,
        )
        assert empty.is_valid
        assert set(partial.field_errors) == {
            "step7.signatures.firm.supervisorPrincipal.typedSignature",
            "step7.signatures.firm.supervisorPrincipal.date",
        }

    def test_complete_signature_step(self, make_context, signature):
        definition = step(7)
        context = make_context()
        fields = definition.prepare(None, context)
        for question_id, answer in (
            ("step7.certifications.acceptances", {
                "attestationsAccepted": True,
                "taxpayerCertificationAccepted": True,
                "usPersonDefinitionAcknowledged": True,
            }),
            ("step7.signatures.accountOwners", {"accountOwner": signature()}),
            ("step7.signatures.firm", {"financialProfessional": signature("Alex Advisor")}),
        ):
            fields = definition.submit(fields, question_id, answer, context).fields
        assert definition.completion_errors(fields, context) == {}

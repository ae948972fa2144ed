"""Tests for the Brokerage Alternative Investment Order and Disclosure Form steps."""

import pytest

from onboarding.exceptions import ValidationError
from onboarding.forms import FormType
from onboarding.steps import get_step_definition

BAIODF = FormType.BAIODF
SFC = FormType.SFC
IP = FormType.INVESTOR_PROFILE


def order_basics(**overrides):
    answer = {
        "proposedPrincipalAmount": 100,
        "qualifiedAccount": {"no": True},
        "solicitedTrade": {"yes": True},
        "taxAdvantagePurchase": {"no": True},
    }
    answer.update(overrides)
    return answer


class TestOrderBasics:
    """Tests for BAIODF step 1."""

    def test_valid_order(self, make_context):
        definition = get_step_definition(BAIODF, 1)
        result = definition.validate("step1.orderBasics", order_basics(), definition.default_fields(), make_context())
        assert result.is_valid
        assert result.value["proposedPrincipalAmount"] == 100.0
        assert result.value["qualifiedAccountRmdCertification"] is False

    def test_qualified_account_needs_certification(self, make_context):
        definition = get_step_definition(BAIODF, 1)
        result = definition.validate(
            "step1.orderBasics", order_basics(qualifiedAccount={"yes": True}), definition.default_fields(),
            make_context(),
        )
        assert result.field_errors == {
            "step1.orderBasics.qualifiedAccountRmdCertification": (
                "Certification is required when Qualified Account is Yes."
            ),
        }

    def test_certification_dropped_for_non_qualified(self, make_context):
        """The certification flag only persists for qualified accounts."""
        definition = get_step_definition(BAIODF, 1)
        result = definition.validate(
            "step1.orderBasics",
            order_basics(qualifiedAccountRmdCertification=True),
            definition.default_fields(),
            make_context(),
        )
        assert result.value["qualifiedAccountRmdCertification"] is False

    def test_yes_no_answers_required(self, make_context):
        definition = get_step_definition(BAIODF, 1)
        result = definition.validate(
            "step1.orderBasics",
            order_basics(solicitedTrade={}, proposedPrincipalAmount=-1),
            definition.default_fields(),
            make_context(),
        )
        assert result.field_errors == {
            "step1.orderBasics.proposedPrincipalAmount": "Enter a valid non-negative amount.",
            "step1.orderBasics.solicitedTrade": "Select exactly one option.",
        }

    def test_registration_prefilled(self, make_context, investor_step1):
        context = make_context({(IP, 1): investor_step1("individual")})
        fields = get_step_definition(BAIODF, 1).prepare(None, context)
        assert fields["accountRegistration"]["rrNo"] == "RR-100"


class TestOrderInformation:
    """Tests for BAIODF step 2."""

    def test_net_worth_prefilled_from_sfc(self, make_context):
        context = make_context({
            (SFC, 1): {
                "liquidNonQualifiedAssets": {"cashMoneyMarketsCds": 600},
                "liquidQualifiedAssets": {"retirementPlans": 150},
                "illiquidNonQualifiedAssets": {"primaryResidence": 500},
                "liabilities": {"creditCards": 100},
            },
        })
        fields = get_step_definition(BAIODF, 2).prepare(None, context)
        assert fields["netWorthAndConcentration"] == {"totalNetWorth": 1000.0, "liquidNetWorth": 750.0}

    def test_net_worth_not_overwritten(self, make_context):
        context = make_context({(SFC, 1): {"liquidNonQualifiedAssets": {"cashMoneyMarketsCds": 600}}})
        stored = {"netWorthAndConcentration": {"totalNetWorth": 42}}
        fields = get_step_definition(BAIODF, 2).prepare(stored, context)
        assert fields["netWorthAndConcentration"]["totalNetWorth"] == 42.0

    def test_no_prefill_without_sfc(self, make_context):
        fields = get_step_definition(BAIODF, 2).prepare(None, make_context())
        assert fields["netWorthAndConcentration"] == {"totalNetWorth": 0.0, "liquidNetWorth": 0.0}

    def test_concentrations_view(self, make_context):
        """Concentration uses the proposed amount from step 1."""
        context = make_context({(BAIODF, 1): {"orderBasics": {"proposedPrincipalAmount": 100}}})
        definition = get_step_definition(BAIODF, 2)
        fields = definition.normalize({
            "existingAltPositions": {"existingIlliquidAltPositions": 100, "existingSemiLiquidAltPositions": 50},
            "netWorthAndConcentration": {"totalNetWorth": 1000},
        })
        assert definition.derived_key == "concentrations"
        view = definition.derive_view(fields, context)
        assert view["existingIlliquidAltConcentrationPercent"] == 10
        assert view["totalConcentrationPercent"] == 25

    def test_net_worth_must_be_positive(self, make_context):
        definition = get_step_definition(BAIODF, 2)
        result = definition.validate(
            "step2.netWorthAndConcentration", {"totalNetWorth": 0}, definition.default_fields(), make_context()
        )
        assert result.field_errors == {
            "step2.netWorthAndConcentration.totalNetWorth": "Total Net Worth must be greater than 0."
        }

    def test_custodian_other_requires_name(self, make_context):
        definition = get_step_definition(BAIODF, 2)
        result = definition.validate(
            "step2.custodianAndProduct",
            {
                "custodian": {"other": True},
                "nameOfProduct": "Fund",
                "sponsorIssuer": "Sponsor",
                "dateOfPpm": "2024-01-01",
                "datePpmSent": "2024/01/02",
            },
            definition.default_fields(),
            make_context(),
        )
        assert result.field_errors == {
            "step2.custodianAndProduct.custodianOther": "Specify the custodian when Other is selected.",
            "step2.custodianAndProduct.datePpmSent": "Enter a valid date in YYYY-MM-DD format.",
        }

    def test_two_custodians_rejected(self, make_context):
        definition = get_step_definition(BAIODF, 2)
        result = definition.validate(
            "step2.custodianAndProduct",
            {
                "custodian": {"firstClearing": True, "direct": True},
                "nameOfProduct": "Fund",
                "sponsorIssuer": "Sponsor",
                "dateOfPpm": "2024-01-01",
                "datePpmSent": "2024-01-02",
            },
            definition.default_fields(),
            make_context(),
        )
        assert result.field_errors == {
            "step2.custodianAndProduct.custodian": "Select exactly one custodian option.",
        }


class TestDisclosures:
    """Tests for BAIODF step 3."""

    def test_all_ten_disclosures_required(self, make_context):
        definition = get_step_definition(BAIODF, 3)
        acknowledgements = {key: True for key in definition.default_fields()["acknowledgements"]}
        assert len(acknowledgements) == 10

        context = make_context()
        fields = definition.prepare(None, context)
        outcome = definition.submit(fields, "step3.acknowledgements", acknowledgements, context)
        assert outcome.cursor.question_id == "step3.signatures.accountOwners"

        acknowledgements["noPublicMarket"] = False
        with pytest.raises(ValidationError):
            definition.submit(fields, "step3.acknowledgements", acknowledgements, context)

    def test_signatures_prefer_sfc_over_investor_profile(self, make_context, signature):
        context = make_context({
            (SFC, 2): {"signatures": {"accountOwner": signature("From SFC")}},
            (IP, 7): {"signatures": {
                "accountOwner": signature("From IP"),
                "financialProfessional": signature("Advisor IP"),
            }},
        })
        fields = get_step_definition(BAIODF, 3).prepare(None, context)
        assert fields["signatures"]["accountOwner"]["typedSignature"] == "From SFC"
        assert fields["signatures"]["financialProfessional"]["typedSignature"] == "Advisor IP"

    def test_financial_professional_printed_name_from_advisor(self, make_context):
        fields = get_step_definition(BAIODF, 3).prepare(None, make_context(advisor_name="Alex Advisor"))
        assert fields["signatures"]["financialProfessional"] == {
            "typedSignature": None,
            "printedName": "Alex Advisor",
            "date": None,
        }

"""Tests for derived totals and concentration percentages."""

import pytest

from onboarding.calculators import baiodf_concentrations, compute_percent, sfc_totals
from onboarding.forms import FormType
from onboarding.steps import get_step_definition


def sfc_fields(**sections):
    return get_step_definition(FormType.SFC, 1).normalize(sections)


def baiodf_fields(net_worth, illiquid=0, semi_liquid=0, tax_advantage=0):
    return get_step_definition(FormType.BAIODF, 2).normalize({
        "existingAltPositions": {
            "existingIlliquidAltPositions": illiquid,
            "existingSemiLiquidAltPositions": semi_liquid,
            "existingTaxAdvantageAltPositions": tax_advantage,
        },
        "netWorthAndConcentration": {"totalNetWorth": net_worth},
    })


class TestComputePercent:
    """Tests for compute_percent."""

    @pytest.mark.parametrize("numerator,denominator,expected", [
        (10, 100, 10),
        (1, 3, 33.33),
        (5, 0, 0),
        (5, -10, 0),
        (float("inf"), 10, 0),
    ])
    def test_compute_percent(self, numerator, denominator, expected):
        assert compute_percent(numerator, denominator) == expected


class TestSfcTotals:
    """Tests for the SFC summary figures."""

    def test_empty_document(self):
        totals = sfc_totals(sfc_fields())
        assert all(value == 0 for value in totals.to_dict().values())

    def test_totals(self):
        totals = sfc_totals(sfc_fields(
            liquidNonQualifiedAssets={"cashMoneyMarketsCds": 1000, "managedAccounts": "500"},
            liabilities={"mortgagePrimaryResidence": 300, "creditCards": 200},
            illiquidNonQualifiedAssets={"primaryResidence": 800, "investmentRealEstate": 400, "privateBusiness": 100},
            liquidQualifiedAssets={"retirementPlans": 250},
            incomeSummary={"salaryCommissions": 90, "pension": 10},
            illiquidQualifiedAssets={"purchaseAmountValue": 60},
        ))
        assert totals.totalLiquidAssets == 1500
        assert totals.totalLiabilities == 500
        assert totals.totalIlliquidAssetsEquity == 1300
        assert totals.totalIlliquidSecurities == 500
        assert totals.totalAssetsLessPrimaryResidence == 2000
        assert totals.totalNetWorthAssetsLessPrimaryResidenceLiabilities == 1500
        assert totals.totalNetWorth == 2300
        assert totals.totalPotentialLiquidity == 1750
        assert totals.totalAnnualIncome == 100
        assert totals.totalIlliquidQualifiedAssets == 60

    def test_invalid_amounts_count_as_zero(self):
        """Stored garbage never breaks the totals view."""
        totals = sfc_totals(sfc_fields(liabilities={"creditCards": "lots", "homeEquityLoans": -5}))
        assert totals.totalLiabilities == 0

    def test_negative_net_worth(self):
        totals = sfc_totals(sfc_fields(liabilities={"creditCards": 50}))
        assert totals.totalNetWorth == -50


class TestConcentrations:
    """Tests for BAIODF step 2 concentration percentages."""

    def test_ten_percent_existing_illiquid(self):
        view = baiodf_concentrations(baiodf_fields(1000, illiquid=100))
        assert view.existingIlliquidAltConcentrationPercent == 10
        assert view.totalConcentrationPercent == 10

    def test_total_includes_proposed_and_semi_liquid(self):
        view = baiodf_concentrations(baiodf_fields(1000, illiquid=100, semi_liquid=50), proposed_principal_amount=100)
        assert view.existingIlliquidAltConcentrationPercent == 10
        assert view.existingSemiLiquidAltConcentrationPercent == 5
        assert view.totalConcentrationPercent == 25

    def test_tax_advantage_reported_separately(self):
        view = baiodf_concentrations(baiodf_fields(1000, tax_advantage=200))
        assert view.existingTaxAdvantageAltConcentrationPercent == 20
        assert view.totalConcentrationPercent == 0

    def test_zero_net_worth(self):
        view = baiodf_concentrations(baiodf_fields(0, illiquid=100), proposed_principal_amount=100)
        assert view.to_dict() == {
            "existingIlliquidAltConcentrationPercent": 0,
            "existingSemiLiquidAltConcentrationPercent": 0,
            "existingTaxAdvantageAltConcentrationPercent": 0,
            "totalConcentrationPercent": 0,
        }

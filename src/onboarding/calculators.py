"""Derived Calculators.

Read-only numeric views recomputed from a fields document on every read
and write. Results are raw numbers; formatting happens at the edge.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict

from validation.field_rules import normalize_amount


def _sum(values: Dict[str, Any]) -> float:
    return sum(normalize_amount(value) for value in values.values())


def compute_percent(numerator: float, denominator: float) -> float:
    """Percentage of numerator over denominator rounded to two places; 0 when undefined."""
    if not math.isfinite(numerator) or not math.isfinite(denominator) or denominator <= 0:
        return 0
    return round(numerator / denominator * 100, 2)


@dataclass
class SfcStepOneTotals:
    """Statement of Financial Condition summary figures."""
    totalLiabilities: float
    totalLiquidAssets: float
    totalLiquidQualifiedAssets: float
    totalAnnualIncome: float
    totalIlliquidAssetsEquity: float
    totalAssetsLessPrimaryResidence: float
    totalNetWorthAssetsLessPrimaryResidenceLiabilities: float
    totalIlliquidSecurities: float
    totalNetWorth: float
    totalPotentialLiquidity: float
    totalIlliquidQualifiedAssets: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def sfc_totals(fields: Dict[str, Any]) -> SfcStepOneTotals:
    illiquid = fields["illiquidNonQualifiedAssets"]
    total_liabilities = _sum(fields["liabilities"])
    total_liquid_assets = _sum(fields["liquidNonQualifiedAssets"])
    total_liquid_qualified = _sum(fields["liquidQualifiedAssets"])
    total_illiquid_equity = _sum(illiquid)
    illiquid_securities = normalize_amount(illiquid["investmentRealEstate"]) + normalize_amount(illiquid["privateBusiness"])
    assets_less_residence = total_liquid_assets + illiquid_securities

    return SfcStepOneTotals(
        totalLiabilities=total_liabilities,
        totalLiquidAssets=total_liquid_assets,
        totalLiquidQualifiedAssets=total_liquid_qualified,
        totalAnnualIncome=_sum(fields["incomeSummary"]),
        totalIlliquidAssetsEquity=total_illiquid_equity,
        totalAssetsLessPrimaryResidence=assets_less_residence,
        totalNetWorthAssetsLessPrimaryResidenceLiabilities=assets_less_residence - total_liabilities,
        totalIlliquidSecurities=illiquid_securities,
        totalNetWorth=total_liquid_assets + total_illiquid_equity - total_liabilities,
        totalPotentialLiquidity=total_liquid_assets + total_liquid_qualified,
        totalIlliquidQualifiedAssets=_sum(fields["illiquidQualifiedAssets"]),
    )


@dataclass
class BaiodfStepTwoConcentrations:
    """Existing alternative positions as a percentage of total net worth."""
    existingIlliquidAltConcentrationPercent: float
    existingSemiLiquidAltConcentrationPercent: float
    existingTaxAdvantageAltConcentrationPercent: float
    totalConcentrationPercent: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def baiodf_concentrations(fields: Dict[str, Any], proposed_principal_amount: Any = 0) -> BaiodfStepTwoConcentrations:
    """Concentrations for BAIODF step 2.

    The total combines the proposed purchase with the existing illiquid and
    semi-liquid positions; tax-advantaged positions are reported on their own.
    """
    positions = fields["existingAltPositions"]
    total_net_worth = normalize_amount(fields["netWorthAndConcentration"]["totalNetWorth"])
    illiquid = normalize_amount(positions["existingIlliquidAltPositions"])
    semi_liquid = normalize_amount(positions["existingSemiLiquidAltPositions"])
    tax_advantage = normalize_amount(positions["existingTaxAdvantageAltPositions"])

    return BaiodfStepTwoConcentrations(
        existingIlliquidAltConcentrationPercent=compute_percent(illiquid, total_net_worth),
        existingSemiLiquidAltConcentrationPercent=compute_percent(semi_liquid, total_net_worth),
        existingTaxAdvantageAltConcentrationPercent=compute_percent(tax_advantage, total_net_worth),
        totalConcentrationPercent=compute_percent(
            normalize_amount(proposed_principal_amount) + illiquid + semi_liquid,
            total_net_worth,
        ),
    )

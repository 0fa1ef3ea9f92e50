"""
U.S. federal, Illinois and Medicare premium calculator for retirement projections.
It contains the final tax calculation formulas, relying entirely on the indexed
values supplied by a utils.tax_utils.TaxTable.
"""
from dataclasses import dataclass
from typing import List, Optional
import numpy as np
import logging

logger = logging.getLogger(__name__)

from utils.tax_utils import (
    NIIT_RATE,
    SS_TAX_THRESHOLDS,
    Bracket,
    IrmaaTier,
    TaxFilingStatus,
    TaxTable,
)


@dataclass(frozen=True)
class IrmaaResult:
    part_b: float
    part_d: float
    total: float
    tier: int


@dataclass(frozen=True)
class TaxBreakdown:
    """Result of one tax pass for one year."""
    taxable_ss: float
    ordinary_income: float
    taxable_ordinary: float
    magi: float
    federal_tax: float
    ltcg_tax: float
    niit: float
    state_tax: float

    @property
    def total_tax(self) -> float:
        return self.federal_tax + self.ltcg_tax + self.niit + self.state_tax


# --- 1. Pure Tax Functions ---

def compute_federal_ordinary_tax(taxable_ordinary_income: float, brackets: List[Bracket]) -> float:
    """Marginal-bracket integration. Zero for non-positive income."""
    ord_tax = 0.0
    remaining_taxable = max(0.0, taxable_ordinary_income)

    for low, high, rate in brackets:
        if remaining_taxable <= 0:
            break
        bracket_income = min(remaining_taxable, high - low) if np.isfinite(high) else remaining_taxable
        ord_tax += bracket_income * rate
        remaining_taxable -= bracket_income

    return ord_tax


def compute_ltcg_tax(taxable_ordinary_income: float, capital_gains: float,
                     ltcg_brackets: List[Bracket]) -> float:
    """
    Tax on long-term gains stacked on top of ordinary income: the 0/15/20%
    rate applied to each dollar of gain depends on where ordinary income ends.
    """
    gains = max(0.0, capital_gains)
    if gains <= 0:
        return 0.0

    ltcg_tax = 0.0
    current_cg_base = max(0.0, taxable_ordinary_income)  # Where gains start stacking
    taxable_income = current_cg_base + gains

    for low, high, rate in ltcg_brackets:
        # Portion of the gains that falls into this bracket
        bracket_start = max(low, current_cg_base)
        bracket_end = min(high, taxable_income) if np.isfinite(high) else taxable_income

        taxable_in_cg_bracket = max(0.0, bracket_end - bracket_start)
        ltcg_tax += taxable_in_cg_bracket * rate

    return ltcg_tax


def compute_niit(magi: float, net_investment_income: float, threshold: float,
                 rate: float = NIIT_RATE) -> float:
    """3.8% on the lesser of net investment income or MAGI above the threshold."""
    excess = max(0.0, magi - threshold)
    base = min(max(0.0, net_investment_income), excess)
    return base * rate


def compute_state_tax(investment_income: float, rate: float) -> float:
    """Flat rate on investment income only; retirement distributions are exempt."""
    return max(0.0, investment_income) * rate


def compute_taxable_social_security(ss_benefit: float, other_income: float,
                                    filing_status: TaxFilingStatus = "married_filing_jointly") -> float:
    """
    IRS combined-income method using statutory (non-indexed) thresholds.

    combined = other income + 1/2 of benefits. Below the first threshold
    nothing is taxable; between the thresholds 50% of the excess (capped at
    half the benefit); above the second threshold 85% of that excess plus the
    first-tier amount, capped at 85% of benefits.
    """
    if ss_benefit <= 0:
        return 0.0

    tier1, tier2 = SS_TAX_THRESHOLDS.get(filing_status, SS_TAX_THRESHOLDS["married_filing_jointly"])
    combined_income = max(0.0, other_income) + 0.5 * ss_benefit

    if combined_income <= tier1:
        return 0.0
    if combined_income <= tier2:
        return min(0.5 * ss_benefit, 0.5 * (combined_income - tier1))

    tier1_portion = min(0.5 * ss_benefit, 0.5 * (tier2 - tier1))
    tier2_portion = 0.85 * (combined_income - tier2)
    return min(0.85 * ss_benefit, tier1_portion + tier2_portion)


def compute_irmaa(magi_two_years_prior: Optional[float], tiers: List[IrmaaTier],
                  people: int = 2) -> IrmaaResult:
    """
    Annual Medicare Part B and D premiums for the tier the lookback MAGI
    lands in (the highest tier whose threshold it exceeds). Returns zeros
    when the lookback MAGI is not available.
    """
    if magi_two_years_prior is None or people <= 0 or not tiers:
        return IrmaaResult(0.0, 0.0, 0.0, 0)

    tier_index = 0
    for i in range(len(tiers) - 1, -1, -1):
        if magi_two_years_prior > tiers[i][0]:
            tier_index = i
            break

    _, part_b_mo, part_d_mo = tiers[tier_index]
    part_b = part_b_mo * 12 * people
    part_d = part_d_mo * 12 * people
    return IrmaaResult(part_b, part_d, part_b + part_d, tier_index)


# --- 2. Main Orchestrator Function ---

def calculate_taxes(
    tax_table: TaxTable,
    year: int,
    filing_status: TaxFilingStatus,
    standard_deduction: float,
    ss_annual: float,
    ira_withdrawal: float,
    roth_conversion: float,
    capital_gains: float,
    exempt_ss_from_tax: bool = False,
) -> TaxBreakdown:
    """
    Calculates one pass of federal ordinary, LTCG, NIIT and state tax.

    Ordinary income is taxable Social Security plus IRA withdrawals plus the
    Roth conversion; MAGI adds capital gains on top of that.
    """
    ira_withdrawal = max(0.0, ira_withdrawal)
    roth_conversion = max(0.0, roth_conversion)
    capital_gains = max(0.0, capital_gains)

    # 1. Taxable Social Security
    if exempt_ss_from_tax:
        taxable_ss = 0.0
    else:
        other_income = ira_withdrawal + roth_conversion + capital_gains
        taxable_ss = compute_taxable_social_security(ss_annual, other_income, filing_status)

    # 2. Ordinary income and taxable base
    ordinary_income = taxable_ss + ira_withdrawal + roth_conversion
    taxable_ordinary = max(0.0, ordinary_income - standard_deduction)
    magi = ordinary_income + capital_gains

    # 3. Federal
    federal_tax = compute_federal_ordinary_tax(
        taxable_ordinary, tax_table.brackets_for(year, "federal_ordinary", filing_status)
    )
    ltcg_tax = compute_ltcg_tax(
        taxable_ordinary, capital_gains, tax_table.brackets_for(year, "ltcg", filing_status)
    )
    niit = compute_niit(magi, capital_gains, tax_table.niit_threshold(filing_status), tax_table.niit_rate())

    # 4. State (investment income only)
    state_tax = compute_state_tax(capital_gains, tax_table.state_rate())

    logger.debug(
        "Taxes %s: taxable_ordinary=%.2f gains=%.2f fed=%.2f ltcg=%.2f niit=%.2f state=%.2f",
        year, taxable_ordinary, capital_gains, federal_tax, ltcg_tax, niit, state_tax,
    )

    return TaxBreakdown(
        taxable_ss=taxable_ss,
        ordinary_income=ordinary_income,
        taxable_ordinary=taxable_ordinary,
        magi=magi,
        federal_tax=federal_tax,
        ltcg_tax=ltcg_tax,
        niit=niit,
        state_tax=state_tax,
    )

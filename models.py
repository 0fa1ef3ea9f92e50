# models.py
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple

from config.projection_assumptions import (
    default_discount_rate,
    default_withdrawal_order,
    max_tax_iterations,
    tax_convergence_threshold,
)


@dataclass(frozen=True)
class Heir:
    name: str
    split_percent: float   # 0-100 share of the estate
    fed_rate: float
    state_rate: float = 0.0


@dataclass(frozen=True)
class PlannerInputs:
    # Timeline
    start_year: int
    end_year: int
    birth_year: int

    # Starting balances
    after_tax_start: float = 0.0
    ira_start: float = 0.0
    roth_start: float = 0.0
    after_tax_cost_basis: float = 0.0

    # Expenses
    annual_expenses: float = 0.0
    expense_inflation: float = 0.0
    expense_overrides: Dict[int, float] = field(default_factory=dict)

    # Social Security (combined monthly benefit)
    social_security_monthly: float = 0.0
    ss_cola: float = 0.0
    exempt_ss_from_tax: bool = False

    # Returns: 'account' uses per-account rates, 'blended' uses risk bands
    return_mode: str = "account"
    at_return: float = 0.0
    ira_return: float = 0.0
    roth_return: float = 0.0
    low_risk_target: float = 0.0
    mod_risk_target: float = 0.0
    low_risk_return: float = 0.0
    mod_risk_return: float = 0.0
    high_risk_return: float = 0.0

    discount_rate: float = default_discount_rate

    # Heirs
    heir_fed_rate: float = 0.0
    heir_state_rate: float = 0.0
    heirs: Tuple[Heir, ...] = ()

    # Roth conversions (year -> amount)
    roth_conversions: Dict[int, float] = field(default_factory=dict)

    # Survivor branch
    survivor_death_year: Optional[int] = None
    survivor_ss_percent: float = 1.0
    survivor_expense_percent: float = 1.0

    # Tax solver
    iterative_tax: bool = True
    max_iterations: int = max_tax_iterations
    convergence_threshold: float = tax_convergence_threshold

    # MAGI for years before start_year (IRMAA lookback)
    prior_magi: Dict[int, float] = field(default_factory=dict)

    withdrawal_order: Tuple[str, ...] = default_withdrawal_order


@dataclass(frozen=True)
class YearRecord:
    """One projected year. Produced once by the year solver, never mutated."""

    # Identity
    year: int
    age: int
    years_from_start: int
    is_survivor: bool
    filing_status: str

    # Beginning of year
    at_boy: float
    ira_boy: float
    roth_boy: float
    total_boy: float
    cost_basis_boy: float

    # Returns
    return_mode: str
    effective_at_return: float
    effective_ira_return: float
    effective_roth_return: float

    # Income & expenses
    ss_annual: float
    expenses: float
    roth_conversion: float
    standard_deduction: float
    taxable_ss: float
    ordinary_income: float
    taxable_ordinary: float
    capital_gains: float
    magi: float

    # RMD
    rmd_factor: float
    rmd_required: float

    # Withdrawals
    withdrawal_order: Tuple[str, ...]
    at_withdrawal: float
    ira_withdrawal: float
    roth_withdrawal: float
    total_withdrawal: float
    unmet_need: float

    # Taxes
    federal_tax: float
    ltcg_tax: float
    niit: float
    state_tax: float
    total_tax: float

    # IRMAA (two-year lookback)
    irmaa_magi: float
    irmaa_tier: int
    irmaa_part_b: float
    irmaa_part_d: float
    irmaa_total: float

    # End of year
    at_eoy: float
    ira_eoy: float
    roth_eoy: float
    total_eoy: float
    cost_basis_eoy: float

    # Cumulative
    cumulative_tax: float
    cumulative_irmaa: float
    cumulative_expenses: float
    cumulative_at_tax: float
    cumulative_capital_gains: float

    # Heirs
    heir_value: float
    roth_percent: float

    # Present values
    pv_at_eoy: float
    pv_ira_eoy: float
    pv_roth_eoy: float
    pv_total_eoy: float
    pv_heir_value: float
    pv_expenses: float
    pv_total_tax: float
    pv_irmaa_total: float

    # Solver diagnostics
    tax_iterations: int = 1
    tax_estimates: Tuple[float, ...] = ()
    converged: bool = True
    warnings: Tuple[str, ...] = ()

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def value(self, name: str):
        return getattr(self, name)

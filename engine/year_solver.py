# engine/year_solver.py

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from config.projection_assumptions import medicare_start_age
from engine.accounts_income import AccountsIncomeEngine
from engine.market_returns import effective_returns
from engine.tax_engine import IrmaaResult, TaxBreakdown, calculate_taxes, compute_irmaa
from engine.withdrawal_engine import WithdrawalEngine, WithdrawalResult
from models import PlannerInputs, YearRecord
from utils.tax_utils import TaxTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountState:
    """Balances carried from one year's EOY to the next year's BOY."""
    at: float
    ira: float
    roth: float
    cost_basis: float

    @classmethod
    def from_inputs(cls, inputs: PlannerInputs) -> "AccountState":
        return cls(
            at=float(inputs.after_tax_start),
            ira=float(inputs.ira_start),
            roth=float(inputs.roth_start),
            cost_basis=float(inputs.after_tax_cost_basis),
        )

    @classmethod
    def from_record(cls, record: YearRecord) -> "AccountState":
        return cls(record.at_eoy, record.ira_eoy, record.roth_eoy, record.cost_basis_eoy)


def calculate_heir_value(at: float, ira: float, roth: float, inputs: PlannerInputs) -> float:
    """
    After-tax value to heirs: after-tax account at fair value (stepped-up
    basis), IRA taxed at the heir's combined rate, Roth untaxed. With an
    explicit heir list each heir's share of the IRA uses that heir's rates.
    """
    if not inputs.heirs:
        ira_after_tax = ira * max(0.0, 1 - inputs.heir_fed_rate - inputs.heir_state_rate)
        return at + roth + ira_after_tax

    total = 0.0
    for heir in inputs.heirs:
        share = heir.split_percent / 100.0
        ira_share = ira * share * max(0.0, 1 - heir.fed_rate - heir.state_rate)
        total += (at + roth) * share + ira_share
    return total


class YearTransitionSolver:
    """
    Produces one YearRecord from the prior EOY state.

    The withdrawal need depends on the year's tax and the tax depends on
    the withdrawals; the solver iterates a tax estimate to a fixed point,
    bounded by ``max_iterations`` passes and converged once the estimate
    moves by less than ``convergence_threshold``.
    """

    def __init__(self, inputs: PlannerInputs, tax_table: TaxTable):
        self.inputs = inputs
        self.tax_table = tax_table
        self.schedule = AccountsIncomeEngine(inputs, tax_table)
        self.withdrawal_engine = WithdrawalEngine(inputs.withdrawal_order)

    # ----------------------------------------------------------------------
    # Fixed-point tax iteration
    # ----------------------------------------------------------------------
    def _solve_taxes(self, year: int, state: AccountState, ira_available: float,
                     expenses: float, ss_annual: float, rmd_required: float,
                     conversion: float, filing_status: str,
                     standard_deduction: float) -> Tuple[WithdrawalResult, TaxBreakdown, Tuple[float, ...], bool]:
        inputs = self.inputs
        passes = max(1, inputs.max_iterations) if inputs.iterative_tax else 1

        estimated_tax = 0.0
        estimates = []
        converged = False
        allocation = None
        taxes = None

        for pass_no in range(1, passes + 1):
            need = max(0.0, expenses + estimated_tax - ss_annual)
            allocation = self.withdrawal_engine.allocate(
                need=need,
                at_available=state.at,
                ira_available=ira_available,
                roth_available=state.roth,
                rmd_required=rmd_required,
                cost_basis=state.cost_basis,
            )
            taxes = calculate_taxes(
                self.tax_table, year, filing_status, standard_deduction,
                ss_annual=ss_annual,
                ira_withdrawal=allocation.ira_withdrawal,
                roth_conversion=conversion,
                capital_gains=allocation.capital_gains,
                exempt_ss_from_tax=inputs.exempt_ss_from_tax,
            )
            new_total = taxes.total_tax
            estimates.append(new_total)
            delta = abs(new_total - estimated_tax)
            logger.debug("Year %s pass %s: estimate %.2f -> %.2f (delta %.2f)",
                         year, pass_no, estimated_tax, new_total, delta)
            estimated_tax = new_total
            if delta < inputs.convergence_threshold:
                converged = True
                break

        # Single-pass mode has nothing to converge
        if not inputs.iterative_tax:
            converged = True

        return allocation, taxes, tuple(estimates), converged

    # ----------------------------------------------------------------------
    # IRMAA (two-year lookback)
    # ----------------------------------------------------------------------
    def _lookback_magi(self, year: int, history: Mapping[int, YearRecord]) -> Optional[float]:
        prior = history.get(year - 2)
        if prior is not None:
            return prior.magi
        return self.inputs.prior_magi.get(year - 2)

    def _irmaa(self, year: int, age: int, filing_status: str,
               history: Mapping[int, YearRecord]) -> Tuple[Optional[float], IrmaaResult]:
        lookback = self._lookback_magi(year, history)
        if age < medicare_start_age:
            return lookback, IrmaaResult(0.0, 0.0, 0.0, 0)
        tiers = self.tax_table.irmaa_tiers(year, filing_status)
        return lookback, compute_irmaa(lookback, tiers, self.schedule.medicare_people(year))

    # ----------------------------------------------------------------------
    # Main entry point
    # ----------------------------------------------------------------------
    def solve_year(self, year: int, state: AccountState,
                   history: Mapping[int, YearRecord]) -> YearRecord:
        """
        Args:
            year: Calendar year to project.
            state: BOY balances (the prior year's EOY).
            history: Records already produced, keyed by year.
        """
        inputs = self.inputs
        schedule = self.schedule
        previous = history.get(year - 1)

        age = schedule.age_in(year)
        years_from_start = schedule.years_from_start(year)
        is_survivor = schedule.is_survivor(year)
        filing_status = schedule.filing_status(year)

        total_boy = state.at + state.ira + state.roth
        at_return, ira_return, roth_return = effective_returns(inputs, state.at, state.ira, state.roth)

        # 1. Expenses and Social Security
        expenses = schedule.compute_expenses(year)
        ss_annual = schedule.compute_ss_benefit(year)

        # 2. RMD and conversion
        rmd_factor, rmd_required = schedule.compute_rmd(year, state.ira)
        # RMD comes out before any conversion
        conversion = schedule.roth_conversion(year, state.ira, rmd_required)
        ira_available = max(0.0, state.ira - conversion)
        standard_deduction = schedule.standard_deduction(year)

        # 3-4. Withdrawals and taxes
        allocation, taxes, estimates, converged = self._solve_taxes(
            year, state, ira_available, expenses, ss_annual, rmd_required,
            conversion, filing_status, standard_deduction,
        )

        warnings = []
        if inputs.iterative_tax and not converged:
            message = (
                f"Tax estimate for {year} did not converge within {len(estimates)} passes; "
                f"using last estimate {estimates[-1]:.2f}"
            )
            logger.warning(message)
            warnings.append(message)

        # 5. IRMAA
        irmaa_magi, irmaa = self._irmaa(year, age, filing_status, history)

        # 6. Roll forward
        at_eoy = max(0.0, (state.at - allocation.at_withdrawal) * (1 + at_return))
        ira_eoy = max(0.0, (state.ira - allocation.ira_withdrawal - conversion) * (1 + ira_return))
        roth_eoy = max(0.0, (state.roth - allocation.roth_withdrawal + conversion) * (1 + roth_return))
        total_eoy = at_eoy + ira_eoy + roth_eoy

        if state.at > 0:
            basis_used = state.cost_basis * (allocation.at_withdrawal / state.at)
        else:
            basis_used = 0.0
        cost_basis_eoy = max(0.0, state.cost_basis - basis_used)

        # 7. Running totals
        total_tax = taxes.total_tax
        at_tax = taxes.ltcg_tax + taxes.niit + taxes.state_tax

        def _running(name: str, value: float) -> float:
            return (getattr(previous, name) if previous is not None else 0.0) + value

        heir_value = calculate_heir_value(at_eoy, ira_eoy, roth_eoy, inputs)

        # 8. Present values
        pv_factor = (1 + inputs.discount_rate) ** years_from_start

        return YearRecord(
            year=year,
            age=age,
            years_from_start=years_from_start,
            is_survivor=is_survivor,
            filing_status=filing_status,
            at_boy=state.at,
            ira_boy=state.ira,
            roth_boy=state.roth,
            total_boy=total_boy,
            cost_basis_boy=state.cost_basis,
            return_mode=inputs.return_mode,
            effective_at_return=at_return,
            effective_ira_return=ira_return,
            effective_roth_return=roth_return,
            ss_annual=ss_annual,
            expenses=expenses,
            roth_conversion=conversion,
            standard_deduction=standard_deduction,
            taxable_ss=taxes.taxable_ss,
            ordinary_income=taxes.ordinary_income,
            taxable_ordinary=taxes.taxable_ordinary,
            capital_gains=allocation.capital_gains,
            magi=taxes.magi,
            rmd_factor=rmd_factor,
            rmd_required=rmd_required,
            withdrawal_order=self.withdrawal_engine.order,
            at_withdrawal=allocation.at_withdrawal,
            ira_withdrawal=allocation.ira_withdrawal,
            roth_withdrawal=allocation.roth_withdrawal,
            total_withdrawal=allocation.total,
            unmet_need=allocation.unmet_need,
            federal_tax=taxes.federal_tax,
            ltcg_tax=taxes.ltcg_tax,
            niit=taxes.niit,
            state_tax=taxes.state_tax,
            total_tax=total_tax,
            irmaa_magi=irmaa_magi if irmaa_magi is not None else 0.0,
            irmaa_tier=irmaa.tier,
            irmaa_part_b=irmaa.part_b,
            irmaa_part_d=irmaa.part_d,
            irmaa_total=irmaa.total,
            at_eoy=at_eoy,
            ira_eoy=ira_eoy,
            roth_eoy=roth_eoy,
            total_eoy=total_eoy,
            cost_basis_eoy=cost_basis_eoy,
            cumulative_tax=_running("cumulative_tax", total_tax),
            cumulative_irmaa=_running("cumulative_irmaa", irmaa.total),
            cumulative_expenses=_running("cumulative_expenses", expenses),
            cumulative_at_tax=_running("cumulative_at_tax", at_tax),
            cumulative_capital_gains=_running("cumulative_capital_gains", allocation.capital_gains),
            heir_value=heir_value,
            roth_percent=roth_eoy / total_eoy if total_eoy > 0 else 0.0,
            pv_at_eoy=at_eoy / pv_factor,
            pv_ira_eoy=ira_eoy / pv_factor,
            pv_roth_eoy=roth_eoy / pv_factor,
            pv_total_eoy=total_eoy / pv_factor,
            pv_heir_value=heir_value / pv_factor,
            pv_expenses=expenses / pv_factor,
            pv_total_tax=total_tax / pv_factor,
            pv_irmaa_total=irmaa.total / pv_factor,
            tax_iterations=len(estimates),
            tax_estimates=estimates,
            converged=converged,
            warnings=tuple(warnings),
        )

# engine/accounts_income.py

from typing import Tuple

from config.projection_assumptions import joint_filing_status, survivor_filing_status
from engine.rmd_tables import compute_rmd
from models import PlannerInputs
from utils.tax_utils import TaxTable


class AccountsIncomeEngine:
    """
    Per-year schedule of the household's cash flows that do not depend on
    the withdrawal solve: expenses, Social Security, RMD and the planned
    Roth conversion.
    """
    def __init__(self, inputs: PlannerInputs, tax_table: TaxTable):
        self.inputs = inputs
        self.tax_table = tax_table

    # ----------------------------------------------------------------------
    # Timeline
    # ----------------------------------------------------------------------
    def age_in(self, year: int) -> int:
        return year - self.inputs.birth_year

    def years_from_start(self, year: int) -> int:
        return year - self.inputs.start_year

    def is_survivor(self, year: int) -> bool:
        death_year = self.inputs.survivor_death_year
        return death_year is not None and year >= death_year

    def filing_status(self, year: int) -> str:
        return survivor_filing_status if self.is_survivor(year) else joint_filing_status

    def medicare_people(self, year: int) -> int:
        return 1 if self.is_survivor(year) else 2

    # ----------------------------------------------------------------------
    # Expenses
    # ----------------------------------------------------------------------
    def compute_expenses(self, year: int) -> float:
        """
        An explicit override is used as-is. Otherwise the base expense is
        inflated from the start year and reduced in survivor years.
        """
        overrides = self.inputs.expense_overrides
        if year in overrides:
            return max(0.0, float(overrides[year]))

        inflated = self.inputs.annual_expenses * (1 + self.inputs.expense_inflation) ** self.years_from_start(year)
        if self.is_survivor(year):
            inflated *= self.inputs.survivor_expense_percent
        return max(0.0, inflated)

    # ----------------------------------------------------------------------
    # Social Security Benefit Calculation
    # ----------------------------------------------------------------------
    def compute_ss_benefit(self, year: int) -> float:
        """Combined annual benefit, COLA-compounded and survivor-reduced."""
        annual = self.inputs.social_security_monthly * 12
        annual *= (1 + self.inputs.ss_cola) ** self.years_from_start(year)
        if self.is_survivor(year):
            annual *= self.inputs.survivor_ss_percent
        return max(0.0, annual)

    # ----------------------------------------------------------------------
    # RMD and conversion
    # ----------------------------------------------------------------------
    def compute_rmd(self, year: int, ira_boy: float) -> Tuple[float, float]:
        """Returns (divisor, required). Divisor is 0.0 when no RMD applies."""
        divisor = self.tax_table.rmd_divisor(self.age_in(year))
        return (divisor or 0.0), compute_rmd(ira_boy, divisor)

    def roth_conversion(self, year: int, ira_boy: float, rmd_required: float = 0.0) -> float:
        """Planned conversion, clamped to the IRA balance left after the RMD."""
        planned = max(0.0, float(self.inputs.roth_conversions.get(year, 0.0)))
        return min(planned, max(0.0, ira_boy - max(0.0, rmd_required)))

    def standard_deduction(self, year: int) -> float:
        return self.tax_table.standard_deduction(year, self.filing_status(year), self.age_in(year))

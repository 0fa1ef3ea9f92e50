import pytest

from engine.simulator import generate_projections
from models import PlannerInputs
from utils.tax_utils import build_default_tax_table


@pytest.fixture
def tax_table():
    return build_default_tax_table()


@pytest.fixture
def base_inputs():
    """Married couple, age 70 in 2026, all three account types funded."""
    return PlannerInputs(
        start_year=2026,
        end_year=2045,
        birth_year=1956,
        after_tax_start=800_000,
        ira_start=1_500_000,
        roth_start=400_000,
        after_tax_cost_basis=500_000,
        annual_expenses=150_000,
        expense_inflation=0.03,
        social_security_monthly=4_000,
        ss_cola=0.025,
        return_mode="account",
        at_return=0.05,
        ira_return=0.05,
        roth_return=0.06,
        heir_fed_rate=0.24,
        heir_state_rate=0.0495,
        roth_conversions={2026: 50_000, 2027: 50_000},
        prior_magi={2024: 200_000, 2025: 210_000},
    )


@pytest.fixture
def records(base_inputs, tax_table):
    return generate_projections(base_inputs, tax_table)


@pytest.fixture
def rmd_only_inputs():
    """$1M IRA at age 73, nothing else: the RMD is the only withdrawal."""
    return PlannerInputs(
        start_year=2026,
        end_year=2026,
        birth_year=1953,
        ira_start=1_000_000,
        after_tax_start=0,
        roth_start=0,
        annual_expenses=0,
        social_security_monthly=0,
        iterative_tax=True,
    )


@pytest.fixture
def ira_only_inputs():
    """IRA-funded spending at age 75 so every withdrawal dollar is taxed."""
    return PlannerInputs(
        start_year=2026,
        end_year=2026,
        birth_year=1951,
        ira_start=2_000_000,
        annual_expenses=100_000,
        iterative_tax=True,
    )

import pytest

from engine.market_returns import calculate_blended_return, calculate_risk_allocation, effective_returns
from engine.withdrawal_engine import WithdrawalEngine, unrealized_gain_fraction
from models import PlannerInputs


def test_default_order_drains_after_tax_first():
    result = WithdrawalEngine().allocate(
        need=50_000, at_available=100_000, ira_available=100_000,
        roth_available=100_000, rmd_required=0, cost_basis=100_000,
    )
    assert (result.at_withdrawal, result.ira_withdrawal, result.roth_withdrawal) == (50_000, 0, 0)
    assert result.unmet_need == 0


def test_rmd_taken_before_order():
    result = WithdrawalEngine().allocate(
        need=50_000, at_available=100_000, ira_available=100_000,
        roth_available=0, rmd_required=30_000, cost_basis=100_000,
    )
    assert result.ira_withdrawal == 30_000
    assert result.at_withdrawal == 20_000
    assert result.total == 50_000


def test_rmd_exceeding_need_is_still_withdrawn():
    result = WithdrawalEngine().allocate(
        need=0, at_available=0, ira_available=100_000,
        roth_available=0, rmd_required=4_000, cost_basis=0,
    )
    assert result.ira_withdrawal == 4_000


def test_spills_to_roth_and_reports_shortfall():
    result = WithdrawalEngine().allocate(
        need=100_000, at_available=20_000, ira_available=30_000,
        roth_available=40_000, rmd_required=0, cost_basis=20_000,
    )
    assert (result.at_withdrawal, result.ira_withdrawal, result.roth_withdrawal) == (20_000, 30_000, 40_000)
    assert result.unmet_need == pytest.approx(10_000)


def test_custom_order():
    engine = WithdrawalEngine(("roth", "ira", "after_tax"))
    result = engine.allocate(
        need=50_000, at_available=100_000, ira_available=100_000,
        roth_available=30_000, rmd_required=0, cost_basis=0,
    )
    assert result.roth_withdrawal == 30_000
    assert result.ira_withdrawal == 20_000
    assert result.at_withdrawal == 0
    assert engine.predecessors("after_tax") == ("roth", "ira")


@pytest.mark.parametrize("order", [("after_tax", "ira"), ("after_tax", "ira", "ira"), ("cash", "ira", "roth")])
def test_invalid_order_rejected(order):
    with pytest.raises(ValueError):
        WithdrawalEngine(order)


def test_gain_fraction():
    assert unrealized_gain_fraction(400_000, 100_000) == pytest.approx(0.75)
    assert unrealized_gain_fraction(100_000, 150_000) == 0.0
    assert unrealized_gain_fraction(0, 100_000) == 0.0


# --- Return model ---

def test_risk_allocation_fills_low_then_moderate():
    allocation = calculate_risk_allocation(4_000_000, 1_000_000, 2_000_000, 1_000_000, 1_500_000, 1_500_000)
    assert allocation["portfolio"].low == 1_500_000
    assert allocation["portfolio"].mod == 1_500_000
    assert allocation["portfolio"].high == 1_000_000
    assert (allocation["at"].low, allocation["at"].mod, allocation["at"].high) == (1_000_000, 0, 0)
    assert (allocation["ira"].low, allocation["ira"].mod, allocation["ira"].high) == (500_000, 1_500_000, 0)
    assert (allocation["roth"].low, allocation["roth"].mod, allocation["roth"].high) == (0, 0, 1_000_000)


def test_blended_returns_are_weighted_averages():
    inputs = PlannerInputs(
        start_year=2026, end_year=2026, birth_year=1960, return_mode="blended",
        low_risk_target=1_500_000, mod_risk_target=1_500_000,
        low_risk_return=0.03, mod_risk_return=0.05, high_risk_return=0.08,
    )
    at, ira, roth = effective_returns(inputs, 1_000_000, 2_000_000, 1_000_000)
    assert at == pytest.approx(0.03)
    assert ira == pytest.approx((500_000 * 0.03 + 1_500_000 * 0.05) / 2_000_000)
    assert roth == pytest.approx(0.08)


def test_account_mode_uses_fixed_rates():
    inputs = PlannerInputs(start_year=2026, end_year=2026, birth_year=1960,
                           at_return=0.04, ira_return=0.05, roth_return=0.07)
    assert effective_returns(inputs, 1, 1, 1) == (0.04, 0.05, 0.07)


def test_empty_account_blended_return_is_zero():
    allocation = calculate_risk_allocation(0, 0, 0, 0, 100, 100)
    assert calculate_blended_return(allocation["at"], 0.03, 0.05, 0.08) == 0.0

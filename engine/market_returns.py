# engine/market_returns.py

"""
Deterministic return model.

'account' mode applies the configured per-account rate. 'blended' mode
splits the whole portfolio into low / moderate / high risk bands (low band
filled first up to its dollar target, then moderate, the rest high), assigns
those bands to accounts in after-tax, IRA, Roth order, and gives each account
the weighted average of its band returns.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from models import PlannerInputs


@dataclass(frozen=True)
class BandSplit:
    low: float
    mod: float
    high: float

    @property
    def total(self) -> float:
        return self.low + self.mod + self.high


def calculate_risk_allocation(total_portfolio: float, at_balance: float, ira_balance: float,
                              roth_balance: float, low_target: float, mod_target: float) -> Dict[str, BandSplit]:
    """Band split for the portfolio and each account."""
    portfolio_low = min(total_portfolio, max(0.0, low_target))
    portfolio_mod = min(max(0.0, total_portfolio - low_target), max(0.0, mod_target))
    portfolio_high = max(0.0, total_portfolio - portfolio_low - portfolio_mod)

    remaining_low = portfolio_low
    remaining_mod = portfolio_mod
    allocation = {"portfolio": BandSplit(portfolio_low, portfolio_mod, portfolio_high)}

    # After-tax first (most accessible), then IRA, then Roth
    for key, balance in (("at", at_balance), ("ira", ira_balance), ("roth", roth_balance)):
        balance = max(0.0, balance)
        low = min(balance, remaining_low)
        remaining_low -= low
        mod = min(balance - low, remaining_mod)
        remaining_mod -= mod
        allocation[key] = BandSplit(low, mod, balance - low - mod)

    return allocation


def calculate_blended_return(split: BandSplit, low_return: float, mod_return: float,
                             high_return: float) -> float:
    if split.total <= 0:
        return 0.0
    return (split.low * low_return + split.mod * mod_return + split.high * high_return) / split.total


def effective_returns(inputs: PlannerInputs, at_boy: float, ira_boy: float,
                      roth_boy: float) -> Tuple[float, float, float]:
    """(after_tax, ira, roth) growth rates for the year."""
    if inputs.return_mode != "blended":
        return inputs.at_return, inputs.ira_return, inputs.roth_return

    allocation = calculate_risk_allocation(
        at_boy + ira_boy + roth_boy, at_boy, ira_boy, roth_boy,
        inputs.low_risk_target, inputs.mod_risk_target,
    )
    rates = (inputs.low_risk_return, inputs.mod_risk_return, inputs.high_risk_return)
    return (
        calculate_blended_return(allocation["at"], *rates),
        calculate_blended_return(allocation["ira"], *rates),
        calculate_blended_return(allocation["roth"], *rates),
    )

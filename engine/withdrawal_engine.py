# withdrawal_engine.py

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from config.projection_assumptions import account_kinds, default_withdrawal_order

# Handles logic for prioritizing account withdrawals
#

@dataclass(frozen=True)
class WithdrawalResult:
    at_withdrawal: float
    ira_withdrawal: float
    roth_withdrawal: float
    capital_gains: float
    unmet_need: float

    @property
    def total(self) -> float:
        return self.at_withdrawal + self.ira_withdrawal + self.roth_withdrawal


def unrealized_gain_fraction(at_balance: float, cost_basis: float) -> float:
    """Share of an after-tax withdrawal that is a realized gain."""
    if at_balance <= 0:
        return 0.0
    return max(0.0, 1.0 - cost_basis / at_balance)


class WithdrawalEngine:
    """
    Handles logic for prioritizing account withdrawals.

    The IRA always pays the RMD first. Whatever need remains is drawn from
    the accounts in ``order`` (default after-tax, IRA, Roth), each clamped to
    its available balance. Any shortfall is reported as ``unmet_need``.
    """
    def __init__(self, order: Sequence[str] = default_withdrawal_order):
        self.order = self._normalize_order(order)

    @staticmethod
    def _normalize_order(order: Sequence[str]) -> Tuple[str, ...]:
        order = tuple(order)
        unknown = [kind for kind in order if kind not in account_kinds]
        if unknown or len(set(order)) != len(order) or set(order) != set(account_kinds):
            raise ValueError(
                f"Withdrawal order must list each of {account_kinds} exactly once, got {order}"
            )
        return order

    def predecessors(self, kind: str) -> Tuple[str, ...]:
        """Accounts drained before ``kind`` in the priority order."""
        return self.order[:self.order.index(kind)]

    def allocate(self,
                 need: float,
                 at_available: float,
                 ira_available: float,
                 roth_available: float,
                 rmd_required: float,
                 cost_basis: float) -> WithdrawalResult:
        """
        The Core Engine: splits ``need`` across accounts following the order.

        Args:
            need: Cash needed from the portfolio (already net of Social Security).
            at_available / ira_available / roth_available: balances that can be drawn.
            rmd_required: Minimum IRA distribution for the year.
            cost_basis: After-tax cost basis at BOY, for the gain fraction.

        Returns:
            WithdrawalResult with per-account amounts, realized gains and shortfall.
        """
        available: Dict[str, float] = {
            "after_tax": max(0.0, at_available),
            "ira": max(0.0, ira_available),
            "roth": max(0.0, roth_available),
        }
        withdrawn = {kind: 0.0 for kind in account_kinds}

        # RMD is taken regardless of need
        rmd_taken = min(available["ira"], max(0.0, rmd_required))
        withdrawn["ira"] = rmd_taken
        available["ira"] -= rmd_taken

        remaining = max(0.0, max(0.0, need) - rmd_taken)

        for kind in self.order:
            if remaining <= 0:
                break
            amt = min(available[kind], remaining)
            if amt <= 0:
                continue
            withdrawn[kind] += amt
            available[kind] -= amt
            remaining -= amt

        # Tax characterization of the after-tax draw
        gains = withdrawn["after_tax"] * unrealized_gain_fraction(at_available, cost_basis)

        return WithdrawalResult(
            at_withdrawal=withdrawn["after_tax"],
            ira_withdrawal=withdrawn["ira"],
            roth_withdrawal=withdrawn["roth"],
            capital_gains=gains,
            unmet_need=max(0.0, remaining),
        )

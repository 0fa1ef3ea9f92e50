# engine/dependency_graph.py

"""
Calculation dependency graph over a projection.

``CELL_DEPENDENCIES`` maps a YearRecord field to a resolver
``(year, record, projections) -> List[DependencyRef]`` naming the cells the
field is computed from. Fields without a resolver are leaves (inputs).

The reverse view (who consumes a cell) is derived by running every resolver
for every year and inverting the result, so both views always agree.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from engine.errors import UnknownFieldError, UnknownYearError
from models import YearRecord

BOY_FIELDS = {"after_tax": "at_boy", "ira": "ira_boy", "roth": "roth_boy"}


@dataclass(frozen=True)
class DependencyRef:
    field: str
    year: int
    offset: int      # relative to the inspected record's year
    sign: str = "+"  # '+' raises the dependent value, '-' lowers it


Resolver = Callable[[int, YearRecord, Sequence[YearRecord]], List[DependencyRef]]


# =============================================================================
# Resolver builders
# =============================================================================

def _ref(name: str, year: int, offset: int = 0) -> DependencyRef:
    """'-name' is a negative contribution."""
    if name.startswith("-"):
        return DependencyRef(name[1:], year + offset, offset, "-")
    return DependencyRef(name, year + offset, offset, "+")


def _has_year(projections: Sequence[YearRecord], year: int) -> bool:
    return bool(projections) and projections[0].year <= year <= projections[-1].year


def same_year(*names: str) -> Resolver:
    def resolve(year, record, projections):
        return [_ref(name, year) for name in names]
    return resolve


def prior_year(name: str, years_back: int = 1) -> Resolver:
    """The same or another field ``years_back`` earlier; empty before the first year."""
    def resolve(year, record, projections):
        if not _has_year(projections, year - years_back):
            return []
        return [_ref(name, year, -years_back)]
    return resolve


def running_total(field_name: str, *names: str) -> Resolver:
    """This year's contributions plus last year's value of the running total itself."""
    carried = prior_year(field_name)

    def resolve(year, record, projections):
        return [_ref(name, year) for name in names] + carried(year, record, projections)
    return resolve


def blended_return(*boy_names: str) -> Resolver:
    """Blended-mode returns depend on the band split of the BOY balances."""
    def resolve(year, record, projections):
        if record.return_mode != "blended":
            return []
        return [_ref("total_boy", year)] + [_ref(name, year) for name in boy_names]
    return resolve


def withdrawal(kind: str) -> Resolver:
    """
    One account's withdrawal: the year's net cash need, the RMD already
    taken from the IRA, this account's balance, and the balances of the
    accounts drained before it.
    """
    def resolve(year, record, projections):
        refs = [
            _ref("expenses", year),
            _ref("total_tax", year),
            _ref("-ss_annual", year),
            _ref("rmd_required" if kind == "ira" else "-rmd_required", year),
            _ref(BOY_FIELDS[kind], year),
        ]
        if kind == "ira":
            refs.append(_ref("-roth_conversion", year))
        order = tuple(record.withdrawal_order)
        for predecessor in order[:order.index(kind)]:
            refs.append(_ref("-" + BOY_FIELDS[predecessor], year))
            if predecessor == "ira":
                refs.append(_ref("roth_conversion", year))
        return refs
    return resolve


# =============================================================================
# Registry
# =============================================================================

CELL_DEPENDENCIES: Dict[str, Resolver] = {
    # Beginning of year: carried from last year's end
    "at_boy": prior_year("at_eoy"),
    "ira_boy": prior_year("ira_eoy"),
    "roth_boy": prior_year("roth_eoy"),
    "cost_basis_boy": prior_year("cost_basis_eoy"),
    "total_boy": same_year("at_boy", "ira_boy", "roth_boy"),

    # Returns
    "effective_at_return": blended_return("at_boy"),
    "effective_ira_return": blended_return("at_boy", "ira_boy"),
    "effective_roth_return": blended_return("at_boy", "ira_boy", "roth_boy"),

    # RMD and conversion
    "rmd_required": same_year("ira_boy", "-rmd_factor"),
    "roth_conversion": same_year("ira_boy", "-rmd_required"),

    # Withdrawals
    "at_withdrawal": withdrawal("after_tax"),
    "ira_withdrawal": withdrawal("ira"),
    "roth_withdrawal": withdrawal("roth"),
    "total_withdrawal": same_year("at_withdrawal", "ira_withdrawal", "roth_withdrawal"),
    "unmet_need": same_year("expenses", "total_tax", "-ss_annual", "-at_boy", "-ira_boy",
                            "-roth_boy", "roth_conversion"),

    # Income
    "capital_gains": same_year("at_withdrawal", "-cost_basis_boy", "at_boy"),
    "taxable_ss": same_year("ss_annual", "ira_withdrawal", "roth_conversion", "capital_gains"),
    "ordinary_income": same_year("taxable_ss", "ira_withdrawal", "roth_conversion"),
    "taxable_ordinary": same_year("ordinary_income", "-standard_deduction"),
    "magi": same_year("ordinary_income", "capital_gains"),

    # Taxes
    "federal_tax": same_year("taxable_ordinary"),
    "ltcg_tax": same_year("capital_gains", "taxable_ordinary"),
    "niit": same_year("capital_gains", "magi"),
    "state_tax": same_year("capital_gains"),
    "total_tax": same_year("federal_tax", "ltcg_tax", "niit", "state_tax"),

    # IRMAA (two-year lookback)
    "irmaa_magi": prior_year("magi", years_back=2),
    "irmaa_tier": same_year("irmaa_magi"),
    "irmaa_part_b": same_year("irmaa_magi"),
    "irmaa_part_d": same_year("irmaa_magi"),
    "irmaa_total": same_year("irmaa_part_b", "irmaa_part_d"),

    # End of year
    "at_eoy": same_year("at_boy", "-at_withdrawal", "effective_at_return"),
    "ira_eoy": same_year("ira_boy", "-ira_withdrawal", "-roth_conversion", "effective_ira_return"),
    "roth_eoy": same_year("roth_boy", "-roth_withdrawal", "roth_conversion", "effective_roth_return"),
    "total_eoy": same_year("at_eoy", "ira_eoy", "roth_eoy"),
    "cost_basis_eoy": same_year("cost_basis_boy", "-at_withdrawal", "at_boy"),

    # Running totals
    "cumulative_tax": running_total("cumulative_tax", "total_tax"),
    "cumulative_irmaa": running_total("cumulative_irmaa", "irmaa_total"),
    "cumulative_expenses": running_total("cumulative_expenses", "expenses"),
    "cumulative_at_tax": running_total("cumulative_at_tax", "ltcg_tax", "niit", "state_tax"),
    "cumulative_capital_gains": running_total("cumulative_capital_gains", "capital_gains"),

    # Heirs
    "heir_value": same_year("at_eoy", "ira_eoy", "roth_eoy"),
    "roth_percent": same_year("roth_eoy", "-total_eoy"),

    # Present values
    "pv_at_eoy": same_year("at_eoy"),
    "pv_ira_eoy": same_year("ira_eoy"),
    "pv_roth_eoy": same_year("roth_eoy"),
    "pv_total_eoy": same_year("total_eoy"),
    "pv_heir_value": same_year("heir_value"),
    "pv_expenses": same_year("expenses"),
    "pv_total_tax": same_year("total_tax"),
    "pv_irmaa_total": same_year("irmaa_total"),
}


# =============================================================================
# Graph over one projection
# =============================================================================

class DependencyGraph:
    """Forward and reverse dependency lookups for one projection."""

    def __init__(self, projections: Sequence[YearRecord],
                 registry: Dict[str, Resolver] = CELL_DEPENDENCIES):
        self.projections = list(projections)
        self.registry = registry
        self._by_year = {record.year: record for record in self.projections}
        self._field_names = YearRecord.field_names()
        self._known_fields = set(self._field_names)
        self._reverse_index = None

    def _check(self, field_name: str, year: int) -> YearRecord:
        if field_name not in self._known_fields:
            raise UnknownFieldError(field_name)
        if year not in self._by_year:
            raise UnknownYearError(year)
        return self._by_year[year]

    def forward(self, field_name: str, year: int) -> List[DependencyRef]:
        """Cells that (field_name, year) is computed from. Leaves return []."""
        record = self._check(field_name, year)
        resolver = self.registry.get(field_name)
        if resolver is None:
            return []
        return list(resolver(year, record, self.projections))

    def reverse(self, field_name: str, year: int) -> List[DependencyRef]:
        """
        Cells computed from (field_name, year). Each ref names the consuming
        field and year; ``offset`` is the consumer's year minus ``year`` and
        ``sign`` is the sign of the edge.
        """
        self._check(field_name, year)
        if self._reverse_index is None:
            self._reverse_index = self._build_reverse_index()
        return list(self._reverse_index.get((field_name, year), []))

    def _build_reverse_index(self) -> Dict[Tuple[str, int], List[DependencyRef]]:
        index: Dict[Tuple[str, int], List[DependencyRef]] = defaultdict(list)
        for record in self.projections:
            for field_name in self._field_names:
                for ref in self.forward(field_name, record.year):
                    index[(ref.field, ref.year)].append(
                        DependencyRef(field_name, record.year, record.year - ref.year, ref.sign)
                    )
        return dict(index)

# utils/tax_utils.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Mapping, Optional, Tuple

import numpy as np

from engine.rmd_tables import UNIFORM_LIFETIME_TABLE_2022, RMD_START_AGE, get_rmd_factor

logger = logging.getLogger(__name__)

# Define the acceptable set of filing statuses for type hinting
TaxFilingStatus = Literal["single", "married_filing_jointly"]
BracketKind = Literal["federal_ordinary", "ltcg"]

Bracket = Tuple[float, float, float]          # (low, high, rate)
IrmaaTier = Tuple[float, float, float]        # (threshold, part_b_monthly, part_d_monthly)

DEFAULT_BRACKET_INFLATION = 0.03
NIIT_RATE = 0.038


def _brackets(thresholds: List[Tuple[float, float]]) -> List[Bracket]:
    """Turn ordered (threshold, rate) pairs into (low, high, rate) brackets."""
    brackets = []
    for i, (low, rate) in enumerate(thresholds):
        high = thresholds[i + 1][0] if i + 1 < len(thresholds) else np.inf
        brackets.append((float(low), float(high), rate))
    return brackets


# =============================================================================
# 1. 2024 Generation
# =============================================================================

ORDINARY_BRACKETS_2024: Dict[TaxFilingStatus, List[Bracket]] = {
    "married_filing_jointly": _brackets([
        (0, 0.10), (23_200, 0.12), (94_300, 0.22), (201_050, 0.24),
        (383_900, 0.32), (487_450, 0.35), (731_200, 0.37),
    ]),
    "single": _brackets([
        (0, 0.10), (11_600, 0.12), (47_150, 0.22), (100_525, 0.24),
        (191_950, 0.32), (243_725, 0.35), (609_350, 0.37),
    ]),
}

CAPGAINS_BRACKETS_2024: Dict[TaxFilingStatus, List[Bracket]] = {
    "married_filing_jointly": _brackets([(0, 0.0), (94_050, 0.15), (583_750, 0.20)]),
    "single": _brackets([(0, 0.0), (47_025, 0.15), (518_900, 0.20)]),
}

STANDARD_DEDUCTION_2024: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 29_200,
    "single": 14_600,
}

# Extra deduction when 65+ (both spouses for MFJ)
SENIOR_BONUS_2024: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 3_100,
    "single": 1_950,
}

# Medicare Part B / Part D monthly premiums per person, by MAGI tier
IRMAA_TIERS_2024: Dict[TaxFilingStatus, List[IrmaaTier]] = {
    "married_filing_jointly": [
        (0, 174.70, 0.00), (206_000, 244.60, 12.90), (258_000, 349.40, 33.30),
        (322_000, 454.20, 53.80), (386_000, 559.00, 74.20), (750_000, 594.00, 81.00),
    ],
    "single": [
        (0, 174.70, 0.00), (103_000, 244.60, 12.90), (129_000, 349.40, 33.30),
        (161_000, 454.20, 53.80), (193_000, 559.00, 74.20), (500_000, 594.00, 81.00),
    ],
}

# =============================================================================
# 2. 2026 Generation
# =============================================================================

ORDINARY_BRACKETS_2026: Dict[TaxFilingStatus, List[Bracket]] = {
    "married_filing_jointly": _brackets([
        (0, 0.10), (24_800, 0.12), (100_800, 0.22), (211_400, 0.24),
        (403_550, 0.32), (512_450, 0.35), (768_700, 0.37),
    ]),
    "single": _brackets([
        (0, 0.10), (12_400, 0.12), (50_400, 0.22), (105_700, 0.24),
        (201_775, 0.32), (256_225, 0.35), (640_600, 0.37),
    ]),
}

CAPGAINS_BRACKETS_2026: Dict[TaxFilingStatus, List[Bracket]] = {
    "married_filing_jointly": _brackets([(0, 0.0), (98_900, 0.15), (613_700, 0.20)]),
    "single": _brackets([(0, 0.0), (49_450, 0.15), (545_500, 0.20)]),
}

STANDARD_DEDUCTION_2026: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 32_200,
    "single": 16_100,
}

SENIOR_BONUS_2026: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 3_300,
    "single": 2_050,
}

IRMAA_TIERS_2026: Dict[TaxFilingStatus, List[IrmaaTier]] = {
    "married_filing_jointly": [
        (0, 202.90, 0.00), (218_000, 284.10, 14.50), (274_000, 405.80, 37.40),
        (342_000, 527.50, 60.30), (410_000, 649.20, 83.20), (750_000, 689.90, 91.00),
    ],
    "single": [
        (0, 202.90, 0.00), (109_000, 284.10, 14.50), (137_000, 405.80, 37.40),
        (171_000, 527.50, 60.30), (205_000, 649.20, 83.20), (500_000, 689.90, 91.00),
    ],
}

# =============================================================================
# 3. Fixed / Non-Indexed Federal Tax Parameters
# =============================================================================

# Statutory and NOT indexed
NIIT_THRESHOLDS: Dict[TaxFilingStatus, float] = {
    "married_filing_jointly": 250_000,
    "single": 200_000,
}

# Combined-income tiers for taxable Social Security (NOT indexed)
SS_TAX_THRESHOLDS: Dict[TaxFilingStatus, Tuple[float, float]] = {
    "married_filing_jointly": (32_000, 44_000),
    "single": (25_000, 34_000),
}

# Flat state rate on investment income only (retirement income exempt)
IL_TAX_RATE = 0.0495


# =============================================================================
# 4. Table generations and provider
# =============================================================================

@dataclass(frozen=True)
class TaxTableGeneration:
    base_year: int
    ordinary_brackets: Mapping[str, List[Bracket]]
    ltcg_brackets: Mapping[str, List[Bracket]]
    standard_deduction: Mapping[str, float]
    senior_bonus: Mapping[str, float]
    irmaa_tiers: Mapping[str, List[IrmaaTier]]


@dataclass(frozen=True)
class TaxTable:
    """
    Immutable, explicitly passed tax table for one projection run.

    Each lookup resolves to the latest generation whose base year is at or
    before the requested tax year and compounds ``inflation_rate`` from that
    base year forward. A tax year before the earliest generation is clamped:
    the earliest generation is returned with no inflation applied.
    """

    generations: Tuple[TaxTableGeneration, ...]
    inflation_rate: float = DEFAULT_BRACKET_INFLATION
    state_tax_rate: float = IL_TAX_RATE
    niit_rate_value: float = NIIT_RATE
    niit_thresholds: Mapping[str, float] = field(default_factory=lambda: dict(NIIT_THRESHOLDS))
    rmd_table: Mapping[int, float] = field(default_factory=lambda: dict(UNIFORM_LIFETIME_TABLE_2022))
    rmd_start_age: int = RMD_START_AGE

    def __post_init__(self):
        if not self.generations:
            raise ValueError("TaxTable needs at least one generation")
        ordered = tuple(sorted(self.generations, key=lambda g: g.base_year))
        object.__setattr__(self, "generations", ordered)

    # ------------------------------------------------------------------
    # Generation resolution
    # ------------------------------------------------------------------
    def generation_for(self, tax_year: int) -> Tuple[TaxTableGeneration, float]:
        """Return (generation, inflation_factor) for a tax year."""
        earliest = self.generations[0]
        if tax_year < earliest.base_year:
            logger.debug(
                "Tax year %s precedes earliest table (%s); using %s values un-inflated",
                tax_year, earliest.base_year, earliest.base_year,
            )
            return earliest, 1.0

        chosen = earliest
        for generation in self.generations:
            if generation.base_year <= tax_year:
                chosen = generation
        factor = (1 + self.inflation_rate) ** (tax_year - chosen.base_year)
        return chosen, factor

    def is_clamped(self, tax_year: int) -> bool:
        return tax_year < self.generations[0].base_year

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def brackets_for(self, tax_year: int, kind: BracketKind,
                     filing_status: TaxFilingStatus = "married_filing_jointly") -> List[Bracket]:
        generation, factor = self.generation_for(tax_year)
        if kind == "federal_ordinary":
            source = generation.ordinary_brackets
        elif kind == "ltcg":
            source = generation.ltcg_brackets
        else:
            raise ValueError(f"Unknown bracket kind '{kind}'")
        return _index_brackets(_for_status(source, filing_status), factor)

    def standard_deduction(self, tax_year: int,
                           filing_status: TaxFilingStatus = "married_filing_jointly",
                           age: Optional[int] = None) -> float:
        generation, factor = self.generation_for(tax_year)
        base = _for_status(generation.standard_deduction, filing_status)
        if age is not None and age >= 65:
            base += _for_status(generation.senior_bonus, filing_status)
        return float(round(base * factor))

    def irmaa_tiers(self, tax_year: int,
                    filing_status: TaxFilingStatus = "married_filing_jointly") -> List[IrmaaTier]:
        """IRMAA tiers with indexed thresholds; monthly premiums stay fixed."""
        generation, factor = self.generation_for(tax_year)
        return [
            (float(round(threshold * factor)), part_b, part_d)
            for threshold, part_b, part_d in _for_status(generation.irmaa_tiers, filing_status)
        ]

    def niit_threshold(self, filing_status: TaxFilingStatus = "married_filing_jointly") -> float:
        return float(_for_status(self.niit_thresholds, filing_status))

    def niit_rate(self) -> float:
        return self.niit_rate_value

    def state_rate(self) -> float:
        return self.state_tax_rate

    def rmd_divisor(self, age: int) -> Optional[float]:
        return get_rmd_factor(age, table=self.rmd_table, start_age=self.rmd_start_age)


def _for_status(values: Mapping[str, object], filing_status: str):
    return values.get(filing_status, values["married_filing_jointly"])


def _index_brackets(base_brackets: List[Bracket], inflation_factor: float) -> List[Bracket]:
    """Helper to index bracket bounds, rounded to whole dollars."""
    indexed_list = []
    for low, high, rate in base_brackets:
        inflated_low = float(round(low * inflation_factor))
        inflated_high = float(round(high * inflation_factor)) if np.isfinite(high) else np.inf
        indexed_list.append((inflated_low, inflated_high, rate))
    return indexed_list


GENERATION_2024 = TaxTableGeneration(
    base_year=2024,
    ordinary_brackets=ORDINARY_BRACKETS_2024,
    ltcg_brackets=CAPGAINS_BRACKETS_2024,
    standard_deduction=STANDARD_DEDUCTION_2024,
    senior_bonus=SENIOR_BONUS_2024,
    irmaa_tiers=IRMAA_TIERS_2024,
)

GENERATION_2026 = TaxTableGeneration(
    base_year=2026,
    ordinary_brackets=ORDINARY_BRACKETS_2026,
    ltcg_brackets=CAPGAINS_BRACKETS_2026,
    standard_deduction=STANDARD_DEDUCTION_2026,
    senior_bonus=SENIOR_BONUS_2026,
    irmaa_tiers=IRMAA_TIERS_2026,
)


def build_default_tax_table(inflation_rate: float = DEFAULT_BRACKET_INFLATION,
                            state_tax_rate: float = IL_TAX_RATE) -> TaxTable:
    """Default table: 2024 and 2026 generations, Illinois flat state rate."""
    return TaxTable(
        generations=(GENERATION_2024, GENERATION_2026),
        inflation_rate=inflation_rate,
        state_tax_rate=state_tax_rate,
    )

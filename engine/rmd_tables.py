# engine/rmd_tables.py

"""
RMD divisor lookup using the 2022+ IRS Uniform Lifetime Table.

Ages below the RMD start age have no divisor (``None``); ages past the end
of the table reuse the final divisor.
"""

from typing import Dict, Mapping, Optional

from config.projection_assumptions import rmd_start_age as RMD_START_AGE

# =============================================================================
# FULL 2022+ IRS UNIFORM LIFETIME TABLE (AGES 72–120)
# =============================================================================
UNIFORM_LIFETIME_TABLE_2022: Dict[int, float] = {
    72: 27.4, 73: 26.5, 74: 25.5, 75: 24.6, 76: 23.7, 77: 22.9,
    78: 22.0, 79: 21.1, 80: 20.2, 81: 19.4, 82: 18.5, 83: 17.7,
    84: 16.8, 85: 16.0, 86: 15.2, 87: 14.4, 88: 13.7, 89: 12.9,
    90: 12.2, 91: 11.5, 92: 10.8, 93: 10.1, 94: 9.5, 95: 8.9,
    96: 8.4, 97: 7.8, 98: 7.3, 99: 6.8, 100: 6.4, 101: 6.0,
    102: 5.6, 103: 5.2, 104: 4.9, 105: 4.6, 106: 4.3, 107: 4.1,
    108: 3.9, 109: 3.7, 110: 3.5, 111: 3.4, 112: 3.3, 113: 3.1,
    114: 3.0, 115: 2.9, 116: 2.8, 117: 2.7, 118: 2.5, 119: 2.3,
    120: 2.0,
}


def get_rmd_factor(
    age: int,
    table: Optional[Mapping[int, float]] = None,
    start_age: int = RMD_START_AGE,
) -> Optional[float]:
    """
    Returns the IRS divisor for RMD calculations.

    Parameters
    ----------
    age : int
        Age in the distribution calendar year.
    table : Mapping[int, float] | None
        Divisor table keyed by age. Defaults to the 2022+ Uniform Lifetime Table.
    start_age : int
        First age that requires a distribution.

    Returns
    -------
    float | None
        RMD divisor for the given age, or None when no RMD applies.
    """
    if age < start_age:
        return None

    table = table if table is not None else UNIFORM_LIFETIME_TABLE_2022

    # Lookup in sorted order
    for max_age in sorted(table.keys()):
        if age <= max_age:
            return table[max_age]

    # If they somehow exceed table bounds
    return table[max(table.keys())]


def compute_rmd(ira_balance: float, divisor: Optional[float]) -> float:
    """Required distribution for a BOY balance; zero when no divisor applies."""
    if divisor is None or divisor <= 0 or ira_balance <= 0:
        return 0.0
    return ira_balance / divisor


__all__ = ["get_rmd_factor", "compute_rmd", "UNIFORM_LIFETIME_TABLE_2022", "RMD_START_AGE"]

# engine.simulator.py

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

# --- Utilities and Models ---
from models import PlannerInputs, YearRecord
from utils.tax_utils import TaxTable, build_default_tax_table
from utils.validation import validate_inputs

from engine.year_solver import AccountState, YearTransitionSolver  # importing a class here

logger = logging.getLogger(__name__)


class RetirementSimulator:
    """
    Runs the deterministic year-by-year retirement projection.

    Each year is solved from the previous year's EOY balances, so years are
    computed strictly in order. The tax table is passed in and never
    modified; two simulators can run side by side safely.
    """
    def __init__(self, inputs: PlannerInputs, tax_table: Optional[TaxTable] = None):

        # -----------------------
        # STEP 1: Validate Inputs
        # -----------------------
        # Raises ConfigurationError listing every problem before any work starts
        validate_inputs(inputs)

        self.inputs = inputs
        self.tax_table = tax_table if tax_table is not None else build_default_tax_table()

        # -----------------------
        # STEP 2: Define Simulation Timeframe
        # -----------------------
        self.years = list(range(inputs.start_year, inputs.end_year + 1))
        self.num_years = len(self.years)

        self.solver = YearTransitionSolver(inputs, self.tax_table)
        self.records: List[YearRecord] = []

    # =========================================================================
    # 1. CORE SIMULATION RUNNER
    # =========================================================================
    def run_simulation(self) -> List[YearRecord]:
        """Projects every year in [start_year, end_year] and returns the records."""
        history: Dict[int, YearRecord] = {}
        records: List[YearRecord] = []
        state = AccountState.from_inputs(self.inputs)

        for year in self.years:
            record = self.solver.solve_year(year, state, history)
            if record.unmet_need > 0:
                logger.info("Year %s: unmet withdrawal need of %.2f", year, record.unmet_need)
            history[year] = record
            records.append(record)

            # EOY of this year is BOY of the next
            state = AccountState.from_record(record)

        logger.debug("Projection %s-%s complete (%d years)",
                     self.inputs.start_year, self.inputs.end_year, len(records))
        self.records = records
        return records


def generate_projections(inputs: PlannerInputs, tax_table: Optional[TaxTable] = None) -> List[YearRecord]:
    """Convenience wrapper: validate, project and return the YearRecord list."""
    return RetirementSimulator(inputs, tax_table).run_simulation()


# =========================================================================
# 2. RESULTS SUMMARIZER
# =========================================================================
def summarize_projection(records: List[YearRecord]) -> Dict[str, Any]:
    """Headline numbers for a projection, mostly taken from the final year."""
    if not records:
        return {
            "years": 0,
            "final_year": None,
            "final_total_eoy": 0.0,
            "final_heir_value": 0.0,
            "final_pv_heir_value": 0.0,
            "total_tax": 0.0,
            "total_irmaa": 0.0,
            "total_expenses": 0.0,
            "total_unmet_need": 0.0,
            "shortfall_years": [],
            "unconverged_years": [],
            "feasible": True,
        }

    final = records[-1]
    unmet = np.array([r.unmet_need for r in records])
    shortfall_years = [r.year for r in records if r.unmet_need > 0]

    return {
        "years": len(records),
        "final_year": final.year,
        "final_total_eoy": final.total_eoy,
        "final_heir_value": final.heir_value,
        "final_pv_heir_value": final.pv_heir_value,
        "total_tax": final.cumulative_tax,
        "total_irmaa": final.cumulative_irmaa,
        "total_expenses": final.cumulative_expenses,
        "total_unmet_need": float(unmet.sum()),
        "shortfall_years": shortfall_years,
        "unconverged_years": [r.year for r in records if not r.converged],
        "feasible": not shortfall_years,
    }


def compare_scenarios(base_inputs: PlannerInputs,
                      scenarios: Mapping[str, Mapping[str, Any]],
                      tax_table: Optional[TaxTable] = None) -> pd.DataFrame:
    """
    Runs the base inputs plus each named set of field overrides and returns
    one summary row per scenario (index = scenario name, 'base' first).
    """
    rows = {"base": summarize_projection(generate_projections(base_inputs, tax_table))}
    for name, overrides in scenarios.items():
        scenario_inputs = replace(base_inputs, **dict(overrides))
        rows[name] = summarize_projection(generate_projections(scenario_inputs, tax_table))

    df = pd.DataFrame.from_dict(rows, orient="index")
    df.index.name = "scenario"
    return df


def projection_to_dataframe(records: List[YearRecord]) -> pd.DataFrame:
    """One row per year, one column per YearRecord field, indexed by year."""
    columns = YearRecord.field_names()
    df = pd.DataFrame([[r.value(c) for c in columns] for r in records], columns=columns)
    return df.set_index("year", drop=False)

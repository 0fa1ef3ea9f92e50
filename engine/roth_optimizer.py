# engine/roth_optimizer.py

import logging
import multiprocessing as mp
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from engine.simulator import generate_projections
from models import PlannerInputs, YearRecord
from utils.tax_utils import TaxTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionEvaluation:
    schedule: Dict[int, float]
    score: float
    feasible: bool
    shortfall_years: Tuple[int, ...]


def evaluate_conversion_schedule(
    inputs: PlannerInputs,
    schedule: Mapping[int, float],
    tax_table: Optional[TaxTable] = None,
    metric: str = "heir_value",
) -> ConversionEvaluation:
    """
    Runs one projection with ``schedule`` as the Roth conversion plan and
    scores it by ``metric`` in the final year.

    A candidate is infeasible when any year reports an unmet withdrawal need.
    """
    schedule = {int(year): float(amount) for year, amount in schedule.items()}
    records = generate_projections(replace(inputs, roth_conversions=schedule), tax_table)
    final: YearRecord = records[-1]

    shortfall_years = tuple(r.year for r in records if r.unmet_need > 0)
    return ConversionEvaluation(
        schedule=schedule,
        score=float(final.value(metric)),
        feasible=not shortfall_years,
        shortfall_years=shortfall_years,
    )


def _evaluate_candidate(args) -> ConversionEvaluation:
    # Pool workers need a top-level callable
    return evaluate_conversion_schedule(*args)


def rank_conversion_schedules(
    inputs: PlannerInputs,
    schedules: Sequence[Mapping[int, float]],
    tax_table: Optional[TaxTable] = None,
    metric: str = "heir_value",
    processes: Optional[int] = None,
) -> List[ConversionEvaluation]:
    """
    Evaluates every candidate and returns them best first: feasible
    candidates ahead of infeasible ones, then by descending score.

    With ``processes`` > 1 the candidates run in a multiprocessing pool.
    Each projection is independent, so results match the serial run.
    """
    if metric not in YearRecord.field_names():
        raise KeyError(f"Unknown ranking metric '{metric}'")

    jobs = [(inputs, schedule, tax_table, metric) for schedule in schedules]

    if processes and processes > 1 and len(jobs) > 1:
        logger.info("Evaluating %d conversion schedules on %d processes", len(jobs), processes)
        with mp.Pool(processes=processes) as pool:
            results = pool.map(_evaluate_candidate, jobs)
    else:
        results = [_evaluate_candidate(job) for job in jobs]

    return sorted(results, key=lambda r: (not r.feasible, -r.score))

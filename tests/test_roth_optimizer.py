from dataclasses import replace

import pytest

from engine.roth_optimizer import evaluate_conversion_schedule, rank_conversion_schedules
from engine.simulator import generate_projections
from models import PlannerInputs


@pytest.fixture
def small_ira_inputs():
    """Three years of IRA-only spending; no RMD and no Medicare yet."""
    return PlannerInputs(
        start_year=2026, end_year=2028, birth_year=1966,
        ira_start=200_000, annual_expenses=50_000,
        heir_fed_rate=0.30,
    )


def test_evaluation_matches_projection(base_inputs, tax_table):
    evaluation = evaluate_conversion_schedule(base_inputs, {2026: 75_000}, tax_table)
    records = generate_projections(
        replace(base_inputs, roth_conversions={2026: 75_000.0}), tax_table)
    assert evaluation.score == records[-1].heir_value
    assert evaluation.schedule == {2026: 75_000.0}
    assert evaluation.feasible == all(r.unmet_need == 0 for r in records)


def test_other_metric(base_inputs, tax_table):
    evaluation = evaluate_conversion_schedule(base_inputs, {}, tax_table, metric="cumulative_tax")
    assert evaluation.score == generate_projections(
        replace(base_inputs, roth_conversions={}), tax_table)[-1].cumulative_tax


def test_infeasible_candidates_rank_last(small_ira_inputs, tax_table):
    schedules = [{2026: 200_000}, {}, {2026: 20_000}]
    ranked = rank_conversion_schedules(small_ira_inputs, schedules, tax_table)

    assert ranked[-1].schedule == {2026: 200_000.0}
    assert not ranked[-1].feasible
    assert 2026 in ranked[-1].shortfall_years
    assert ranked[0].feasible and ranked[1].feasible
    assert ranked[0].score >= ranked[1].score


def test_pool_matches_serial(small_ira_inputs, tax_table):
    schedules = [{}, {2026: 10_000}, {2026: 20_000}, {2027: 30_000}]
    serial = rank_conversion_schedules(small_ira_inputs, schedules, tax_table)
    pooled = rank_conversion_schedules(small_ira_inputs, schedules, tax_table, processes=2)
    assert pooled == serial


def test_unknown_metric(small_ira_inputs):
    with pytest.raises(KeyError):
        rank_conversion_schedules(small_ira_inputs, [{}], metric="happiness")

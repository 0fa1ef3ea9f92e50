from dataclasses import replace

import pytest

from engine.dependency_graph import CELL_DEPENDENCIES, DependencyGraph, DependencyRef
from engine.errors import UnknownFieldError, UnknownYearError
from engine.simulator import generate_projections
from models import YearRecord


@pytest.fixture
def graph(records):
    return DependencyGraph(records)


def _cells(refs):
    return {(ref.field, ref.year) for ref in refs}


def test_registry_only_names_record_fields():
    names = set(YearRecord.field_names())
    assert set(CELL_DEPENDENCIES) <= names


def test_forward_refs_point_inside_the_projection(graph, records):
    names = set(YearRecord.field_names())
    years = {r.year for r in records}
    for record in records:
        for field_name in names:
            for ref in graph.forward(field_name, record.year):
                assert ref.field in names
                assert ref.year in years
                assert ref.year == record.year + ref.offset
                assert ref.sign in ("+", "-")


def test_forward_and_reverse_are_inverses(graph, records):
    for record in records:
        for field_name in YearRecord.field_names():
            for ref in graph.forward(field_name, record.year):
                assert (field_name, record.year) in _cells(graph.reverse(ref.field, ref.year))
            for ref in graph.reverse(field_name, record.year):
                assert (field_name, record.year) in _cells(graph.forward(ref.field, ref.year))


def test_first_year_has_no_prior_references(graph):
    assert graph.forward("at_boy", 2026) == []
    assert graph.forward("irmaa_magi", 2026) == []
    assert graph.forward("irmaa_magi", 2027) == []
    assert graph.forward("cumulative_tax", 2026) == [DependencyRef("total_tax", 2026, 0, "+")]


def test_prior_year_references(graph):
    assert graph.forward("at_boy", 2027) == [DependencyRef("at_eoy", 2026, -1, "+")]
    assert graph.forward("irmaa_magi", 2028) == [DependencyRef("magi", 2026, -2, "+")]
    assert DependencyRef("cumulative_tax", 2026, -1, "+") in graph.forward("cumulative_tax", 2027)


def test_reverse_finds_next_year_consumers(graph):
    consumers = _cells(graph.reverse("at_eoy", 2026))
    assert ("at_boy", 2027) in consumers
    assert ("total_eoy", 2026) in consumers
    assert ("heir_value", 2026) in consumers
    assert ("pv_at_eoy", 2026) in consumers

    magi_consumers = graph.reverse("magi", 2026)
    assert DependencyRef("irmaa_magi", 2028, 2, "+") in magi_consumers


def test_last_year_has_no_next_year_consumers(graph):
    assert ("at_boy", 2046) not in _cells(graph.reverse("at_eoy", 2045))
    assert all(ref.year == 2045 for ref in graph.reverse("at_eoy", 2045))


def test_leaves_have_no_inputs_but_have_consumers(graph):
    assert graph.forward("expenses", 2030) == []
    assert ("cumulative_expenses", 2030) in _cells(graph.reverse("expenses", 2030))
    assert ("at_withdrawal", 2030) in _cells(graph.reverse("expenses", 2030))


def test_signs(graph):
    at_eoy = graph.forward("at_eoy", 2030)
    assert DependencyRef("at_withdrawal", 2030, 0, "-") in at_eoy
    assert DependencyRef("at_boy", 2030, 0, "+") in at_eoy

    roth_w = graph.forward("roth_withdrawal", 2030)
    assert DependencyRef("at_boy", 2030, 0, "-") in roth_w
    assert DependencyRef("ira_boy", 2030, 0, "-") in roth_w
    assert DependencyRef("ss_annual", 2030, 0, "-") in roth_w

    assert DependencyRef("standard_deduction", 2030, 0, "-") in graph.forward("taxable_ordinary", 2030)


def test_withdrawal_refs_follow_configured_order(base_inputs, tax_table):
    records = generate_projections(replace(base_inputs, withdrawal_order=("roth", "ira", "after_tax")), tax_table)
    graph = DependencyGraph(records)
    assert ("at_boy", 2030) not in _cells(graph.forward("roth_withdrawal", 2030))
    at_refs = graph.forward("at_withdrawal", 2030)
    assert DependencyRef("roth_boy", 2030, 0, "-") in at_refs
    assert DependencyRef("ira_boy", 2030, 0, "-") in at_refs


def test_return_dependencies_depend_on_mode(graph, base_inputs, tax_table):
    assert graph.forward("effective_ira_return", 2030) == []

    blended = generate_projections(replace(base_inputs, return_mode="blended",
                                           low_risk_target=1_000_000, mod_risk_target=1_000_000,
                                           low_risk_return=0.03, mod_risk_return=0.05,
                                           high_risk_return=0.07), tax_table)
    refs = _cells(DependencyGraph(blended).forward("effective_ira_return", 2030))
    assert refs == {("total_boy", 2030), ("at_boy", 2030), ("ira_boy", 2030)}


def test_unknown_field(graph):
    with pytest.raises(UnknownFieldError) as excinfo:
        graph.forward("not_a_field", 2030)
    assert excinfo.value.field_name == "not_a_field"
    with pytest.raises(KeyError):
        graph.reverse("not_a_field", 2030)


def test_unknown_year(graph):
    with pytest.raises(UnknownYearError) as excinfo:
        graph.forward("at_boy", 1999)
    assert excinfo.value.year == 1999
    with pytest.raises(LookupError):
        graph.reverse("at_boy", 2046)


def test_lookups_return_copies(graph):
    refs = graph.reverse("at_eoy", 2026)
    refs.clear()
    assert graph.reverse("at_eoy", 2026) != []

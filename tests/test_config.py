from dataclasses import replace

import pytest

import app
from engine.errors import ConfigurationError
from engine.simulator import generate_projections
from models import Heir, PlannerInputs
from utils.input_adapter import get_planner_inputs
from utils.validation import collect_input_errors, validate_inputs
from utils.xml_loader import DEFAULT_SETUP, parse_order, parse_setup_xml, try_cast

SETUP_WITH_HEIRS = """<?xml version="1.0" encoding="utf-8"?>
<setup>
    <start_year>2026</start_year>
    <end_year>2030</end_year>
    <birth_year>1955</birth_year>
    <ira_start>750000</ira_start>
    <annual_expenses>60000</annual_expenses>
    <survivor_death_year>2028</survivor_death_year>
    <withdrawal_order>ira, after_tax, roth</withdrawal_order>
    <expense_overrides>
        <expense year="2027">90000</expense>
    </expense_overrides>
    <heirs>
        <heir name="Alex" split_percent="60" fed_rate="0.24" state_rate="0.05"/>
        <heir name="Sam" split_percent="40" fed_rate="0.12"/>
    </heirs>
</setup>
"""


# --- XML loading ---

def test_default_setup_types():
    assert DEFAULT_SETUP["start_year"] == 2025
    assert DEFAULT_SETUP["iterative_tax"] is True
    assert DEFAULT_SETUP["roth_conversions"] == {2026: 100_000.0, 2027: 100_000.0}
    assert DEFAULT_SETUP["prior_magi"] == {2023: 180_000.0, 2024: 185_000.0}
    assert DEFAULT_SETUP["withdrawal_order"] == ("after_tax", "ira", "roth")
    assert DEFAULT_SETUP["heirs"] == ()
    assert DEFAULT_SETUP["expense_overrides"] == {}


def test_parse_setup_with_heirs(tmp_path):
    path = tmp_path / "setup.xml"
    path.write_text(SETUP_WITH_HEIRS)
    setup = parse_setup_xml(path)

    assert setup["survivor_death_year"] == 2028
    assert setup["withdrawal_order"] == ("ira", "after_tax", "roth")
    assert setup["expense_overrides"] == {2027: 90_000.0}
    assert setup["heirs"] == (Heir("Alex", 60.0, 0.24, 0.05), Heir("Sam", 40.0, 0.12, 0.0))


def test_bad_year_map_entry(tmp_path):
    path = tmp_path / "bad.xml"
    path.write_text("<setup><roth_conversions><conversion>5</conversion></roth_conversions></setup>")
    with pytest.raises(ValueError):
        parse_setup_xml(path)


@pytest.mark.parametrize("raw, expected", [
    ("42", 42), ("0.5", 0.5), ("TRUE", True), ("false", False), ("blended", "blended"), ("  ", None), (None, None),
])
def test_try_cast(raw, expected):
    assert try_cast(raw) == expected


def test_parse_order():
    assert parse_order("Roth, IRA ,after_tax") == ("roth", "ira", "after_tax")
    assert parse_order(["ira", "roth", "after_tax"]) == ("ira", "roth", "after_tax")


# --- Input adapter ---

def test_default_planner_inputs():
    inputs = get_planner_inputs()
    assert isinstance(inputs, PlannerInputs)
    assert inputs.survivor_death_year is None
    assert inputs.return_mode == "blended"
    assert collect_input_errors(inputs) == []


def test_overrides_and_unknown_keys():
    inputs = get_planner_inputs(end_year=2030, withdrawal_order="roth,ira,after_tax",
                                roth_conversions={"2026": "5000"}, not_a_field=1)
    assert inputs.end_year == 2030
    assert inputs.withdrawal_order == ("roth", "ira", "after_tax")
    assert inputs.roth_conversions == {2026: 5_000.0}


def test_heirs_from_dicts():
    inputs = get_planner_inputs(heirs=[{"name": "A", "split_percent": 100, "fed_rate": 0.22}])
    assert inputs.heirs == (Heir("A", 100, 0.22),)


def test_default_setup_projects(tax_table):
    records = generate_projections(get_planner_inputs(), tax_table)
    assert len(records) == 30
    assert records[0].year == 2025
    assert records[1].roth_conversion == 100_000
    # 2023 MAGI feeds the first year's IRMAA
    assert records[0].irmaa_magi == 180_000


# --- Validation ---

def test_valid_inputs_pass(base_inputs):
    validate_inputs(base_inputs)


def test_all_problems_reported_together(base_inputs):
    bad = replace(
        base_inputs,
        end_year=2000,
        roth_start=-5,
        heir_fed_rate=1.5,
        max_iterations=0,
        withdrawal_order=("ira", "roth"),
        roth_conversions={2030: -1},
    )
    with pytest.raises(ConfigurationError) as excinfo:
        validate_inputs(bad)
    message = str(excinfo.value)
    for fragment in ("end_year", "roth_start", "heir_fed_rate", "max_iterations",
                     "withdrawal_order", "Roth conversion for 2030"):
        assert fragment in message


def test_heir_splits_must_total_100(base_inputs):
    bad = replace(base_inputs, heirs=(Heir("A", 50, 0.2), Heir("B", 30, 0.2)))
    errors = collect_input_errors(bad)
    assert any("total 100%" in e for e in errors)


def test_negative_discount_below_minus_one(base_inputs):
    assert collect_input_errors(replace(base_inputs, discount_rate=-1.0))


# --- CLI ---

def test_cli_runs_default_setup(capsys):
    assert app.main(["--end-year", "2028", "--inspect", "ira_boy", "2026"]) == 0
    out = capsys.readouterr().out
    assert "final_heir_value" in out
    assert "ira_boy @ 2026" in out
    assert "ira_eoy @ 2025" in out


def test_cli_reports_configuration_errors(capsys):
    assert app.main(["--end-year", "2000"]) == 2
    assert "end_year" in capsys.readouterr().err


def test_cli_writes_csv(tmp_path):
    target = tmp_path / "projection.csv"
    assert app.main(["--end-year", "2026", "--single-pass", "--csv", str(target)]) == 0
    assert target.exists()
    assert target.read_text().splitlines()[0].startswith("year,")


@pytest.mark.parametrize("field_name, year, fragment", [
    ("not_a_field", "2026", "not_a_field"),
    ("ira_boy", "1999", "1999"),
])
def test_cli_inspect_rejects_unknown_cells(capsys, field_name, year, fragment):
    assert app.main(["--end-year", "2026", "--inspect", field_name, year]) == 3
    captured = capsys.readouterr()
    assert fragment in captured.err
    assert "depends on" not in captured.out

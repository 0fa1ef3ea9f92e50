# app.py
import argparse
import logging
import sys

import pandas as pd

# -----------------------------------------------------------
# Core Imports
# -----------------------------------------------------------

from engine.dependency_graph import DependencyGraph
from engine.errors import ConfigurationError, UnknownFieldError, UnknownYearError
from engine.simulator import generate_projections, projection_to_dataframe, summarize_projection
from utils.input_adapter import get_planner_inputs
from utils.tax_utils import build_default_tax_table
from utils.xml_loader import parse_setup_xml

DEFAULT_COLUMNS = [
    "age", "total_boy", "expenses", "ss_annual", "rmd_required",
    "at_withdrawal", "ira_withdrawal", "roth_withdrawal", "roth_conversion",
    "total_tax", "irmaa_total", "total_eoy", "heir_value", "unmet_need",
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Year-by-year retirement projection with tax and IRMAA modeling.")
    parser.add_argument("--setup", help="Setup XML file (defaults to config/default_setup.xml)")
    parser.add_argument("--start-year", type=int, help="Override the first projected year")
    parser.add_argument("--end-year", type=int, help="Override the last projected year")
    parser.add_argument("--single-pass", action="store_true", help="Disable the iterative tax solve")
    parser.add_argument("--bracket-inflation", type=float, default=0.03, help="Annual tax bracket inflation rate")
    parser.add_argument("--columns", nargs="+", default=DEFAULT_COLUMNS, help="Columns to print")
    parser.add_argument("--csv", help="Write the full projection to this CSV file")
    parser.add_argument("--inspect", nargs=2, metavar=("FIELD", "YEAR"),
                        help="Print what a cell depends on and what depends on it")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.start_year is not None:
        overrides["start_year"] = args.start_year
    if args.end_year is not None:
        overrides["end_year"] = args.end_year
    if args.single_pass:
        overrides["iterative_tax"] = False

    setup = parse_setup_xml(args.setup) if args.setup else None
    inputs = get_planner_inputs(setup, **overrides)
    tax_table = build_default_tax_table(inflation_rate=args.bracket_inflation)

    try:
        records = generate_projections(inputs, tax_table)
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 2

    df = projection_to_dataframe(records)
    with pd.option_context("display.max_columns", None, "display.width", 200,
                           "display.float_format", "{:,.0f}".format):
        print(df[[c for c in args.columns if c in df.columns]].to_string())

    print()
    for key, value in summarize_projection(records).items():
        print(f"{key:>22}: {value}")

    if args.csv:
        df.to_csv(args.csv, index=False)
        print(f"\nWrote {len(df)} rows to {args.csv}")

    if args.inspect:
        field_name, year = args.inspect[0], int(args.inspect[1])
        graph = DependencyGraph(records)
        try:
            inputs_of = graph.forward(field_name, year)
            used_by = graph.reverse(field_name, year)
        except (UnknownFieldError, UnknownYearError) as exc:
            # KeyError quotes its message; print the plain text
            print(exc.args[0], file=sys.stderr)
            return 3

        print(f"\n{field_name} @ {year}")
        print("  depends on:")
        for ref in inputs_of:
            print(f"    {ref.sign} {ref.field} @ {ref.year}")
        print("  used by:")
        for ref in used_by:
            print(f"    {ref.sign} {ref.field} @ {ref.year}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

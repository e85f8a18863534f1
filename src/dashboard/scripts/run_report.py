"""
CLI script to summarize an ad report without the dashboard.

Usage:
    python run_report.py path/to/report.xlsx --mode month --period January --period February
"""

import sys
import argparse
from pathlib import Path
import logging

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from analytics.aggregator import MetricAggregator
from analytics.parser import DecodeError, export_rows, load_and_parse
from analytics.session import DashboardState, build_view

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_calc(value: str):
    """Split a NAME=FORMULA argument."""
    name, sep, formula = value.partition('=')
    if not sep or not name.strip() or not formula.strip():
        raise argparse.ArgumentTypeError(f"Expected NAME=FORMULA, got {value!r}")
    return name.strip(), formula.strip()


def build_parser() -> argparse.ArgumentParser:
    """Command line options."""
    parser = argparse.ArgumentParser(description='Summarize an ad performance report')
    parser.add_argument('input_file', help='Path to CSV or Excel report')
    parser.add_argument(
        '--calc',
        action='append',
        type=parse_calc,
        default=[],
        metavar='NAME=FORMULA',
        help='Calculated column, e.g. "%%Spend=(Spend / Sales) * 100" (repeatable)'
    )
    parser.add_argument('--account', action='append', default=[], help='Account to keep (repeatable)')
    parser.add_argument('--year', action='append', default=[], help='Year to keep (repeatable)')
    parser.add_argument(
        '--mode',
        choices=['week', 'month'],
        default='week',
        help='Period mode'
    )
    parser.add_argument('--period', action='append', default=[], help='Week or month to keep (repeatable)')
    parser.add_argument('--metric', action='append', default=[], help='Metric to summarize (repeatable)')
    parser.add_argument(
        '--watch',
        action='append',
        default=None,
        help='Metric to compare between two periods (repeatable, default: all numeric columns)'
    )
    parser.add_argument('--export', help='Write the filtered rows to this .csv or .xlsx file')
    return parser


def main(argv=None):
    """Main processing pipeline."""
    args = build_parser().parse_args(argv)

    input_path = Path(args.input_file)
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        sys.exit(1)

    logger.info("=" * 60)
    logger.info("STEP 1: Decoding report")
    logger.info("=" * 60)

    try:
        rows = load_and_parse(input_path.read_bytes(), input_path.name)
    except DecodeError as exc:
        logger.error(f"Failed to read file: {exc}")
        sys.exit(1)

    state = DashboardState()
    state.load(rows, input_path.name)
    for name, formula in args.calc:
        state.add_calc_column(name, formula)
    state.set_period_mode(args.mode)
    state.selected_accounts = args.account
    state.selected_years = args.year
    state.selected_periods = args.period
    state.watched_metrics = args.watch

    logger.info("=" * 60)
    logger.info("STEP 2: Applying calculated columns and filters")
    logger.info("=" * 60)

    view = build_view(state)
    logger.info(f"Rows after filters: {len(view.filtered_rows)}")

    metrics = args.metric or view.metric_options
    summary = MetricAggregator(view.filtered_rows).summary_frame(state.period_mode, metrics)

    logger.info("=" * 60)
    logger.info("STEP 3: Comparing periods")
    logger.info("=" * 60)

    if len(state.selected_periods) != 2:
        logger.info("Comparison skipped: select exactly two periods")

    print("\n" + "=" * 60)
    print(f"Summary by {state.period_mode}")
    print("=" * 60)
    print(summary.to_string() if not summary.empty else "  (no periods)")

    if view.formatting_map:
        first, second = state.selected_periods
        print("\n" + "=" * 60)
        print(f"{second} vs {first}")
        print("=" * 60)
        for account, periods in view.formatting_map.items():
            verdicts = ", ".join(f"{metric}: {verdict}" for metric, verdict in periods[second].items())
            print(f"  {account}: {verdicts}")

    if args.export:
        export_path = Path(args.export)
        export_path.write_bytes(export_rows(view.filtered_rows, export_path.name))
        logger.info(f"Exported {len(view.filtered_rows)} rows to {export_path}")

    print("=" * 60)


if __name__ == '__main__':
    main()

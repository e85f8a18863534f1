"""
Two-period comparison for conditional table formatting.

For every account and watched metric, the second selected period is compared
with the first and labelled better, worse or same. Whether an increase is
good depends on the metric.
"""

import logging
from typing import Dict, Iterable, List, Sequence

import pandas as pd

from analytics.metadata import period_column
from analytics.parser import cell_text, column_text, numeric_values

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BETTER = 'better'
WORSE = 'worse'
SAME = 'same'

# Metrics where an increase is bad
HIGHER_IS_BAD = ['ACOS', 'CPC']

# Metrics where a decrease is bad
LOWER_IS_BAD = ['ROAS', 'CTR']

VERDICT_STYLES = {
    WORSE: 'background-color: #fef2f2; color: #b91c1c; font-weight: 600',
    BETTER: 'background-color: #f0fdf4; color: #15803d; font-weight: 600',
}

FormattingMap = Dict[str, Dict[str, Dict[str, str]]]


def metric_verdict(metric: str, before: float, after: float) -> str:
    """
    Judge the change of a metric between two periods.

    Args:
        metric: Metric name
        before: Value in the baseline period
        after: Value in the compared period

    Returns:
        'better', 'worse' or 'same'
    """
    if after == before:
        return SAME

    increased = after > before
    if metric in HIGHER_IS_BAD:
        return WORSE if increased else BETTER
    if metric in LOWER_IS_BAD:
        return BETTER if increased else WORSE
    # higher is better by default
    return BETTER if increased else WORSE


def build_conditional_formatting_map(
    rows: pd.DataFrame,
    mode: str,
    selected_periods: Sequence[str],
    watched_metrics: Iterable[str]
) -> FormattingMap:
    """
    Compare the second selected period against the first, per account.

    Only meaningful with exactly two selected periods; any other count yields
    an empty map. Sums are taken per (account, period) over rows with a
    non-blank account and one of the selected periods. Missing sums count as 0.
    The first period is the baseline and is always marked 'same'.

    Args:
        rows: Filtered rows
        mode: Period mode
        selected_periods: Selected period labels, in selection order
        watched_metrics: Metrics to compare

    Returns:
        Nested dict: account -> period -> metric -> verdict
    """
    selected_periods = list(selected_periods)
    if len(selected_periods) != 2:
        return {}

    first, second = selected_periods
    metrics = list(dict.fromkeys(watched_metrics))

    accounts = column_text(rows, 'Accounts')
    periods = column_text(rows, period_column(mode))
    in_scope = ((accounts != '') & (periods != '') & periods.isin(selected_periods)).astype(bool)
    if not in_scope.any():
        return {}

    sums = pd.DataFrame({metric: numeric_values(rows, metric) for metric in metrics}, index=rows.index)
    grouped = sums[in_scope].groupby([accounts[in_scope], periods[in_scope]], sort=False).sum()
    totals = grouped.to_dict('index')

    formatting: FormattingMap = {}
    for account in pd.unique(accounts[in_scope]):
        account_map = {first: {}, second: {}}
        for metric in metrics:
            before = float(totals.get((account, first), {}).get(metric, 0.0))
            after = float(totals.get((account, second), {}).get(metric, 0.0))
            account_map[second][metric] = metric_verdict(metric, before, after)
            account_map[first][metric] = SAME
        formatting[account] = account_map

    logger.info(f"Compared {second} against {first} for {len(formatting)} accounts and {len(metrics)} metrics")
    return formatting


def conditional_style(formatting_map: FormattingMap, account: str, period: str, column: str) -> str:
    """CSS for a table cell; empty unless the cell is better or worse."""
    verdict = formatting_map.get(account, {}).get(period, {}).get(column)
    return VERDICT_STYLES.get(verdict, '')


def row_styles(row: pd.Series, mode: str, formatting_map: FormattingMap) -> List[str]:
    """
    CSS for every cell of a table row.

    Args:
        row: Table row
        mode: Period mode, selects the Week or Month field
        formatting_map: Verdicts from build_conditional_formatting_map

    Returns:
        One CSS string per column
    """
    account = cell_text(row.get('Accounts'))
    period = cell_text(row.get(period_column(mode)))
    return [conditional_style(formatting_map, account, period, column) for column in row.index]


def style_frame(rows: pd.DataFrame, mode: str, formatting_map: FormattingMap):
    """Styler colouring better cells green and worse cells red."""
    return rows.style.apply(row_styles, axis=1, mode=mode, formatting_map=formatting_map)

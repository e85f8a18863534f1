"""
Metric aggregation by period for charting.
"""

import logging
from typing import Dict, Iterable, List, NamedTuple

import pandas as pd

from analytics.metadata import PeriodHelper, period_column
from analytics.parser import column_text, numeric_values

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PeriodSeries(NamedTuple):
    """Parallel period labels and summed metric values."""

    labels: List[str]
    values: List[float]


def summarize_metric_by_period(rows: pd.DataFrame, mode: str, metric: str) -> PeriodSeries:
    """
    Sum one metric per period.

    Rows with a blank period are skipped; metric cells that are not numbers
    count as 0.

    Args:
        rows: Rows to aggregate
        mode: 'week' groups by Week, 'month' by Month
        metric: Column to sum

    Returns:
        PeriodSeries ordered by period
    """
    periods = column_text(rows, period_column(mode))
    has_period = periods != ''
    if not has_period.any():
        return PeriodSeries([], [])

    values = numeric_values(rows, metric)[has_period]
    totals = values.groupby(periods[has_period], sort=False).sum()

    labels = PeriodHelper.sort_periods(totals.index.tolist(), mode)
    return PeriodSeries(labels, [float(totals.loc[label]) for label in labels])


class MetricAggregator:
    """Aggregate metrics across the filtered rows."""

    def __init__(self, rows: pd.DataFrame):
        """
        Initialize aggregator.

        Args:
            rows: Filtered rows with calculated columns applied
        """
        self.rows = rows

    def summarize(self, mode: str, metric: str) -> PeriodSeries:
        """Sum a metric per period."""
        return summarize_metric_by_period(self.rows, mode, metric)

    def summary_frame(self, mode: str, metrics: Iterable[str]) -> pd.DataFrame:
        """
        Tabulate several metrics per period.

        Args:
            mode: Period mode
            metrics: Metrics to include as columns

        Returns:
            DataFrame indexed by period label, one column per metric
        """
        labels: List[str] = []
        columns: Dict[str, List[float]] = {}

        for metric in metrics:
            series = self.summarize(mode, metric)
            labels = series.labels
            columns[metric] = series.values

        if not columns:
            labels = self.summarize(mode, '').labels

        return pd.DataFrame(columns, index=pd.Index(labels, name=period_column(mode)))

    def totals(self, metrics: Iterable[str]) -> Dict[str, float]:
        """
        Sum each metric over every row.

        Args:
            metrics: Metric names

        Returns:
            Dict of metric name to total
        """
        return {metric: float(numeric_values(self.rows, metric).sum()) for metric in metrics}

"""
Dashboard session state and the recompute pipeline.

Every derived view is rebuilt from scratch by build_view(): calculated
columns, then option domains, then the account, year and period filters, then
the chart series and comparison verdicts.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

from analytics.aggregator import PeriodSeries, summarize_metric_by_period
from analytics.comparison import FormattingMap, build_conditional_formatting_map
from analytics.filters import apply_filters
from analytics.formula import CalcColumn, apply_calculated_columns
from analytics.metadata import (
    get_numeric_columns,
    get_period_options,
    get_unique_accounts,
    get_unique_months,
    get_unique_weeks,
    get_unique_years,
    period_column,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class DashboardState:
    """User inputs for one dashboard session."""

    rows: pd.DataFrame = field(default_factory=pd.DataFrame)
    file_name: Optional[str] = None
    period_mode: str = 'week'
    selected_accounts: List[str] = field(default_factory=list)
    selected_years: List[str] = field(default_factory=list)
    selected_periods: List[str] = field(default_factory=list)
    calc_columns: List[CalcColumn] = field(default_factory=list)
    chart_metric: Optional[str] = None
    watched_metrics: Optional[List[str]] = None

    def load(self, rows: pd.DataFrame, file_name: str) -> None:
        """
        Replace the dataset with a new upload.

        Selections are cleared; calculated column definitions are kept and
        re-applied to the new rows.

        Args:
            rows: Decoded rows
            file_name: Name of the uploaded file
        """
        self.rows = rows
        self.file_name = file_name
        self.selected_accounts = []
        self.selected_years = []
        self.selected_periods = []
        self.chart_metric = None
        self.watched_metrics = None
        logger.info(f"Loaded {len(rows)} rows from {file_name}")

    def add_calc_column(self, name: str, formula: str) -> bool:
        """
        Append a calculated column.

        Args:
            name: Column name
            formula: Formula text

        Returns:
            False when the name or formula is blank and nothing was added
        """
        name = (name or '').strip()
        formula = (formula or '').strip()
        if not name or not formula:
            logger.warning("Ignoring calculated column without a name or formula")
            return False

        self.calc_columns.append(CalcColumn(name, formula))
        return True

    def set_watched_metrics(self, selected: List[str], metric_options: List[str]) -> None:
        """
        Record the compared metrics picked by the user.

        Picking every offered metric keeps the default of watching all
        numeric columns, so metrics that appear later are compared too.

        Args:
            selected: Metrics chosen in the selector
            metric_options: Metrics the selector offered
        """
        if set(selected) == set(metric_options):
            self.watched_metrics = None
        else:
            self.watched_metrics = list(selected)

    def set_period_mode(self, mode: str) -> None:
        """Switch between week and month; the period selection is cleared on change."""
        period_column(mode)
        if mode != self.period_mode:
            self.period_mode = mode
            self.selected_periods = []


@dataclass(frozen=True)
class DashboardView:
    """Everything the dashboard renders, derived from a DashboardState."""

    rows_with_calcs: pd.DataFrame
    filtered_rows: pd.DataFrame
    accounts: List[str]
    years: List[str]
    months: List[str]
    weeks: List[str]
    period_options: List[str]
    metric_options: List[str]
    chart_metric: Optional[str]
    chart: PeriodSeries
    watched_metrics: List[str]
    formatting_map: FormattingMap


def build_view(state: DashboardState) -> DashboardView:
    """
    Recompute every derived view from the session state.

    Args:
        state: Current session state

    Returns:
        DashboardView
    """
    rows_with_calcs = apply_calculated_columns(state.rows, state.calc_columns)

    metric_options = get_numeric_columns(rows_with_calcs)

    filtered_rows = apply_filters(
        rows_with_calcs,
        accounts=state.selected_accounts,
        years=state.selected_years,
        mode=state.period_mode,
        periods=state.selected_periods,
    )

    chart_metric = state.chart_metric
    if chart_metric not in metric_options:
        chart_metric = metric_options[0] if metric_options else None

    if chart_metric is None:
        chart = PeriodSeries([], [])
    else:
        chart = summarize_metric_by_period(filtered_rows, state.period_mode, chart_metric)

    watched_metrics = metric_options if state.watched_metrics is None else list(state.watched_metrics)
    formatting_map = build_conditional_formatting_map(
        filtered_rows,
        state.period_mode,
        state.selected_periods,
        watched_metrics,
    )

    return DashboardView(
        rows_with_calcs=rows_with_calcs,
        filtered_rows=filtered_rows,
        accounts=get_unique_accounts(rows_with_calcs),
        years=get_unique_years(rows_with_calcs),
        months=get_unique_months(rows_with_calcs),
        weeks=get_unique_weeks(rows_with_calcs),
        period_options=get_period_options(rows_with_calcs, state.period_mode),
        metric_options=metric_options,
        chart_metric=chart_metric,
        chart=chart,
        watched_metrics=watched_metrics,
        formatting_map=formatting_map,
    )

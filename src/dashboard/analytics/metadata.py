"""
Option domains derived from the current rows.

Includes period ordering helpers plus the distinct accounts, years, months,
weeks and numeric columns offered by the dashboard's selectors.
"""

import logging
import re
from typing import Callable, Iterable, List, Optional

import pandas as pd

from analytics.parser import column_text, is_numeric_like

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Month ordering
MONTH_ORDER = ['January', 'February', 'March', 'April', 'May', 'June',
               'July', 'August', 'September', 'October', 'November', 'December']

# Row field read for each period mode
PERIOD_COLUMNS = {
    'week': 'Week',
    'month': 'Month',
}

# Columns never offered as metrics
NON_METRIC_COLUMNS = ['Week', 'Month']


def period_column(mode: str) -> str:
    """
    Row field holding the period for a mode.

    Args:
        mode: 'week' or 'month'

    Returns:
        'Week' or 'Month'

    Raises:
        ValueError: On any other mode
    """
    try:
        return PERIOD_COLUMNS[mode]
    except KeyError:
        raise ValueError(f"Unknown period mode: {mode!r}") from None


class PeriodHelper:
    """Helper for period ordering."""

    @staticmethod
    def month_index(label: str) -> int:
        """
        Position of a month name in the calendar.

        Args:
            label: Month name (January, February, etc.)

        Returns:
            0-11, or -1 for names outside the calendar
        """
        try:
            return MONTH_ORDER.index(label)
        except ValueError:
            return -1

    @staticmethod
    def week_number(label: str) -> Optional[int]:
        """
        Week index from the digits of a label ('WK 01' -> 1).

        Args:
            label: Week label

        Returns:
            Integer made of every digit in the label, or None without digits
        """
        digits = re.sub(r'[^0-9]', '', label)
        return int(digits) if digits else None

    @staticmethod
    def sort_periods(labels: Iterable[str], mode: str) -> List[str]:
        """
        Order period labels for display.

        Months follow the calendar; names outside it come first, in their
        original order. Weeks follow their number; labels without digits
        come last, in their original order.

        Args:
            labels: Period labels
            mode: 'week' or 'month'

        Returns:
            Sorted labels
        """
        period_column(mode)
        labels = list(labels)

        if mode == 'month':
            return sorted(labels, key=PeriodHelper.month_index)

        numbered = [label for label in labels if PeriodHelper.week_number(label) is not None]
        unnumbered = [label for label in labels if PeriodHelper.week_number(label) is None]
        return sorted(numbered, key=PeriodHelper.week_number) + unnumbered


def _distinct_text(rows: pd.DataFrame, column: str) -> List[str]:
    """Distinct non-blank trimmed values of a column, in first-seen order."""
    values = column_text(rows, column)
    return [value for value in pd.unique(values) if value]


def get_unique_accounts(rows: pd.DataFrame) -> List[str]:
    """Distinct account names, sorted."""
    return sorted(_distinct_text(rows, 'Accounts'))


def get_unique_years(rows: pd.DataFrame) -> List[str]:
    """
    Distinct years in numeric order.

    Values that are not numbers keep their first-seen order after the numeric ones.
    """
    years = _distinct_text(rows, 'Year')
    numeric = [year for year in years if is_numeric_like(year)]
    other = [year for year in years if not is_numeric_like(year)]
    return sorted(numeric, key=float) + other


def get_unique_months(rows: pd.DataFrame) -> List[str]:
    """Distinct month names in calendar order."""
    return PeriodHelper.sort_periods(_distinct_text(rows, 'Month'), 'month')


def get_unique_weeks(rows: pd.DataFrame) -> List[str]:
    """Distinct week labels ordered by week number."""
    return PeriodHelper.sort_periods(_distinct_text(rows, 'Week'), 'week')


def get_period_options(rows: pd.DataFrame, mode: str) -> List[str]:
    """
    Period labels selectable under a mode.

    Args:
        rows: Current rows
        mode: 'week' or 'month'

    Returns:
        Week labels or month names, ordered
    """
    period_column(mode)
    getter: Callable[[pd.DataFrame], List[str]] = get_unique_weeks if mode == 'week' else get_unique_months
    return getter(rows)


def get_numeric_columns(rows: pd.DataFrame) -> List[str]:
    """
    Columns usable as metrics.

    A column qualifies when at least one of its cells holds a number. The
    period fields never qualify.

    Args:
        rows: Current rows

    Returns:
        Column names, in column order
    """
    metrics = [
        column for column in rows.columns
        if column not in NON_METRIC_COLUMNS and bool(rows[column].map(is_numeric_like).any())
    ]
    logger.debug(f"Discovered {len(metrics)} numeric columns")
    return metrics

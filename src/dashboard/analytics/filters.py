"""
Row filters applied before charting and comparison.

Stages run in a fixed order: accounts, then years, then periods. Each stage
returns a new DataFrame and leaves its input untouched.
"""

import logging
from typing import Iterable, Optional

import pandas as pd

from analytics.metadata import period_column
from analytics.parser import cell_text, column_text

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _filter_by_column(rows: pd.DataFrame, column: str, selected: Optional[Iterable[str]]) -> pd.DataFrame:
    """Keep rows whose trimmed column text is one of the selected values."""
    wanted = {str(value) for value in (selected or [])}
    if not wanted:
        return rows

    text = column_text(rows, column)
    mask = text.isin(wanted) & (text != '')
    return rows[mask.astype(bool)]


def filter_by_accounts(rows: pd.DataFrame, selected: Optional[Iterable[str]]) -> pd.DataFrame:
    """
    Filter rows by account.

    Args:
        rows: Rows to filter
        selected: Account names; empty keeps every row

    Returns:
        Matching rows, original order
    """
    return _filter_by_column(rows, 'Accounts', selected)


def filter_by_years(rows: pd.DataFrame, selected: Optional[Iterable[str]]) -> pd.DataFrame:
    """
    Filter rows by year.

    Args:
        rows: Rows to filter
        selected: Years as text; empty keeps every row

    Returns:
        Matching rows, original order
    """
    return _filter_by_column(rows, 'Year', selected)


def filter_by_periods(rows: pd.DataFrame, mode: str, selected: Optional[Iterable[str]]) -> pd.DataFrame:
    """
    Filter rows by week or month, depending on the period mode.

    Args:
        rows: Rows to filter
        mode: 'week' reads the Week field, 'month' the Month field
        selected: Period labels; empty keeps every row

    Returns:
        Matching rows, original order
    """
    return _filter_by_column(rows, period_column(mode), selected)


def apply_filters(
    rows: pd.DataFrame,
    accounts: Optional[Iterable[str]] = None,
    years: Optional[Iterable[str]] = None,
    mode: str = 'week',
    periods: Optional[Iterable[str]] = None
) -> pd.DataFrame:
    """
    Run the account, year and period filters in order.

    Args:
        rows: Rows to filter
        accounts: Selected accounts
        years: Selected years
        mode: Period mode
        periods: Selected periods

    Returns:
        Filtered rows
    """
    filtered = filter_by_accounts(rows, accounts)
    filtered = filter_by_years(filtered, years)
    filtered = filter_by_periods(filtered, mode, periods)
    logger.info(f"Filters kept {len(filtered)} of {len(rows)} rows")
    return filtered


def search_rows(rows: pd.DataFrame, query: Optional[str]) -> pd.DataFrame:
    """
    Keep rows where any cell contains the query, ignoring case.

    Args:
        rows: Rows to search
        query: Search text; blank keeps every row

    Returns:
        Matching rows
    """
    if not query or not query.strip():
        return rows

    needle = query.lower()
    mask = pd.Series(False, index=rows.index)
    for column in rows.columns:
        mask |= rows[column].map(lambda value: needle in cell_text(value).lower()).astype(bool)
    return rows[mask]

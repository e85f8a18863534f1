"""
Unit tests for filters module.
"""

import pytest
import pandas as pd
from analytics.filters import (
    apply_filters,
    filter_by_accounts,
    filter_by_periods,
    filter_by_years,
    search_rows,
)


@pytest.fixture
def rows():
    """Small report with messy cells."""
    return pd.DataFrame({
        'Accounts': ['Acme', ' Beta ', 'Acme', None, 'Gamma'],
        'Year': ['2024', 2024.0, '2023', '2024', None],
        'Week': ['WK 01', 'WK 02', 'WK 01', 'WK 02', ''],
        'Month': ['January', 'January', 'February', ' February', 'March'],
        'Spend': ['10', '20', '30', '40', '50'],
    }, dtype=object)


class TestPassThrough:
    """An empty selection keeps every row."""

    def test_accounts(self, rows):
        """Account filter without selection."""
        pd.testing.assert_frame_equal(filter_by_accounts(rows, []), rows)

    def test_years(self, rows):
        """Year filter without selection."""
        pd.testing.assert_frame_equal(filter_by_years(rows, []), rows)

    def test_periods(self, rows):
        """Period filter without selection, both modes."""
        pd.testing.assert_frame_equal(filter_by_periods(rows, 'week', []), rows)
        pd.testing.assert_frame_equal(filter_by_periods(rows, 'month', None), rows)


class TestSelections:
    """Tests for non-empty selections."""

    def test_accounts_match_trimmed_text(self, rows):
        """Cells are trimmed before matching; missing accounts never match."""
        result = filter_by_accounts(rows, ['Acme', 'Beta'])

        assert result['Spend'].tolist() == ['10', '20', '30']

    def test_years_match_numbers_and_text(self, rows):
        """A year stored as a number matches its text form."""
        result = filter_by_years(rows, ['2024'])

        assert result['Spend'].tolist() == ['10', '20', '40']

    def test_week_mode_reads_week(self, rows):
        """Week mode filters on the Week field."""
        result = filter_by_periods(rows, 'week', ['WK 02'])

        assert result['Spend'].tolist() == ['20', '40']

    def test_month_mode_reads_month(self, rows):
        """Month mode filters on the Month field."""
        result = filter_by_periods(rows, 'month', ['February'])

        assert result['Spend'].tolist() == ['30', '40']

    def test_blank_field_never_matches(self, rows):
        """Even an empty-string selection does not match blank cells."""
        assert filter_by_periods(rows, 'week', ['']).empty

    def test_missing_column_never_matches(self, rows):
        """Rows without the field are dropped by a non-empty selection."""
        no_years = rows.drop(columns=['Year'])

        assert filter_by_years(no_years, ['2024']).empty

    def test_order_and_index_preserved(self, rows):
        """Filtering keeps the original row order."""
        result = filter_by_accounts(rows, ['Gamma', 'Acme'])

        assert result.index.tolist() == [0, 2, 4]

    def test_input_not_modified(self, rows):
        """Filters return a new frame."""
        original = rows.copy()

        filter_by_accounts(rows, ['Acme'])

        pd.testing.assert_frame_equal(rows, original)

    def test_unknown_mode(self, rows):
        """Only week and month are period modes."""
        with pytest.raises(ValueError):
            filter_by_periods(rows, 'quarter', ['Q1'])


class TestApplyFilters:
    """Tests for the composed pipeline."""

    def test_stages_compose(self, rows):
        """Accounts, years and periods narrow in turn."""
        result = apply_filters(rows, accounts=['Acme'], years=['2024'], mode='week', periods=['WK 01'])

        assert result['Spend'].tolist() == ['10']

    def test_no_selection(self, rows):
        """Nothing selected keeps everything."""
        pd.testing.assert_frame_equal(apply_filters(rows), rows)


class TestSearchRows:
    """Tests for search_rows."""

    def test_case_insensitive(self, rows):
        """Search matches any cell, ignoring case."""
        result = search_rows(rows, 'acme')

        assert result['Spend'].tolist() == ['10', '30']

    def test_matches_numbers(self, rows):
        """Numeric cells are searched by their text."""
        assert search_rows(rows, '50')['Accounts'].tolist() == ['Gamma']

    def test_blank_query(self, rows):
        """A blank query keeps every row."""
        pd.testing.assert_frame_equal(search_rows(rows, '  '), rows)

    def test_no_match(self, rows):
        """No matching cell leaves an empty frame."""
        assert search_rows(rows, 'zzz').empty

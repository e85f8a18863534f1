"""
Unit tests for comparison module.
"""

import pytest
import pandas as pd
from analytics.comparison import (
    BETTER,
    SAME,
    VERDICT_STYLES,
    WORSE,
    build_conditional_formatting_map,
    conditional_style,
    metric_verdict,
    row_styles,
)


def make_rows(records):
    return pd.DataFrame(records, dtype=object)


class TestMetricVerdict:
    """Tests for metric polarity."""

    @pytest.mark.parametrize('metric, before, after, expected', [
        ('ACOS', 10, 20, WORSE),
        ('ACOS', 20, 10, BETTER),
        ('CPC', 1.5, 1.2, BETTER),
        ('ROAS', 4, 3, WORSE),
        ('ROAS', 3, 4, BETTER),
        ('CTR', 0.02, 0.01, WORSE),
        ('Sales', 100, 150, BETTER),
        ('Spend', 150, 100, WORSE),
        ('ACOS', 5, 5, SAME),
        ('Sales', 0, 0, SAME),
    ])
    def test_polarity(self, metric, before, after, expected):
        """Higher-is-bad, lower-is-bad and default metrics."""
        assert metric_verdict(metric, before, after) == expected


class TestBuildConditionalFormattingMap:
    """Tests for build_conditional_formatting_map."""

    def test_higher_is_bad(self):
        """ACOS rising from Jan to Feb is worse; the baseline is same."""
        rows = make_rows([
            {'Accounts': 'A', 'Month': 'Jan', 'ACOS': '10'},
            {'Accounts': 'A', 'Month': 'Feb', 'ACOS': '20'},
        ])

        result = build_conditional_formatting_map(rows, 'month', ['Jan', 'Feb'], ['ACOS'])

        assert result == {'A': {'Jan': {'ACOS': 'same'}, 'Feb': {'ACOS': 'worse'}}}

    def test_default_polarity(self):
        """Sales rising is better."""
        rows = make_rows([
            {'Accounts': 'A', 'Month': 'Jan', 'Sales': '100'},
            {'Accounts': 'A', 'Month': 'Feb', 'Sales': '150'},
        ])

        result = build_conditional_formatting_map(rows, 'month', ['Jan', 'Feb'], ['Sales'])

        assert result['A']['Feb']['Sales'] == 'better'
        assert result['A']['Jan']['Sales'] == 'same'

    @pytest.mark.parametrize('periods', [[], ['Jan'], ['Jan', 'Feb', 'Mar']])
    def test_requires_exactly_two_periods(self, periods):
        """Zero, one or three periods give no comparison."""
        rows = make_rows([
            {'Accounts': 'A', 'Month': 'Jan', 'ACOS': '10'},
            {'Accounts': 'A', 'Month': 'Feb', 'ACOS': '20'},
            {'Accounts': 'A', 'Month': 'Mar', 'ACOS': '30'},
        ])

        assert build_conditional_formatting_map(rows, 'month', periods, ['ACOS']) == {}

    def test_selection_order_decides_direction(self):
        """The second selected period is compared against the first."""
        rows = make_rows([
            {'Accounts': 'A', 'Week': 'WK 01', 'ACOS': '10'},
            {'Accounts': 'A', 'Week': 'WK 02', 'ACOS': '20'},
        ])

        result = build_conditional_formatting_map(rows, 'week', ['WK 02', 'WK 01'], ['ACOS'])

        assert result == {'A': {'WK 02': {'ACOS': 'same'}, 'WK 01': {'ACOS': 'better'}}}

    def test_sums_per_account_and_period(self):
        """Rows are summed per account and period before comparing."""
        rows = make_rows([
            {'Accounts': 'A', 'Week': 'WK 01', 'Spend': '10'},
            {'Accounts': 'A', 'Week': 'WK 01', 'Spend': '15'},
            {'Accounts': 'A', 'Week': 'WK 02', 'Spend': '20'},
            {'Accounts': 'B', 'Week': 'WK 01', 'Spend': '5'},
            {'Accounts': 'B', 'Week': 'WK 02', 'Spend': '2'},
            {'Accounts': 'B', 'Week': 'WK 02', 'Spend': '3'},
        ])

        result = build_conditional_formatting_map(rows, 'week', ['WK 01', 'WK 02'], ['Spend'])

        assert result['A']['WK 02']['Spend'] == WORSE
        assert result['B']['WK 02']['Spend'] == SAME

    def test_missing_period_counts_as_zero(self):
        """An account without rows in one period compares against zero."""
        rows = make_rows([
            {'Accounts': 'A', 'Week': 'WK 02', 'ROAS': '3'},
            {'Accounts': 'B', 'Week': 'WK 01', 'ROAS': '3'},
        ])

        result = build_conditional_formatting_map(rows, 'week', ['WK 01', 'WK 02'], ['ROAS'])

        assert result['A']['WK 02']['ROAS'] == BETTER
        assert result['B']['WK 02']['ROAS'] == WORSE
        assert result['B']['WK 01']['ROAS'] == SAME

    def test_skips_blank_accounts_and_other_periods(self):
        """Rows without an account or outside the selection are ignored."""
        rows = make_rows([
            {'Accounts': None, 'Week': 'WK 01', 'Sales': '1'},
            {'Accounts': ' ', 'Week': 'WK 02', 'Sales': '1'},
            {'Accounts': 'C', 'Week': 'WK 03', 'Sales': '1'},
            {'Accounts': 'A', 'Week': 'WK 01', 'Sales': '1'},
        ])

        result = build_conditional_formatting_map(rows, 'week', ['WK 01', 'WK 02'], ['Sales'])

        assert list(result) == ['A']
        assert result['A']['WK 02']['Sales'] == WORSE

    def test_same_period_twice(self):
        """Comparing a period with itself marks everything same."""
        rows = make_rows([{'Accounts': 'A', 'Week': 'WK 01', 'Sales': '5'}])

        result = build_conditional_formatting_map(rows, 'week', ['WK 01', 'WK 01'], ['Sales'])

        assert result == {'A': {'WK 01': {'Sales': SAME}}}

    def test_multiple_metrics(self):
        """Every watched metric gets a verdict, including absent ones."""
        rows = make_rows([
            {'Accounts': 'A', 'Month': 'January', 'CPC': '1.2', 'CTR': '0.05'},
            {'Accounts': 'A', 'Month': 'February', 'CPC': '0.9', 'CTR': '0.05'},
        ])

        result = build_conditional_formatting_map(
            rows, 'month', ['January', 'February'], ['CPC', 'CTR', 'Orders']
        )

        assert result['A']['February'] == {'CPC': BETTER, 'CTR': SAME, 'Orders': SAME}


class TestConditionalStyle:
    """Tests for table cell styling."""

    @pytest.fixture
    def formatting_map(self):
        return {'A': {'Jan': {'ACOS': SAME}, 'Feb': {'ACOS': WORSE, 'Sales': BETTER}}}

    def test_conditional_style(self, formatting_map):
        """Worse is red, better is green, anything else unstyled."""
        assert conditional_style(formatting_map, 'A', 'Feb', 'ACOS') == VERDICT_STYLES[WORSE]
        assert conditional_style(formatting_map, 'A', 'Feb', 'Sales') == VERDICT_STYLES[BETTER]
        assert conditional_style(formatting_map, 'A', 'Jan', 'ACOS') == ''
        assert conditional_style(formatting_map, 'B', 'Feb', 'ACOS') == ''
        assert conditional_style({}, 'A', 'Feb', 'ACOS') == ''

    def test_row_styles(self, formatting_map):
        """One style per column, keyed by the row's account and period."""
        row = pd.Series({'Accounts': ' A ', 'Month': 'Feb', 'ACOS': '20', 'Sales': '5'})

        styles = row_styles(row, 'month', formatting_map)

        assert styles == ['', '', VERDICT_STYLES[WORSE], VERDICT_STYLES[BETTER]]

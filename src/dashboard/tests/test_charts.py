"""
Unit tests for charts module.
"""

import pytest
from analytics.aggregator import PeriodSeries
from analytics.charts import DEFAULT_COLOR, METRIC_COLORS, build_period_chart, chart_palette


@pytest.fixture
def series():
    return PeriodSeries(['WK 01', 'WK 02', 'WK 03'], [10.0, 25.0, 5.0])


class TestBuildPeriodChart:
    """Tests for build_period_chart."""

    @pytest.mark.parametrize('chart_type, trace_type', [
        ('bar', 'bar'),
        ('line', 'scatter'),
        ('doughnut', 'pie'),
        ('radar', 'scatterpolar'),
    ])
    def test_chart_types(self, series, chart_type, trace_type):
        """Each chart type maps to one trace."""
        fig = build_period_chart(series, 'Spend', chart_type)

        assert len(fig.data) == 1
        assert fig.data[0].type == trace_type
        assert fig.data[0].name == 'Spend'

    def test_bar_values(self, series):
        """Bars follow the period order."""
        trace = build_period_chart(series, 'Sales').data[0]

        assert list(trace.x) == ['WK 01', 'WK 02', 'WK 03']
        assert list(trace.y) == [10.0, 25.0, 5.0]

    def test_radar_closes_polygon(self, series):
        """The first point is repeated at the end."""
        trace = build_period_chart(series, 'ACOS', 'radar').data[0]

        assert list(trace.r) == [10.0, 25.0, 5.0, 10.0]
        assert list(trace.theta) == ['WK 01', 'WK 02', 'WK 03', 'WK 01']

    def test_doughnut_uses_metric_colour(self, series):
        """Slices are outlined in the metric's line colour."""
        trace = build_period_chart(series, 'ROAS', 'doughnut').data[0]

        assert trace.hole == 0.5
        assert trace.marker.line.color == METRIC_COLORS['ROAS']['line']

    def test_empty_series(self):
        """No periods still builds a figure."""
        fig = build_period_chart(PeriodSeries([], []), 'Spend', 'radar')

        assert len(fig.data) == 1

    def test_unknown_type(self, series):
        """Unsupported chart types are rejected."""
        with pytest.raises(ValueError):
            build_period_chart(series, 'Spend', 'pie')


class TestChartPalette:
    """Tests for chart_palette."""

    def test_known_metric(self):
        assert chart_palette('Spend') == METRIC_COLORS['Spend']

    def test_unknown_metric(self):
        """Metrics without a colour use the default."""
        assert chart_palette('My Calc') == DEFAULT_COLOR

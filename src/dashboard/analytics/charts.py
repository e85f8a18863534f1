"""
Plotly figures for a metric summed per period.

Each metric has a fixed fill and line colour so the same metric looks the
same across chart types.
"""

from typing import Dict

import plotly.graph_objects as go

from analytics.aggregator import PeriodSeries

CHART_TYPES = ['bar', 'line', 'doughnut', 'radar']

# Fixed colours for the common ad metrics
METRIC_COLORS = {
    'Spend': {'fill': 'rgba(26,86,219,0.4)', 'line': '#1a56db'},
    'Sales': {'fill': 'rgba(16,185,129,0.4)', 'line': '#10b981'},
    'ACOS': {'fill': 'rgba(249,115,22,0.4)', 'line': '#f97316'},
    'ROAS': {'fill': 'rgba(225,29,72,0.4)', 'line': '#e11d48'},
    'CTR': {'fill': 'rgba(14,165,233,0.4)', 'line': '#0ea5e9'},
    'Clicks': {'fill': 'rgba(168,85,247,0.4)', 'line': '#a855f7'},
    'Impressions': {'fill': 'rgba(107,114,128,0.4)', 'line': '#6b7280'},
    'CPC': {'fill': 'rgba(202,138,4,0.4)', 'line': '#ca8a04'},
}

DEFAULT_COLOR = {'fill': 'rgba(15,23,42,0.4)', 'line': '#0f172a'}


def chart_palette(metric: str) -> Dict[str, str]:
    """Fill and line colour for a metric."""
    return METRIC_COLORS.get(metric, DEFAULT_COLOR)


def build_period_chart(series: PeriodSeries, metric: str, chart_type: str = 'bar') -> go.Figure:
    """
    Plot a metric summed per period.

    Args:
        series: Period labels and values
        metric: Metric name, used for the legend and colours
        chart_type: One of 'bar', 'line', 'doughnut', 'radar'

    Returns:
        Plotly figure
    """
    if chart_type not in CHART_TYPES:
        raise ValueError(f"Unknown chart type: {chart_type!r}")

    palette = chart_palette(metric)
    labels, values = list(series.labels), list(series.values)

    if chart_type == 'bar':
        trace = go.Bar(x=labels, y=values, name=metric,
                       marker=dict(color=palette['fill'], line=dict(color=palette['line'], width=2)))
    elif chart_type == 'line':
        trace = go.Scatter(x=labels, y=values, name=metric, mode='lines+markers',
                           line=dict(color=palette['line'], width=2, shape='spline'),
                           fill='tozeroy', fillcolor=palette['fill'])
    elif chart_type == 'doughnut':
        trace = go.Pie(labels=labels, values=values, name=metric, hole=0.5,
                       marker=dict(line=dict(color=palette['line'], width=2)))
    else:
        # close the polygon
        trace = go.Scatterpolar(r=values + values[:1], theta=labels + labels[:1], name=metric,
                                fill='toself', fillcolor=palette['fill'],
                                line=dict(color=palette['line'], width=2))

    fig = go.Figure(trace)
    fig.update_layout(
        showlegend=True,
        legend=dict(orientation='h', yanchor='top', y=-0.15),
        margin=dict(l=20, r=20, t=30, b=20),
        height=360,
    )
    return fig

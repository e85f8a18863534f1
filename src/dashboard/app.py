"""
Streamlit dashboard for ad performance reports.

Launch with: streamlit run app.py
"""

import streamlit as st
import pandas as pd
from pathlib import Path
import sys

# Add analytics package to path
sys.path.insert(0, str(Path(__file__).parent))

from analytics.aggregator import MetricAggregator
from analytics.charts import CHART_TYPES, build_period_chart
from analytics.comparison import style_frame
from analytics.filters import search_rows
from analytics.formula import check_formula
from analytics.metadata import get_period_options, period_column
from analytics.parser import DecodeError, default_export_name, export_rows, load_and_parse
from analytics.session import DashboardState, build_view

# Page config
st.set_page_config(
    page_title="Ads Analytics Dashboard",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded"
)

PERIOD_MODE_LABELS = {
    'week': 'Week vs Week',
    'month': 'Month vs Month',
}

EXPORT_FORMATS = {
    'Excel (.xlsx)': ('.xlsx', 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'),
    'CSV (.csv)': ('.csv', 'text/csv'),
}


def get_state() -> DashboardState:
    """Session state for this browser tab."""
    if 'dashboard' not in st.session_state:
        st.session_state['dashboard'] = DashboardState()
    return st.session_state['dashboard']


def format_number(value):
    """Format a metric total for the summary cards."""
    if pd.isna(value):
        return "N/A"
    if abs(value) >= 1_000_000:
        return f"{value/1_000_000:.1f}M"
    elif abs(value) >= 1_000:
        return f"{value/1_000:.1f}K"
    else:
        return f"{value:,.2f}"


def handle_upload(state: DashboardState):
    """Decode a newly uploaded file into the session; failures keep the current data."""
    uploaded = st.file_uploader(
        "Upload report",
        type=['csv', 'xlsx', 'xls'],
        help="CSV or Excel; the first sheet is used"
    )
    if uploaded is None:
        return

    upload_id = (uploaded.name, uploaded.size)
    if st.session_state.get('upload_id') == upload_id:
        return
    st.session_state['upload_id'] = upload_id

    try:
        rows = load_and_parse(uploaded.getvalue(), uploaded.name)
    except DecodeError as exc:
        st.error(f"Failed to read file: {exc}")
        return

    state.load(rows, uploaded.name)
    st.toast("File loaded successfully")


def render_sidebar(state: DashboardState):
    """Filter controls; writes the selections back into the session state."""
    view = build_view(state)

    st.sidebar.header("Filters")

    state.selected_accounts = st.sidebar.multiselect(
        "Accounts",
        options=view.accounts,
        default=[a for a in state.selected_accounts if a in view.accounts]
    )

    state.selected_years = st.sidebar.multiselect(
        "Year",
        options=view.years,
        default=[y for y in state.selected_years if y in view.years]
    )

    mode = st.sidebar.radio(
        "Period Mode",
        options=list(PERIOD_MODE_LABELS),
        format_func=PERIOD_MODE_LABELS.get,
        index=list(PERIOD_MODE_LABELS).index(state.period_mode),
        help="Also controls chart grouping and conditional formatting"
    )
    state.set_period_mode(mode)

    period_options = get_period_options(view.rows_with_calcs, state.period_mode)
    state.selected_periods = st.sidebar.multiselect(
        "Weeks" if state.period_mode == 'week' else "Months",
        options=period_options,
        default=[p for p in state.selected_periods if p in period_options],
        help="Pick exactly two periods to colour the table by change"
    )

    if view.metric_options:
        selected = st.sidebar.multiselect(
            "Compared metrics",
            options=view.metric_options,
            default=[m for m in view.watched_metrics if m in view.metric_options]
        )
        state.set_watched_metrics(selected, view.metric_options)


def render_calc_column_form(state: DashboardState, columns):
    """Form for adding a calculated column."""
    st.subheader("Add Calculated Column")

    with st.form("calc_column", clear_on_submit=True):
        col1, col2 = st.columns([1, 2])
        with col1:
            name = st.text_input("Column Name", placeholder="%Spend")
        with col2:
            formula = st.text_input("Formula", placeholder="(Spend / Sales) * 100")
        submitted = st.form_submit_button("Add Column")

    if submitted:
        issues = check_formula(formula, columns)
        if state.add_calc_column(name, formula):
            st.success(f"Added column {name.strip()}")
            for issue in issues:
                st.warning(f"{name.strip()}: {issue}. Affected cells will be blank.")
        else:
            st.warning("Enter both a column name and a formula.")

    st.caption("Use numeric columns like Spend, Sales, Clicks. "
               "Wrap names with spaces or symbols in brackets, e.g. [Ad Spend] / Clicks.")

    if state.calc_columns:
        with st.expander(f"{len(state.calc_columns)} calculated columns"):
            for calc in state.calc_columns:
                st.write(f"**{calc.name}** = `{calc.formula}`")


def render_chart(state: DashboardState, view):
    """Metric-by-period chart."""
    st.subheader("Analytics")

    if not view.metric_options:
        st.info("No numeric columns to chart.")
        return

    col1, col2 = st.columns(2)
    with col1:
        chart_type = st.selectbox("Chart Type", options=CHART_TYPES, format_func=str.title)
    with col2:
        metric = st.selectbox(
            "Metric",
            options=view.metric_options,
            index=view.metric_options.index(view.chart_metric)
        )
    state.chart_metric = metric

    series = MetricAggregator(view.filtered_rows).summarize(state.period_mode, metric)
    if not series.labels:
        period_field = period_column(state.period_mode)
        st.info(f"No chartable data. Make sure your data includes a {period_field} column "
                f"and numeric values for {metric}.")
        return

    fig = build_period_chart(series, metric, chart_type)
    st.plotly_chart(fig, width='stretch')


def render_table(state: DashboardState, view):
    """Searchable table coloured by the period comparison, with export."""
    col1, col2 = st.columns([3, 1])
    with col1:
        search = st.text_input("Search in table", "")
    with col2:
        export_format = st.selectbox("Export format", options=list(EXPORT_FORMATS))

    visible_rows = search_rows(view.filtered_rows, search)
    st.subheader(f"Data Table ({len(visible_rows):,} rows)")

    if visible_rows.empty:
        st.info("No rows match your search.")
    else:
        styled_table = style_frame(visible_rows, state.period_mode, view.formatting_map)
        st.dataframe(styled_table, width='stretch', height=400, hide_index=True)

    extension, mime = EXPORT_FORMATS[export_format]
    file_name = default_export_name(state.file_name, extension)
    st.download_button(
        "Export",
        data=export_rows(visible_rows, file_name),
        file_name=file_name,
        mime=mime
    )


def main():
    """Main dashboard application."""

    st.title("📊 Ads Analytics Dashboard")

    state = get_state()
    handle_upload(state)

    if state.file_name is None:
        st.info("Upload a CSV or Excel report to begin.")
        st.stop()

    render_sidebar(state)
    view = build_view(state)

    # Top metric cards
    totals = MetricAggregator(view.filtered_rows).totals(view.metric_options[:4])
    if totals:
        cards = st.columns(len(totals))
        for card, (metric, total) in zip(cards, totals.items()):
            with card:
                st.metric(metric, format_number(total))

    render_calc_column_form(state, list(view.rows_with_calcs.columns))
    # a new column changes the option lists, so rebuild
    view = build_view(state)

    render_chart(state, view)
    render_table(state, view)

    # Footer
    st.sidebar.markdown("---")
    st.sidebar.info(f"File: **{state.file_name}**")
    st.sidebar.info(f"Total records: **{len(state.rows):,}**")
    if len(state.selected_periods) == 2:
        first, second = state.selected_periods
        st.sidebar.info(f"Colouring **{second}** against **{first}**")


if __name__ == '__main__':
    main()

"""Plotly visualisation helpers for the finance tracker.

Each function takes the result objects produced by :mod:`analytics`,
:mod:`budgets` or :mod:`health` and returns a
`plotly.graph_objects.Figure` that Streamlit renders via
``st.plotly_chart``.  Empty input always produces an empty figure titled
"No data to display" rather than raising.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .models import (
    BudgetWithSpending,
    CategorySpending,
    FinancialHealthScore,
    SpendingTrend,
    SpendingVelocity,
)

STATUS_COLORS = {
    'good': '#22c55e',
    'warning': '#f59e0b',
    'danger': '#ef4444',
    'excellent': '#22c55e',
    'fair': '#f59e0b',
    'poor': '#ef4444',
}


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_category_donut(breakdown: Sequence[CategorySpending], title: str | None = None) -> go.Figure:
    """Donut chart of a month's spending by category.

    Parameters
    ----------
    breakdown : sequence of CategorySpending
        Output of ``FinanceAnalytics.category_breakdown``.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Donut chart coloured with each category's own colour.
    """
    if not breakdown:
        return _empty_figure()
    df = pd.DataFrame({
        "Category": [item.category_name for item in breakdown],
        "Amount": [item.amount for item in breakdown],
    })
    fig = px.pie(
        df,
        names="Category",
        values="Amount",
        hole=0.55,
        color_discrete_sequence=[item.category_color for item in breakdown],
    )
    fig.update_layout(title=title or "Spending by category")
    return fig


def create_daily_spending_chart(daily: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Bar chart of per-day expense sums (``Date`` / ``Amount`` columns)."""
    if daily.empty:
        return _empty_figure()
    fig = px.bar(daily, x="Date", y="Amount")
    fig.update_layout(
        title=title or "Daily spending",
        xaxis_title="Date",
        yaxis_title="Amount",
    )
    return fig


def create_trend_chart(trend: SpendingTrend, title: str | None = None) -> go.Figure:
    """Line chart of the six-month expense trend with the average marked."""
    if not trend.months or all(point.value == 0 for point in trend.months):
        return _empty_figure()
    df = pd.DataFrame({
        "Month": [point.label for point in trend.months],
        "Spending": [point.value for point in trend.months],
    })
    fig = px.line(df, x="Month", y="Spending", markers=True)
    fig.add_hline(y=trend.average, line_dash="dash", annotation_text="Average")
    fig.update_layout(
        title=title or "Six-month spending trend",
        xaxis_title="Month",
        yaxis_title="Spending",
    )
    return fig


def _gauge(value: float, max_value: float, color: str, title: str) -> go.Figure:
    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=value,
            gauge={
                "axis": {"range": [0, max_value]},
                "bar": {"color": color},
            },
            title={"text": title},
        )
    )
    return fig


def create_velocity_gauge(velocity: SpendingVelocity, title: str | None = None) -> go.Figure:
    """Gauge of the display velocity (0-200%) coloured by pace status."""
    if velocity.ideal_daily_rate <= 0:
        return _empty_figure()
    return _gauge(
        velocity.display_velocity,
        200,
        STATUS_COLORS.get(velocity.status, '#64748b'),
        title or "Spending velocity (%)",
    )


def create_health_gauge(score: FinancialHealthScore, title: str | None = None) -> go.Figure:
    return _gauge(
        score.overall,
        100,
        STATUS_COLORS.get(score.status, '#64748b'),
        title or f"Financial health: {score.status}",
    )


def create_allocation_chart(view: BudgetWithSpending | None, title: str | None = None) -> go.Figure:
    """Grouped horizontal bars of allocated vs spent per budget category.

    Parameters
    ----------
    view : BudgetWithSpending or None
        Output of ``budgets.get_budget_with_spending``.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Bar chart; over-budget categories are highlighted in red.
    """
    if view is None or not view.allocations:
        return _empty_figure()
    names = [
        a.category.name if a.category is not None else "Uncategorized"
        for a in view.allocations
    ]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        y=names,
        x=[a.amount for a in view.allocations],
        name="Allocated",
        orientation="h",
        marker_color="#cbd5e1",
    ))
    fig.add_trace(go.Bar(
        y=names,
        x=[a.spent for a in view.allocations],
        name="Spent",
        orientation="h",
        marker_color=[STATUS_COLORS['danger'] if a.is_over_budget else STATUS_COLORS['good'] for a in view.allocations],
    ))
    fig.update_layout(
        title=title or f"Budget for {view.month}",
        barmode="group",
        xaxis_title="Amount",
    )
    return fig

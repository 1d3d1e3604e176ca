import pandas as pd

from finance_tracker.analytics import FinanceAnalytics
from finance_tracker.models import (
    AllocationWithSpending,
    BudgetWithSpending,
    Category,
    FinancialHealthScore,
    SpendingTrend,
    SpendingVelocity,
    TRANSACTION_COLUMNS,
)
from finance_tracker.visualization import (
    create_allocation_chart,
    create_category_donut,
    create_daily_spending_chart,
    create_health_gauge,
    create_trend_chart,
    create_velocity_gauge,
)


def _title(fig):
    return fig.layout.title.text


def test_empty_inputs_give_placeholder_figures():
    empty = FinanceAnalytics(pd.DataFrame(columns=TRANSACTION_COLUMNS))

    assert _title(create_category_donut([])) == "No data to display"
    assert _title(create_daily_spending_chart(empty.daily_spending('2024-03'))) == "No data to display"
    assert _title(create_trend_chart(SpendingTrend(months=[], average=0.0, highest=None))) == "No data to display"
    assert _title(create_allocation_chart(None)) == "No data to display"


def test_category_donut_uses_category_colors(make_frame):
    categories = [Category(id='food', user_id='u1', name='Food', color='#ff0000')]
    analytics = FinanceAnalytics(make_frame([
        {'Date': '2024-03-02', 'Type': 'expense', 'Amount': 40.0, 'category_id': 'food'},
    ]), categories)

    fig = create_category_donut(analytics.category_breakdown('2024-03'))
    assert list(fig.data[0].labels) == ['Food']
    assert list(fig.data[0].values) == [40.0]


def test_trend_chart_has_six_points(make_frame):
    analytics = FinanceAnalytics(make_frame([
        {'Date': '2024-01-10', 'Type': 'expense', 'Amount': 100.0},
        {'Date': '2024-03-10', 'Type': 'expense', 'Amount': 50.0},
    ]))
    fig = create_trend_chart(analytics.six_month_trend('2024-03'))
    assert len(fig.data[0].y) == 6


def test_velocity_gauge_needs_a_budget():
    velocity = SpendingVelocity(
        daily_average=10.0, projected_total=300.0, ideal_daily_rate=0.0,
        velocity_ratio=0.0, display_velocity=0.0, status='good',
        days_elapsed=10, days_remaining=20, days_in_month=30,
    )
    assert _title(create_velocity_gauge(velocity)) == "No data to display"

    velocity.ideal_daily_rate = 8.0
    velocity.display_velocity = 125.0
    velocity.status = 'danger'
    fig = create_velocity_gauge(velocity)
    assert fig.data[0].value == 125.0
    assert fig.data[0].gauge.bar.color == '#ef4444'


def test_health_gauge_range():
    score = FinancialHealthScore(overall=62, savings_rate=80, budget_adherence=86, spending_trend=0, status='good')
    fig = create_health_gauge(score)
    assert fig.data[0].value == 62
    assert tuple(fig.data[0].gauge.axis.range) == (0, 100)


def test_allocation_chart_flags_overspend():
    view = BudgetWithSpending(
        id='b1', user_id='u1', month='2024-03', total_amount=500.0, total_spent=260.0, total_remaining=240.0,
        allocations=[
            AllocationWithSpending('food', 200.0, 250.0, -50.0, 125, True, Category(id='food', user_id='u1', name='Food')),
            AllocationWithSpending('fun', 100.0, 10.0, 90.0, 10, False),
        ],
    )
    fig = create_allocation_chart(view)
    assert list(fig.data[0].y) == ['Food', 'Uncategorized']
    assert list(fig.data[1].marker.color) == ['#ef4444', '#22c55e']

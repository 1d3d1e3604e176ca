import pandas as pd
import pytest

from finance_tracker.budgets import (
    budget_status,
    get_budget_with_spending,
    percentage_used,
    summarize_budget,
)
from finance_tracker.models import TRANSACTION_COLUMNS, Budget, BudgetAllocation, Category


def _budget():
    return Budget(
        id='b1',
        user_id='u1',
        month='2024-05',
        total_amount=1000.0,
        allocations=[
            BudgetAllocation('food', 200.0),
            BudgetAllocation('fun', 100.0),
            BudgetAllocation('gifts', 0.0),
        ],
    )


def _may_transactions(make_frame):
    return make_frame([
        {'Date': '2024-05-02', 'Type': 'expense', 'Amount': 100.0, 'category_id': 'food'},
        {'Date': '2024-05-20', 'Type': 'expense', 'Amount': 50.0, 'category_id': 'food'},
        {'Date': '2024-05-03', 'Type': 'expense', 'Amount': 120.0, 'category_id': 'fun'},
        {'Date': '2024-05-04', 'Type': 'expense', 'Amount': 25.0, 'category_id': 'gifts'},
        {'Date': '2024-05-05', 'Type': 'expense', 'Amount': 80.0},
        {'Date': '2024-05-06', 'Type': 'income', 'Amount': 999.0, 'category_id': 'food'},
        {'Date': '2024-04-30', 'Type': 'expense', 'Amount': 500.0, 'category_id': 'food'},
    ])


def test_no_budget_for_month_returns_none(make_frame):
    assert get_budget_with_spending([_budget()], _may_transactions(make_frame), '2024-06') is None


def test_month_lookup_is_exact():
    empty = pd.DataFrame(columns=TRANSACTION_COLUMNS)
    assert get_budget_with_spending([_budget()], empty, '2024-5') is None


def test_budget_with_spending_derives_allocation_figures(make_frame):
    view = get_budget_with_spending([_budget()], _may_transactions(make_frame), '2024-05')

    by_id = {a.category_id: a for a in view.allocations}
    food = by_id['food']
    assert food.spent == 150.0
    assert food.remaining == 50.0
    assert food.percentage_used == 75
    assert not food.is_over_budget

    fun = by_id['fun']
    assert fun.percentage_used == 120
    assert fun.remaining == -20.0
    assert fun.is_over_budget

    # A zero allocation never divides; any spend still counts as over
    gifts = by_id['gifts']
    assert gifts.percentage_used == 0
    assert gifts.is_over_budget


def test_allocations_sorted_by_percentage_used(make_frame):
    view = get_budget_with_spending([_budget()], _may_transactions(make_frame), '2024-05')
    assert [a.category_id for a in view.allocations] == ['fun', 'food', 'gifts']


def test_totals_sum_allocation_spending_only(make_frame):
    view = get_budget_with_spending([_budget()], _may_transactions(make_frame), '2024-05')
    # Uncategorized spend, income and April rows are not part of any allocation
    assert view.total_spent == pytest.approx(295.0)
    assert view.total_remaining == pytest.approx(705.0)


def test_category_metadata_is_joined_when_present(make_frame):
    categories = [Category(id='food', user_id='u1', name='Groceries')]
    view = get_budget_with_spending([_budget()], _may_transactions(make_frame), '2024-05', categories)
    by_id = {a.category_id: a for a in view.allocations}
    assert by_id['food'].category.name == 'Groceries'
    assert by_id['fun'].category is None


def test_percentage_used_rounds_half_up():
    assert percentage_used(1.0, 8.0) == 13
    assert percentage_used(50.0, 0.0) == 0
    assert percentage_used(0.0, 100.0) == 0


def test_budget_status_thresholds():
    assert budget_status(79) == 'On Track'
    assert budget_status(80) == 'Almost There'
    assert budget_status(99) == 'Almost There'
    assert budget_status(100) == 'Over Budget'


def test_summarize_budget_counts(make_frame):
    view = get_budget_with_spending([_budget()], _may_transactions(make_frame), '2024-05')
    summary = summarize_budget(view)
    assert summary['over_budget_count'] == 1
    # 75% is not below the on-track cut-off
    assert summary['on_track_count'] == 1
    assert summary['allocated_total'] == 300.0
    assert summary['status'] == 'On Track'

from datetime import date

import pytest
from pydantic import ValidationError

from finance_tracker.schemas import (
    BudgetCreate,
    CategoryCreate,
    GoalCreate,
    RecurringCreate,
    TransactionCreate,
    TransactionUpdate,
)


def test_transaction_defaults_and_coercion():
    txn = TransactionCreate(amount='12.5', date='2024-03-01')
    assert txn.amount == 12.5
    assert txn.type == 'expense'
    assert txn.date == date(2024, 3, 1)


@pytest.mark.parametrize('fields', [
    {'amount': 0, 'date': '2024-03-01'},
    {'amount': -1, 'date': '2024-03-01'},
    {'amount': 5, 'type': 'transfer', 'date': '2024-03-01'},
    {'amount': 5},
])
def test_transaction_rejects_invalid(fields):
    with pytest.raises(ValidationError):
        TransactionCreate(**fields)


def test_partial_update_tracks_set_fields():
    update = TransactionUpdate(notes='coffee')
    assert update.model_dump(exclude_unset=True) == {'notes': 'coffee'}


def test_category_name_length():
    CategoryCreate(name='x' * 30)
    with pytest.raises(ValidationError):
        CategoryCreate(name='x' * 31)
    with pytest.raises(ValidationError):
        CategoryCreate(name='')


def test_budget_month_format_and_allocations():
    budget = BudgetCreate(month='2024-03', total_amount=100, allocations=[{'category_id': 'food', 'amount': 0}])
    assert budget.allocations[0].amount == 0
    with pytest.raises(ValidationError):
        BudgetCreate(month='March', total_amount=100)
    with pytest.raises(ValidationError):
        BudgetCreate(month='2024-03', total_amount=100, allocations=[{'category_id': 'food', 'amount': -1}])


def test_goal_and_recurring_validation():
    with pytest.raises(ValidationError):
        GoalCreate(name='Trip', target_amount=0)
    template = RecurringCreate(name='Rent', amount=1000, next_date='2024-04-01')
    assert (template.frequency, template.status) == ('monthly', 'active')
    with pytest.raises(ValidationError):
        RecurringCreate(name='Rent', amount=1000, frequency='hourly', next_date='2024-04-01')

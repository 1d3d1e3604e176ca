import sqlite3
from datetime import date

import pytest
from pydantic import ValidationError

from finance_tracker import db, schemas
from finance_tracker.errors import AuthenticationRequired, BudgetExistsError, FetchError, RecordNotFoundError
from finance_tracker.models import Transaction
from finance_tracker.store import ChangeEvent, FinanceStore, RecordCache


def _txn(record_id, amount=10.0):
    return Transaction(id=record_id, user_id='u1', amount=amount, type='expense',
                       category_id=None, date=date(2024, 3, 1))


def test_record_cache_applies_events_and_notifies():
    cache = RecordCache('transactions', [_txn('a')])
    seen = []
    unsubscribe = cache.subscribe(seen.append)

    cache.apply(ChangeEvent('transactions', 'insert', 'b', _txn('b', 20.0)))
    cache.apply(ChangeEvent('transactions', 'update', 'a', _txn('a', 15.0)))
    cache.apply(ChangeEvent('transactions', 'delete', 'b'))

    assert len(cache) == 1
    assert cache.get('a').amount == 15.0
    assert 'b' not in cache
    assert [event.kind for event in seen] == ['insert', 'update', 'delete']

    unsubscribe()
    cache.apply(ChangeEvent('transactions', 'insert', 'c', _txn('c')))
    assert len(seen) == 3


def test_record_cache_rejects_bad_events():
    cache = RecordCache('transactions')
    with pytest.raises(ValueError):
        cache.apply(ChangeEvent('transactions', 'upsert', 'a', _txn('a')))
    with pytest.raises(ValueError):
        cache.apply(ChangeEvent('budgets', 'insert', 'a', _txn('a')))


def test_store_requires_a_user():
    with pytest.raises(AuthenticationRequired):
        FinanceStore(None)
    with pytest.raises(AuthenticationRequired):
        FinanceStore('')


def test_load_seeds_default_categories(temp_db):
    store = FinanceStore('u1').load()
    assert len(store.categories) == len(db.DEFAULT_CATEGORIES)
    assert store.transactions == []


def test_writes_patch_the_cache(temp_db):
    store = FinanceStore('u1').load()
    groceries = store.categories[0]

    txn = store.add_transaction(amount=42.0, type='expense', date=date(2024, 3, 5), category_id=groceries.id)
    assert store.analytics().monthly_totals('2024-03').expense == 42.0

    store.update_transaction(txn.id, amount=50.0)
    assert store.analytics().monthly_totals('2024-03').expense == 50.0

    store.delete_transaction(txn.id)
    assert store.analytics().monthly_totals('2024-03').expense == 0


def test_batch_delete_updates_cache(temp_db):
    store = FinanceStore('u1').load()
    ids = [store.add_transaction(amount=5.0, date=date(2024, 3, day)).id for day in (1, 2, 3)]
    assert store.delete_transactions(ids[:2]) == 2
    assert [t.id for t in store.transactions] == [ids[2]]


def test_invalid_input_is_never_written(temp_db):
    store = FinanceStore('u1').load()
    with pytest.raises(ValidationError):
        store.add_transaction(amount=-5.0, type='expense', date=date(2024, 3, 5))
    with pytest.raises(ValidationError):
        store.add_transaction(amount=5.0, type='transfer', date=date(2024, 3, 5))
    assert db.fetch_transactions('u1').empty
    assert store.transactions == []


def test_budget_views_follow_writes(temp_db):
    store = FinanceStore('u1').load()
    groceries = store.categories[0]
    store.create_budget('2024-03', 500.0, [{'category_id': groceries.id, 'amount': 200.0}])
    store.add_transaction(amount=50.0, date=date(2024, 3, 5), category_id=groceries.id)

    view = store.budget_with_spending('2024-03')
    assert view.total_spent == 50.0
    assert view.allocations[0].percentage_used == 25
    assert store.budget_with_spending('2024-04') is None

    with pytest.raises(BudgetExistsError):
        store.create_budget('2024-03', 800.0)


def test_health_and_insights_from_store(temp_db):
    store = FinanceStore('u1').load()
    store.add_transaction(amount=5000.0, type='income', date=date(2024, 3, 1))
    store.add_transaction(amount=3000.0, date=date(2024, 3, 2))
    store.add_transaction(amount=2000.0, date=date(2024, 2, 2))
    store.create_budget('2024-03', 3500.0)

    assert store.financial_health('2024-03').overall == 62
    titles = [i.title for i in store.smart_insights(date(2024, 3, 31))]
    assert 'Spending Surge' in titles


def test_goal_progress_and_commitment(temp_db):
    store = FinanceStore('u1').load()
    store.add_transaction(amount=1000.0, type='income', date=date(2024, 3, 1))
    store.add_transaction(amount=600.0, date=date(2024, 3, 2))
    store.add_goal(name='Laptop', target_amount=2000.0, current_amount=400.0)
    store.add_recurring(name='Gym', amount=40.0, frequency='monthly', next_date=date(2024, 3, 20))
    store.add_recurring(name='Coffee', amount=3.0, frequency='daily', next_date=date(2024, 3, 20))

    progress = store.goal_progress(date(2024, 3, 15))[0]
    assert progress.months_to_goal == pytest.approx(4.0)
    assert store.monthly_commitment() == pytest.approx(130.0)


def test_database_errors_surface_as_fetch_error(temp_db, monkeypatch):
    def broken(user_id):
        raise sqlite3.OperationalError('database is locked')

    monkeypatch.setattr(db, 'fetch_budgets', broken)
    with pytest.raises(FetchError):
        FinanceStore('u1').load()


def test_other_users_goal_is_not_returned(temp_db):
    goal = db.create_goal('u1', schemas.GoalCreate(name='Trip', target_amount=500.0))
    intruder = FinanceStore('u2').load()

    with pytest.raises(RecordNotFoundError):
        intruder.update_goal(goal.id)
    assert intruder.goals == []


def test_move_category_renumbers_order(temp_db):
    store = FinanceStore('u1').load()
    first, second, third = store.categories[:3]

    ordered = store.move_category(second.id, -1)
    assert [c.id for c in ordered[:3]] == [second.id, first.id, third.id]
    assert [c.order for c in ordered] == list(range(len(ordered)))
    assert [c.id for c in db.fetch_categories('u1')[:3]] == [second.id, first.id, third.id]

    unchanged = store.move_category(second.id, -1)
    assert unchanged[0].id == second.id

    with pytest.raises(RecordNotFoundError):
        store.move_category('missing', 1)

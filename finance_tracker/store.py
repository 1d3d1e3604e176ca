"""Request-scoped data store with an in-memory change-event cache.

``FinanceStore`` loads everything one user owns, routes writes through the
persistence layer and then patches the matching ``RecordCache`` with the
resulting ``ChangeEvent``.  Aggregations always read from the caches, so a
view recomputes from current data right after a write without a refetch.

Concurrent edits from separate sessions are last-write-wins; there is no
version check on update.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

import pandas as pd

from . import db, schemas
from .analytics import FinanceAnalytics, transactions_from_frame, transactions_to_frame
from .budgets import find_budget, get_budget_with_spending
from .errors import AuthenticationRequired, FetchError, RecordNotFoundError
from .goals import calculate_goal_progress
from .health import health_for_month
from .insights import generate_smart_insights
from .models import (
    Budget,
    BudgetWithSpending,
    Category,
    FinancialHealthScore,
    Goal,
    GoalProgress,
    RecurringTransaction,
    SmartInsight,
    Transaction,
    month_key,
    to_date,
)
from .recurring import monthly_commitment

logger = logging.getLogger(__name__)

CHANGE_KINDS = ('insert', 'update', 'delete')
TABLES = ('transactions', 'categories', 'budgets', 'goals', 'recurring_transactions')


@dataclass
class ChangeEvent:
    table: str
    kind: str
    record_id: str
    record: Any = None


class RecordCache:
    """Records of one table keyed by id, patched by change events."""

    def __init__(self, table: str, records: Iterable[Any] = ()):
        self.table = table
        self._records: Dict[str, Any] = {}
        self._subscribers: List[Callable[[ChangeEvent], None]] = []
        self.load(records)

    def load(self, records: Iterable[Any]) -> None:
        self._records = {record.id: record for record in records}

    def apply(self, event: ChangeEvent) -> None:
        if event.kind not in CHANGE_KINDS:
            raise ValueError(f"Unknown change kind: {event.kind!r}")
        if event.table != self.table:
            raise ValueError(f"Event for {event.table!r} applied to {self.table!r} cache")

        if event.kind == 'delete':
            self._records.pop(event.record_id, None)
        else:
            self._records[event.record_id] = event.record

        for callback in list(self._subscribers):
            callback(event)

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> Callable[[], None]:
        """Register a listener; the returned function removes it again."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def get(self, record_id: str) -> Optional[Any]:
        return self._records.get(record_id)

    def values(self) -> List[Any]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records


@contextmanager
def _database_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        logger.error("Database error while trying to %s: %s", action, e)
        raise FetchError(f"Could not {action}: {e}") from e


class FinanceStore:
    """Everything one signed-in user owns, for the lifetime of a request."""

    def __init__(self, user_id: Optional[str], seed_defaults: bool = True):
        if not user_id:
            raise AuthenticationRequired("Sign in to view your finances")
        self.user_id = user_id
        self.seed_defaults = seed_defaults
        self.caches: Dict[str, RecordCache] = {table: RecordCache(table) for table in TABLES}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> 'FinanceStore':
        with _database_errors('load your data'):
            db.init_db()
            if self.seed_defaults:
                db.seed_default_categories(self.user_id)
            self.caches['transactions'].load(transactions_from_frame(db.fetch_transactions(self.user_id)))
            self.caches['categories'].load(db.fetch_categories(self.user_id))
            self.caches['budgets'].load(db.fetch_budgets(self.user_id))
            self.caches['goals'].load(db.fetch_goals(self.user_id))
            self.caches['recurring_transactions'].load(db.fetch_recurring(self.user_id))
        logger.info(
            "Loaded %d transactions and %d budgets for user %s",
            len(self.caches['transactions']), len(self.caches['budgets']), self.user_id,
        )
        return self

    def _emit(self, table: str, kind: str, record_id: str, record: Any = None) -> None:
        self.caches[table].apply(ChangeEvent(table=table, kind=kind, record_id=record_id, record=record))

    # ------------------------------------------------------------------
    # Record views
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> List[Transaction]:
        return self.caches['transactions'].values()

    @property
    def categories(self) -> List[Category]:
        return sorted(self.caches['categories'].values(), key=lambda c: (c.order, c.name))

    @property
    def budgets(self) -> List[Budget]:
        return self.caches['budgets'].values()

    @property
    def goals(self) -> List[Goal]:
        return self.caches['goals'].values()

    @property
    def recurring(self) -> List[RecurringTransaction]:
        return self.caches['recurring_transactions'].values()

    def transactions_frame(self) -> pd.DataFrame:
        return transactions_to_frame(self.transactions)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(self, **fields: Any) -> Transaction:
        data = schemas.TransactionCreate(**fields)
        with _database_errors('save the transaction'):
            txn = db.create_transaction(self.user_id, data)
        self._emit('transactions', 'insert', txn.id, txn)
        return txn

    def update_transaction(self, transaction_id: str, **fields: Any) -> Transaction:
        data = schemas.TransactionUpdate(**fields)
        with _database_errors('update the transaction'):
            txn = db.update_transaction(self.user_id, transaction_id, data)
        self._emit('transactions', 'update', txn.id, txn)
        return txn

    def delete_transaction(self, transaction_id: str) -> None:
        with _database_errors('delete the transaction'):
            db.delete_transaction(self.user_id, transaction_id)
        self._emit('transactions', 'delete', transaction_id)

    def delete_transactions(self, transaction_ids: Sequence[str]) -> int:
        with _database_errors('delete transactions'):
            removed = db.delete_transactions(self.user_id, transaction_ids)
        for transaction_id in transaction_ids:
            self._emit('transactions', 'delete', transaction_id)
        return removed

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def add_category(self, **fields: Any) -> Category:
        data = schemas.CategoryCreate(**fields)
        with _database_errors('save the category'):
            category = db.create_category(self.user_id, data)
        self._emit('categories', 'insert', category.id, category)
        return category

    def update_category(self, category_id: str, **fields: Any) -> Category:
        data = schemas.CategoryUpdate(**fields)
        with _database_errors('update the category'):
            category = db.update_category(self.user_id, category_id, data)
        self._emit('categories', 'update', category.id, category)
        return category

    def delete_category(self, category_id: str) -> None:
        with _database_errors('delete the category'):
            db.delete_category(self.user_id, category_id)
        self._emit('categories', 'delete', category_id)

    def move_category(self, category_id: str, offset: int) -> List[Category]:
        """Move a category up (negative) or down (positive) in the display order.

        Orders are renumbered 0..n-1 so duplicates left by earlier edits are
        resolved.  Moving past either end leaves the order unchanged.
        """
        ordered = self.categories
        ids = [c.id for c in ordered]
        if category_id not in ids:
            raise RecordNotFoundError('categories', category_id)
        index = ids.index(category_id)
        target = index + offset
        if target < 0 or target >= len(ordered):
            return ordered

        ordered.insert(target, ordered.pop(index))
        for position, category in enumerate(ordered):
            if category.order != position:
                self.update_category(category.id, order=position)
        return self.categories

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def create_budget(self, month: str, total_amount: float, allocations: Iterable[Dict[str, Any]] = ()) -> Budget:
        data = schemas.BudgetCreate(month=month, total_amount=total_amount, allocations=list(allocations))
        with _database_errors('save the budget'):
            budget = db.create_budget(self.user_id, data)
        self._emit('budgets', 'insert', budget.id, budget)
        return budget

    def update_budget(self, budget_id: str, **fields: Any) -> Budget:
        data = schemas.BudgetUpdate(**fields)
        with _database_errors('update the budget'):
            budget = db.update_budget(self.user_id, budget_id, data)
        self._emit('budgets', 'update', budget.id, budget)
        return budget

    def delete_budget(self, budget_id: str) -> None:
        with _database_errors('delete the budget'):
            db.delete_budget(self.user_id, budget_id)
        self._emit('budgets', 'delete', budget_id)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def add_goal(self, **fields: Any) -> Goal:
        data = schemas.GoalCreate(**fields)
        with _database_errors('save the goal'):
            goal = db.create_goal(self.user_id, data)
        self._emit('goals', 'insert', goal.id, goal)
        return goal

    def update_goal(self, goal_id: str, **fields: Any) -> Goal:
        data = schemas.GoalUpdate(**fields)
        with _database_errors('update the goal'):
            goal = db.update_goal(self.user_id, goal_id, data)
        self._emit('goals', 'update', goal.id, goal)
        return goal

    def delete_goal(self, goal_id: str) -> None:
        with _database_errors('delete the goal'):
            db.delete_goal(self.user_id, goal_id)
        self._emit('goals', 'delete', goal_id)

    # ------------------------------------------------------------------
    # Recurring templates
    # ------------------------------------------------------------------

    def add_recurring(self, **fields: Any) -> RecurringTransaction:
        data = schemas.RecurringCreate(**fields)
        with _database_errors('save the recurring transaction'):
            template = db.create_recurring(self.user_id, data)
        self._emit('recurring_transactions', 'insert', template.id, template)
        return template

    def update_recurring(self, recurring_id: str, **fields: Any) -> RecurringTransaction:
        data = schemas.RecurringUpdate(**fields)
        with _database_errors('update the recurring transaction'):
            template = db.update_recurring(self.user_id, recurring_id, data)
        self._emit('recurring_transactions', 'update', template.id, template)
        return template

    def delete_recurring(self, recurring_id: str) -> None:
        with _database_errors('delete the recurring transaction'):
            db.delete_recurring(self.user_id, recurring_id)
        self._emit('recurring_transactions', 'delete', recurring_id)

    # ------------------------------------------------------------------
    # Aggregated views
    # ------------------------------------------------------------------

    def analytics(self) -> FinanceAnalytics:
        return FinanceAnalytics(self.transactions_frame(), self.categories)

    def budget_for_month(self, month: str) -> Optional[Budget]:
        return find_budget(self.budgets, month)

    def budget_with_spending(self, month: str) -> Optional[BudgetWithSpending]:
        return get_budget_with_spending(self.budgets, self.transactions_frame(), month, self.categories)

    def _budget_total(self, month: str) -> Optional[float]:
        budget = self.budget_for_month(month)
        return budget.total_amount if budget is not None else None

    def financial_health(self, month: str) -> FinancialHealthScore:
        return health_for_month(self.analytics(), month, self._budget_total(month))

    def smart_insights(self, reference_date: Any, symbol: str = '$') -> List[SmartInsight]:
        month = month_key(to_date(reference_date))
        return generate_smart_insights(self.analytics(), reference_date, self._budget_total(month), symbol)

    def goal_progress(self, reference_date: Any) -> List[GoalProgress]:
        month = month_key(to_date(reference_date))
        savings = self.analytics().monthly_totals(month).net_balance
        return calculate_goal_progress(self.goals, savings, reference_date)

    def monthly_commitment(self) -> float:
        return monthly_commitment(self.recurring)

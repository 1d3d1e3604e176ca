from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from . import schemas
from .config import FETCH_TIMEOUT_SECONDS, DB_PATH
from .errors import BudgetExistsError, RecordNotFoundError
from .models import (
    TRANSACTION_COLUMNS,
    Budget,
    BudgetAllocation,
    Category,
    Goal,
    RecurringTransaction,
    Transaction,
    to_date,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount > 0),
    type TEXT NOT NULL CHECK (type IN ('expense', 'income')),
    category_id TEXT,
    date TEXT NOT NULL,
    notes TEXT,
    created_at TEXT,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_txn_user_date ON transactions (user_id, date);
CREATE INDEX IF NOT EXISTS ix_txn_category ON transactions (category_id);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    icon TEXT,
    color TEXT,
    is_default INTEGER NOT NULL DEFAULT 0,
    sort_order INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_cat_user ON categories (user_id);

CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    month TEXT NOT NULL,
    total_amount REAL NOT NULL,
    created_at TEXT,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_budget_user_month ON budgets (user_id, month);

CREATE TABLE IF NOT EXISTS budget_allocations (
    id TEXT PRIMARY KEY,
    budget_id TEXT NOT NULL REFERENCES budgets (id) ON DELETE CASCADE,
    category_id TEXT NOT NULL,
    amount REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_alloc_budget ON budget_allocations (budget_id);

CREATE TABLE IF NOT EXISTS goals (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    target_amount REAL NOT NULL,
    current_amount REAL NOT NULL DEFAULT 0,
    icon TEXT,
    color TEXT,
    deadline TEXT,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS recurring_transactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    amount REAL NOT NULL,
    type TEXT NOT NULL DEFAULT 'expense',
    category_id TEXT,
    frequency TEXT NOT NULL,
    next_date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT,
    updated_at TEXT
);
"""

# Seeded for every new user (name, icon, color)
DEFAULT_CATEGORIES: Tuple[Tuple[str, str, str], ...] = (
    ('Groceries', 'shopping-bag', '#22c55e'),
    ('Transportation', 'car', '#3b82f6'),
    ('Dining', 'utensils-crossed', '#f97316'),
    ('Entertainment', 'film', '#a855f7'),
    ('Shopping', 'shirt', '#ec4899'),
    ('Utilities', 'zap', '#eab308'),
    ('Health', 'heart', '#ef4444'),
    ('Education', 'graduation-cap', '#6366f1'),
    ('Travel', 'plane', '#06b6d4'),
    ('Other', 'more-horizontal', '#64748b'),
)


def _ensure_dirs() -> None:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return to_date(value).isoformat()


@contextmanager
def connect() -> Iterator[sqlite3.Connection]:
    _ensure_dirs()
    conn = sqlite3.connect(str(DB_PATH), timeout=FETCH_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def init_db() -> None:
    with connect() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    logger.debug("Database schema ready at %s", DB_PATH)


def _fetch_owned_row(table: str, user_id: str, record_id: str) -> sqlite3.Row:
    with connect() as conn:
        row = conn.execute(
            f"SELECT * FROM {table} WHERE id = ? AND user_id = ?",
            (record_id, user_id),
        ).fetchone()
    if row is None:
        raise RecordNotFoundError(table, record_id)
    return row


def _update_row(table: str, user_id: str, record_id: str, values: Dict[str, Any]) -> None:
    """Apply a partial update to a user-owned row.

    An empty update still requires the row to exist and belong to the user.
    """
    if not values:
        _fetch_owned_row(table, user_id, record_id)
        return
    assignments = ", ".join(f"{column} = ?" for column in values)
    params = list(values.values()) + [_now(), record_id, user_id]
    sql = f"UPDATE {table} SET {assignments}, updated_at = ? WHERE id = ? AND user_id = ?"
    with connect() as conn:
        cursor = conn.execute(sql, params)
        conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError(table, record_id)


def _delete_row(table: str, user_id: str, record_id: str) -> None:
    with connect() as conn:
        cursor = conn.execute(
            f"DELETE FROM {table} WHERE id = ? AND user_id = ?",
            (record_id, user_id),
        )
        conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError(table, record_id)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row['id'],
        user_id=row['user_id'],
        amount=float(row['amount']),
        type=row['type'],
        category_id=row['category_id'],
        date=to_date(row['date']),
        notes=row['notes'],
    )


def create_transaction(user_id: str, data: schemas.TransactionCreate) -> Transaction:
    txn = Transaction(
        id=_new_id(),
        user_id=user_id,
        amount=float(data.amount),
        type=data.type,
        category_id=data.category_id,
        date=data.date,
        notes=data.notes,
    )
    stamp = _now()
    with connect() as conn:
        conn.execute(
            "INSERT INTO transactions (id, user_id, amount, type, category_id, date, notes, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (txn.id, user_id, txn.amount, txn.type, txn.category_id, _iso(txn.date), txn.notes, stamp, stamp),
        )
        conn.commit()
    return txn


def update_transaction(user_id: str, transaction_id: str, data: schemas.TransactionUpdate) -> Transaction:
    values = data.model_dump(exclude_unset=True)
    if 'date' in values:
        values['date'] = _iso(values['date'])
    _update_row('transactions', user_id, transaction_id, values)
    return get_transaction(user_id, transaction_id)


def get_transaction(user_id: str, transaction_id: str) -> Transaction:
    return _row_to_transaction(_fetch_owned_row('transactions', user_id, transaction_id))


def delete_transaction(user_id: str, transaction_id: str) -> None:
    _delete_row('transactions', user_id, transaction_id)


def delete_transactions(user_id: str, transaction_ids: Sequence[str]) -> int:
    """Batch delete.  Returns the number of rows removed."""
    ids = list(transaction_ids)
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    with connect() as conn:
        cursor = conn.execute(
            f"DELETE FROM transactions WHERE user_id = ? AND id IN ({placeholders})",
            [user_id, *ids],
        )
        conn.commit()
        return cursor.rowcount


def fetch_transactions(
    user_id: str,
    start_date: Optional[Any] = None,
    end_date: Optional[Any] = None,
    txn_type: Optional[str] = None,
    category_ids: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    where: List[str] = ["user_id = ?"]
    params: List[Any] = [user_id]

    if start_date:
        where.append("date >= ?")
        params.append(_iso(start_date))
    if end_date:
        where.append("date <= ?")
        params.append(_iso(end_date))
    if txn_type:
        where.append("type = ?")
        params.append(txn_type)
    if category_ids:
        where.append("category_id IN ({})".format(",".join("?" for _ in category_ids)))
        params.extend(category_ids)

    sql = (
        "SELECT id, user_id, date AS \"Date\", type AS \"Type\", amount AS \"Amount\", "
        "category_id, notes AS \"Notes\" FROM transactions WHERE "
        + " AND ".join(where)
        + " ORDER BY date ASC, created_at ASC"
    )
    with connect() as conn:
        # pandas builds the frame from plain tuples
        conn.row_factory = None
        df = pd.read_sql_query(sql, conn, params=params)
    if df.empty:
        return pd.DataFrame(columns=TRANSACTION_COLUMNS)
    df['Date'] = pd.to_datetime(df['Date'])
    return df


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def _row_to_category(row: sqlite3.Row) -> Category:
    return Category(
        id=row['id'],
        user_id=row['user_id'],
        name=row['name'],
        icon=row['icon'] or 'more-horizontal',
        color=row['color'] or '#64748b',
        is_default=bool(row['is_default']),
        order=int(row['sort_order'] or 0),
    )


def fetch_categories(user_id: str) -> List[Category]:
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM categories WHERE user_id = ? ORDER BY sort_order, name",
            (user_id,),
        ).fetchall()
    return [_row_to_category(r) for r in rows]


def create_category(
    user_id: str,
    data: schemas.CategoryCreate,
    is_default: bool = False,
    order: Optional[int] = None,
) -> Category:
    with connect() as conn:
        if order is None:
            row = conn.execute(
                "SELECT COALESCE(MAX(sort_order), -1) + 1 FROM categories WHERE user_id = ?",
                (user_id,),
            ).fetchone()
            order = int(row[0])
        category = Category(
            id=_new_id(),
            user_id=user_id,
            name=data.name.strip(),
            icon=data.icon,
            color=data.color,
            is_default=is_default,
            order=order,
        )
        stamp = _now()
        conn.execute(
            "INSERT INTO categories (id, user_id, name, icon, color, is_default, sort_order, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (category.id, user_id, category.name, category.icon, category.color,
             int(is_default), order, stamp, stamp),
        )
        conn.commit()
    return category


def update_category(user_id: str, category_id: str, data: schemas.CategoryUpdate) -> Category:
    values = data.model_dump(exclude_unset=True)
    if 'order' in values:
        values['sort_order'] = values.pop('order')
    _update_row('categories', user_id, category_id, values)
    return _row_to_category(_fetch_owned_row('categories', user_id, category_id))


def delete_category(user_id: str, category_id: str) -> None:
    _delete_row('categories', user_id, category_id)


def seed_default_categories(user_id: str) -> List[Category]:
    """Insert the default category set for a user that has none yet."""
    existing = fetch_categories(user_id)
    if existing:
        return existing
    created = []
    for order, (name, icon, color) in enumerate(DEFAULT_CATEGORIES):
        created.append(
            create_category(
                user_id,
                schemas.CategoryCreate(name=name, icon=icon, color=color),
                is_default=True,
                order=order,
            )
        )
    logger.info("Seeded %d default categories for user %s", len(created), user_id)
    return created


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

def _allocations_for(conn: sqlite3.Connection, budget_ids: Iterable[str]) -> Dict[str, List[BudgetAllocation]]:
    ids = list(budget_ids)
    grouped: Dict[str, List[BudgetAllocation]] = {bid: [] for bid in ids}
    if not ids:
        return grouped
    placeholders = ",".join("?" for _ in ids)
    rows = conn.execute(
        f"SELECT budget_id, category_id, amount FROM budget_allocations WHERE budget_id IN ({placeholders})",
        ids,
    ).fetchall()
    for row in rows:
        grouped[row['budget_id']].append(
            BudgetAllocation(category_id=row['category_id'], amount=float(row['amount']))
        )
    return grouped


def _insert_allocations(
    conn: sqlite3.Connection,
    budget_id: str,
    allocations: Sequence[schemas.BudgetAllocationInput],
) -> None:
    conn.executemany(
        "INSERT INTO budget_allocations (id, budget_id, category_id, amount) VALUES (?, ?, ?, ?)",
        [(_new_id(), budget_id, a.category_id, float(a.amount)) for a in allocations],
    )


def fetch_budgets(user_id: str) -> List[Budget]:
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM budgets WHERE user_id = ? ORDER BY month DESC",
            (user_id,),
        ).fetchall()
        allocations = _allocations_for(conn, [r['id'] for r in rows])
    return [
        Budget(
            id=r['id'],
            user_id=r['user_id'],
            month=r['month'],
            total_amount=float(r['total_amount']),
            allocations=allocations[r['id']],
        )
        for r in rows
    ]


def get_budget_by_month(user_id: str, month: str) -> Optional[Budget]:
    for budget in fetch_budgets(user_id):
        if budget.month == month:
            return budget
    return None


def create_budget(user_id: str, data: schemas.BudgetCreate) -> Budget:
    if get_budget_by_month(user_id, data.month) is not None:
        raise BudgetExistsError(data.month)

    budget_id = _new_id()
    stamp = _now()
    with connect() as conn:
        conn.execute(
            "INSERT INTO budgets (id, user_id, month, total_amount, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (budget_id, user_id, data.month, float(data.total_amount), stamp, stamp),
        )
        _insert_allocations(conn, budget_id, data.allocations)
        conn.commit()
    return Budget(
        id=budget_id,
        user_id=user_id,
        month=data.month,
        total_amount=float(data.total_amount),
        allocations=[BudgetAllocation(a.category_id, float(a.amount)) for a in data.allocations],
    )


def update_budget(user_id: str, budget_id: str, data: schemas.BudgetUpdate) -> Budget:
    values = data.model_dump(exclude_unset=True, exclude={'allocations'})
    if values:
        _update_row('budgets', user_id, budget_id, values)
    if data.allocations is not None:
        with connect() as conn:
            owner = conn.execute(
                "SELECT id FROM budgets WHERE id = ? AND user_id = ?",
                (budget_id, user_id),
            ).fetchone()
            if owner is None:
                raise RecordNotFoundError('budgets', budget_id)
            conn.execute("DELETE FROM budget_allocations WHERE budget_id = ?", (budget_id,))
            _insert_allocations(conn, budget_id, data.allocations)
            conn.commit()
    for budget in fetch_budgets(user_id):
        if budget.id == budget_id:
            return budget
    raise RecordNotFoundError('budgets', budget_id)


def delete_budget(user_id: str, budget_id: str) -> None:
    _delete_row('budgets', user_id, budget_id)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

def _row_to_goal(row: sqlite3.Row) -> Goal:
    return Goal(
        id=row['id'],
        user_id=row['user_id'],
        name=row['name'],
        target_amount=float(row['target_amount']),
        current_amount=float(row['current_amount'] or 0.0),
        icon=row['icon'] or 'Target',
        color=row['color'] or '#98EF5A',
        deadline=to_date(row['deadline']) if row['deadline'] else None,
    )


def fetch_goals(user_id: str) -> List[Goal]:
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM goals WHERE user_id = ? ORDER BY created_at",
            (user_id,),
        ).fetchall()
    return [_row_to_goal(r) for r in rows]


def create_goal(user_id: str, data: schemas.GoalCreate) -> Goal:
    goal = Goal(
        id=_new_id(),
        user_id=user_id,
        name=data.name,
        target_amount=float(data.target_amount),
        current_amount=float(data.current_amount),
        icon=data.icon,
        color=data.color,
        deadline=data.deadline,
    )
    stamp = _now()
    with connect() as conn:
        conn.execute(
            "INSERT INTO goals (id, user_id, name, target_amount, current_amount, icon, color, deadline, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (goal.id, user_id, goal.name, goal.target_amount, goal.current_amount,
             goal.icon, goal.color, _iso(goal.deadline), stamp, stamp),
        )
        conn.commit()
    return goal


def update_goal(user_id: str, goal_id: str, data: schemas.GoalUpdate) -> Goal:
    values = data.model_dump(exclude_unset=True)
    if 'deadline' in values:
        values['deadline'] = _iso(values['deadline'])
    _update_row('goals', user_id, goal_id, values)
    return _row_to_goal(_fetch_owned_row('goals', user_id, goal_id))


def delete_goal(user_id: str, goal_id: str) -> None:
    _delete_row('goals', user_id, goal_id)


# ---------------------------------------------------------------------------
# Recurring templates
# ---------------------------------------------------------------------------

def _row_to_recurring(row: sqlite3.Row) -> RecurringTransaction:
    return RecurringTransaction(
        id=row['id'],
        user_id=row['user_id'],
        name=row['name'],
        amount=float(row['amount']),
        type=row['type'],
        category_id=row['category_id'],
        frequency=row['frequency'],
        next_date=to_date(row['next_date']),
        status=row['status'],
    )


def fetch_recurring(user_id: str) -> List[RecurringTransaction]:
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM recurring_transactions WHERE user_id = ? ORDER BY next_date",
            (user_id,),
        ).fetchall()
    return [_row_to_recurring(r) for r in rows]


def create_recurring(user_id: str, data: schemas.RecurringCreate) -> RecurringTransaction:
    template = RecurringTransaction(
        id=_new_id(),
        user_id=user_id,
        name=data.name,
        amount=float(data.amount),
        type=data.type,
        category_id=data.category_id,
        frequency=data.frequency,
        next_date=data.next_date,
        status=data.status,
    )
    stamp = _now()
    with connect() as conn:
        conn.execute(
            "INSERT INTO recurring_transactions (id, user_id, name, amount, type, category_id, frequency, next_date, status, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (template.id, user_id, template.name, template.amount, template.type, template.category_id,
             template.frequency, _iso(template.next_date), template.status, stamp, stamp),
        )
        conn.commit()
    return template


def update_recurring(user_id: str, recurring_id: str, data: schemas.RecurringUpdate) -> RecurringTransaction:
    values = data.model_dump(exclude_unset=True)
    if 'next_date' in values:
        values['next_date'] = _iso(values['next_date'])
    _update_row('recurring_transactions', user_id, recurring_id, values)
    return _row_to_recurring(_fetch_owned_row('recurring_transactions', user_id, recurring_id))


def delete_recurring(user_id: str, recurring_id: str) -> None:
    _delete_row('recurring_transactions', user_id, recurring_id)

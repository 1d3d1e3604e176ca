"""Domain records and result types for the finance tracker.

Stored entities (transactions, categories, budgets, goals, recurring
templates) mirror the database tables.  Derived types such as
``BudgetWithSpending`` or ``FinancialHealthScore`` are never stored; they
are recomputed from the stored entities whenever the inputs change.
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

TRANSACTION_TYPES = ('expense', 'income')
RECURRING_FREQUENCIES = ('daily', 'weekly', 'monthly', 'yearly')
RECURRING_STATUSES = ('active', 'paused')

# Column names of the transaction DataFrame handed to the analytics layer
TRANSACTION_COLUMNS = ['id', 'user_id', 'Date', 'Type', 'Amount', 'category_id', 'Notes']


@dataclass
class Transaction:
    id: str
    user_id: str
    amount: float
    type: str
    category_id: Optional[str]
    date: date
    notes: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'Date': pd.Timestamp(self.date),
            'Type': self.type,
            'Amount': float(self.amount),
            'category_id': self.category_id,
            'Notes': self.notes,
        }


@dataclass
class Category:
    id: str
    user_id: str
    name: str
    icon: str = 'more-horizontal'
    color: str = '#64748b'
    is_default: bool = False
    order: int = 0


@dataclass
class BudgetAllocation:
    category_id: str
    amount: float


@dataclass
class Budget:
    id: str
    user_id: str
    month: str
    total_amount: float
    allocations: List[BudgetAllocation] = field(default_factory=list)


@dataclass
class Goal:
    id: str
    user_id: str
    name: str
    target_amount: float
    current_amount: float = 0.0
    icon: str = 'Target'
    color: str = '#98EF5A'
    deadline: Optional[date] = None


@dataclass
class RecurringTransaction:
    id: str
    user_id: str
    name: str
    amount: float
    type: str
    category_id: Optional[str]
    frequency: str
    next_date: date
    status: str = 'active'


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------

@dataclass
class MonthlyTotals:
    month: str
    income: float
    expense: float
    transaction_count: int

    @property
    def net_balance(self) -> float:
        return self.income - self.expense


@dataclass
class AllocationWithSpending:
    category_id: str
    amount: float
    spent: float
    remaining: float
    percentage_used: int
    is_over_budget: bool
    category: Optional[Category] = None


@dataclass
class BudgetWithSpending:
    id: str
    user_id: str
    month: str
    total_amount: float
    total_spent: float
    total_remaining: float
    allocations: List[AllocationWithSpending] = field(default_factory=list)


@dataclass
class CategorySpending:
    category_id: Optional[str]
    category_name: str
    category_icon: str
    category_color: str
    amount: float
    percentage: float
    previous_amount: float
    change: float
    count: int


@dataclass
class MonthlyTrendPoint:
    month: str
    label: str
    value: float


@dataclass
class SpendingTrend:
    months: List[MonthlyTrendPoint]
    average: float
    highest: Optional[MonthlyTrendPoint]


@dataclass
class SpendingVelocity:
    daily_average: float
    projected_total: float
    ideal_daily_rate: float
    velocity_ratio: float
    display_velocity: float
    status: str
    days_elapsed: int
    days_remaining: int
    days_in_month: int

    @property
    def is_over_pace(self) -> bool:
        return self.velocity_ratio > 100


@dataclass
class FinancialHealthScore:
    overall: int
    savings_rate: int
    budget_adherence: int
    spending_trend: int
    status: str
    recommendations: List[str] = field(default_factory=list)


@dataclass
class SmartInsight:
    type: str
    title: str
    message: str
    action: Optional[str] = None
    impact: Optional[str] = None


@dataclass
class GoalProgress:
    goal_id: str
    name: str
    current_amount: float
    target_amount: float
    progress_percentage: float
    remaining_amount: float
    months_to_goal: float
    monthly_needed: Optional[float]
    status: str


# ---------------------------------------------------------------------------
# Month helpers
# ---------------------------------------------------------------------------

def to_date(value: Any) -> date:
    """Coerce strings, datetimes and pandas timestamps to ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def month_key(value: Any) -> str:
    """Return the ``YYYY-MM`` key for a date-like value."""
    day = to_date(value)
    return f"{day.year:04d}-{day.month:02d}"


def parse_month(month: str) -> Tuple[int, int]:
    year, mon = month.split('-')
    return int(year), int(mon)


def month_bounds(month: str) -> Tuple[date, date]:
    """First and last calendar day of a ``YYYY-MM`` month."""
    year, mon = parse_month(month)
    last_day = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last_day)


def days_in_month(value: Any) -> int:
    day = to_date(value)
    return calendar.monthrange(day.year, day.month)[1]


def shift_month(month: str, offset: int) -> str:
    """Move a month key forwards (positive) or backwards (negative)."""
    year, mon = parse_month(month)
    index = year * 12 + (mon - 1) + offset
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def month_label(month: str) -> str:
    """Short month name used on chart axes, e.g. ``Mar``."""
    year, mon = parse_month(month)
    return date(year, mon, 1).strftime('%b')


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))

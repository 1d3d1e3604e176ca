"""Finance Analytics and Aggregation.

This module contains the in-memory aggregation routines used by every
dashboard view: monthly totals, category breakdowns with month-over-month
deltas, daily and weekly buckets, the six-month trend and the spending
velocity / projection figures.

All calculations work on a transaction DataFrame (see
``models.TRANSACTION_COLUMNS``) and a reference month or date.  Nothing
here performs I/O, and empty input or zero denominators degrade to zero
values instead of raising.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from .models import (
    TRANSACTION_COLUMNS,
    Category,
    CategorySpending,
    MonthlyTotals,
    MonthlyTrendPoint,
    SpendingTrend,
    SpendingVelocity,
    Transaction,
    days_in_month,
    month_key,
    month_label,
    shift_month,
    to_date,
)

UNCATEGORIZED_NAME = 'Uncategorized'
UNCATEGORIZED_ICON = 'more-horizontal'
UNCATEGORIZED_COLOR = '#64748b'

TREND_MONTHS = 6

# Velocity ratio thresholds, in percent of the ideal daily rate
VELOCITY_DANGER_RATIO = 120.0
VELOCITY_WARNING_RATIO = 100.0
VELOCITY_DISPLAY_MAX = 200.0


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Build the analytics DataFrame from transaction records."""
    rows = [txn.to_row() for txn in transactions]
    if not rows:
        return pd.DataFrame(columns=TRANSACTION_COLUMNS)
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


def velocity_status(ratio: float) -> str:
    if ratio > VELOCITY_DANGER_RATIO:
        return 'danger'
    if ratio > VELOCITY_WARNING_RATIO:
        return 'warning'
    return 'good'


class FinanceAnalytics:
    """Aggregations over one user's transactions."""

    def __init__(self, data: pd.DataFrame, categories: Optional[Iterable[Category]] = None):
        """Initialize with transaction data and optional category metadata."""
        self.data = data.copy()
        self.categories: Dict[str, Category] = {c.id: c for c in (categories or [])}
        self._prepare_data()

    def _prepare_data(self) -> None:
        for column in TRANSACTION_COLUMNS:
            if column not in self.data.columns:
                self.data[column] = None

        self.data['Date'] = pd.to_datetime(self.data['Date'])
        self.data['Amount'] = pd.to_numeric(self.data['Amount'], errors='coerce').fillna(0.0).astype(float)
        self.data['Type'] = self.data['Type'].fillna('').astype(str).str.strip().str.lower()

        # Missing category ids group together under an empty key
        self.data['Category Key'] = self.data['category_id'].fillna('').astype(str)
        self.data['Month'] = self.data['Date'].dt.strftime('%Y-%m')

    def _month_rows(self, month: str) -> pd.DataFrame:
        return self.data[self.data['Month'] == month]

    @staticmethod
    def _expense_rows(df: pd.DataFrame) -> pd.DataFrame:
        return df[df['Type'] == 'expense']

    @staticmethod
    def _income_rows(df: pd.DataFrame) -> pd.DataFrame:
        return df[df['Type'] == 'income']

    def _category_meta(self, key: str) -> Category:
        category = self.categories.get(key)
        if category is not None:
            return category
        return Category(
            id=key,
            user_id='',
            name=UNCATEGORIZED_NAME,
            icon=UNCATEGORIZED_ICON,
            color=UNCATEGORIZED_COLOR,
        )

    # ------------------------------------------------------------------
    # Monthly aggregation
    # ------------------------------------------------------------------

    def monthly_totals(self, month: str) -> MonthlyTotals:
        """Income and expense sums for a ``YYYY-MM`` month."""
        rows = self._month_rows(month)
        return MonthlyTotals(
            month=month,
            income=float(self._income_rows(rows)['Amount'].sum()),
            expense=float(self._expense_rows(rows)['Amount'].sum()),
            transaction_count=int(len(rows)),
        )

    def monthly_expense(self, month: str) -> float:
        return self.monthly_totals(month).expense

    def savings_rate(self, month: str) -> float:
        totals = self.monthly_totals(month)
        if totals.income <= 0:
            return 0.0
        return totals.net_balance / totals.income * 100

    def transactions_for_month(self, month: str) -> pd.DataFrame:
        """Rows of one month, newest first, without helper columns."""
        rows = self._month_rows(month).sort_values('Date', ascending=False, kind='mergesort')
        return rows[TRANSACTION_COLUMNS].reset_index(drop=True)

    # ------------------------------------------------------------------
    # Category breakdown and trend
    # ------------------------------------------------------------------

    def category_breakdown(self, month: str) -> List[CategorySpending]:
        """Expense totals per category with the change against last month.

        Sorted by amount descending; equal amounts are ordered by category id.
        """
        current = self._expense_rows(self._month_rows(month))
        if current.empty:
            return []

        previous = self._expense_rows(self._month_rows(shift_month(month, -1)))
        previous_totals = previous.groupby('Category Key')['Amount'].sum()
        grouped = current.groupby('Category Key')['Amount'].agg(['sum', 'count'])
        month_total = float(current['Amount'].sum())

        breakdown: List[CategorySpending] = []
        for key, row in grouped.iterrows():
            amount = float(row['sum'])
            previous_amount = float(previous_totals.get(key, 0.0))
            meta = self._category_meta(key)
            breakdown.append(
                CategorySpending(
                    category_id=key or None,
                    category_name=meta.name,
                    category_icon=meta.icon,
                    category_color=meta.color,
                    amount=amount,
                    percentage=(amount / month_total * 100) if month_total > 0 else 0.0,
                    previous_amount=previous_amount,
                    change=((amount - previous_amount) / previous_amount * 100) if previous_amount > 0 else 0.0,
                    count=int(row['count']),
                )
            )

        breakdown.sort(key=lambda item: (-item.amount, item.category_id or ''))
        return breakdown

    def six_month_trend(self, month: str) -> SpendingTrend:
        """Expense totals for the trailing six months, oldest first."""
        points = []
        for offset in range(-(TREND_MONTHS - 1), 1):
            key = shift_month(month, offset)
            points.append(MonthlyTrendPoint(month=key, label=month_label(key), value=self.monthly_expense(key)))

        values = np.array([p.value for p in points], dtype=float)
        highest = points[int(np.argmax(values))] if values.max() > 0 else None
        return SpendingTrend(months=points, average=float(values.mean()), highest=highest)

    def daily_spending(self, month: str) -> pd.DataFrame:
        """Per-day expense sums for days that have spending."""
        expenses = self._expense_rows(self._month_rows(month))
        if expenses.empty:
            return pd.DataFrame(columns=['Date', 'Amount'])
        daily = (
            expenses.assign(Day=expenses['Date'].dt.normalize())
            .groupby('Day', as_index=False)['Amount']
            .sum()
            .rename(columns={'Day': 'Date'})
        )
        return daily.sort_values('Date').reset_index(drop=True)

    def weekly_spending(self, month: str, first_day_of_week: int = 0) -> pd.DataFrame:
        """Per-week expense sums keyed by the week's first day.

        ``first_day_of_week`` uses 0 for Sunday through 6 for Saturday.
        """
        expenses = self._expense_rows(self._month_rows(month))
        if expenses.empty:
            return pd.DataFrame(columns=['Week Start', 'Amount'])

        days = expenses['Date'].dt.normalize()
        # pandas counts Monday as 0; shift so Sunday is 0
        weekday = (days.dt.dayofweek + 1) % 7
        offset = (weekday - int(first_day_of_week)) % 7
        week_start = days - pd.to_timedelta(offset, unit='D')
        weekly = (
            expenses.assign(**{'Week Start': week_start})
            .groupby('Week Start', as_index=False)['Amount']
            .sum()
        )
        return weekly.sort_values('Week Start').reset_index(drop=True)

    # ------------------------------------------------------------------
    # Velocity and projection
    # ------------------------------------------------------------------

    def spending_velocity(self, reference_date: Any, budget_total: Optional[float] = None) -> SpendingVelocity:
        """Daily spend rate against the ideal rate implied by the budget."""
        today = to_date(reference_date)
        spent = self.monthly_expense(month_key(today))
        total_days = days_in_month(today)
        days_elapsed = max(today.day, 1)
        days_remaining = total_days - today.day

        daily_average = spent / days_elapsed
        budget = float(budget_total or 0.0)
        ideal_rate = budget / total_days if budget > 0 else 0.0
        ratio = (daily_average / ideal_rate * 100) if ideal_rate > 0 else 0.0

        return SpendingVelocity(
            daily_average=daily_average,
            projected_total=spent + daily_average * days_remaining,
            ideal_daily_rate=ideal_rate,
            velocity_ratio=ratio,
            display_velocity=float(np.clip(ratio, 0.0, VELOCITY_DISPLAY_MAX)),
            status=velocity_status(ratio),
            days_elapsed=days_elapsed,
            days_remaining=days_remaining,
            days_in_month=total_days,
        )

    def spending_on(self, day: Any) -> float:
        target = pd.Timestamp(to_date(day))
        expenses = self._expense_rows(self.data)
        return float(expenses.loc[expenses['Date'].dt.normalize() == target, 'Amount'].sum())

    def daily_allowance(self, reference_date: Any, budget_total: Optional[float]) -> Optional[float]:
        """What is left to spend today, or ``None`` without a budget."""
        if not budget_total:
            return None
        today = to_date(reference_date)
        remaining = float(budget_total) - self.monthly_expense(month_key(today))
        days_left = max(1, days_in_month(today) - today.day + 1)
        return remaining / days_left - self.spending_on(today)


def transactions_from_frame(df: pd.DataFrame) -> List[Transaction]:
    """Inverse of :func:`transactions_to_frame` for rows read from the database."""
    def _text(value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    return [
        Transaction(
            id=row['id'],
            user_id=row['user_id'],
            amount=float(row['Amount']),
            type=row['Type'],
            category_id=_text(row['category_id']),
            date=to_date(row['Date']),
            notes=_text(row['Notes']),
        )
        for _, row in df.iterrows()
    ]


SORT_FIELDS = ('date', 'amount', 'category')


def filter_transactions(
    df: pd.DataFrame,
    categories: Optional[Iterable[Category]] = None,
    start_date: Optional[Any] = None,
    end_date: Optional[Any] = None,
    txn_type: Optional[str] = None,
    category_ids: Optional[Iterable[str]] = None,
    search: str = '',
    sort_by: str = 'date',
    ascending: bool = False,
) -> pd.DataFrame:
    """Search, filter and sort a transaction DataFrame for the transactions list.

    Args:
        df: Transaction DataFrame with ``TRANSACTION_COLUMNS``
        categories: Category records; adds a ``Category`` name column used by
            the search and the category sort
        start_date, end_date: Inclusive date range; ignored unless both are set
        txn_type: ``'expense'`` or ``'income'``; ``None`` or ``'all'`` keeps both
        category_ids: Keep only rows in these categories; empty keeps all
        search: Case-insensitive match against notes or category name
        sort_by: One of ``SORT_FIELDS``
        ascending: Sort direction

    Returns:
        Filtered copy with a ``Category`` column.
    """
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field: {sort_by!r}")

    names = {c.id: c.name for c in (categories or [])}
    result = df.copy()
    result['Date'] = pd.to_datetime(result['Date'])
    result['Category'] = result['category_id'].map(names).fillna(UNCATEGORIZED_NAME)
    if result.empty:
        return result

    if start_date is not None and end_date is not None:
        start = pd.Timestamp(to_date(start_date))
        end = pd.Timestamp(to_date(end_date))
        result = result[(result['Date'].dt.normalize() >= start) & (result['Date'].dt.normalize() <= end)]

    if txn_type and txn_type != 'all':
        result = result[result['Type'] == txn_type]

    wanted = list(category_ids or [])
    if wanted:
        result = result[result['category_id'].isin(wanted)]

    term = search.strip().lower()
    if term:
        notes = result['Notes'].fillna('').astype(str).str.lower()
        category_names = result['Category'].str.lower()
        result = result[notes.str.contains(term, regex=False) | category_names.str.contains(term, regex=False)]

    column = {'date': 'Date', 'amount': 'Amount', 'category': 'Category'}[sort_by]
    return result.sort_values(column, ascending=ascending, kind='mergesort').reset_index(drop=True)

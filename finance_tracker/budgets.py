"""Budget-with-spending view.

Joins a month's static budget allocations against that month's expense
transactions to derive spent, remaining and percentage-used figures.
None of the derived values are stored.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pandas as pd

from .models import (
    AllocationWithSpending,
    Budget,
    BudgetWithSpending,
    Category,
    round_half_up,
)

ALMOST_THERE_PERCENT = 80
OVER_BUDGET_PERCENT = 100
ON_TRACK_PERCENT = 75


def find_budget(budgets: Iterable[Budget], month: str) -> Optional[Budget]:
    """Exact month-key lookup; no fuzzy matching."""
    for budget in budgets:
        if budget.month == month:
            return budget
    return None


def spending_by_category(transactions: pd.DataFrame, month: str) -> pd.Series:
    """Expense sums for one month indexed by category id."""
    if transactions.empty:
        return pd.Series(dtype=float)
    dates = pd.to_datetime(transactions['Date'])
    mask = (dates.dt.strftime('%Y-%m') == month) & (transactions['Type'].astype(str).str.lower() == 'expense')
    rows = transactions[mask]
    if rows.empty:
        return pd.Series(dtype=float)
    amounts = pd.to_numeric(rows['Amount'], errors='coerce').fillna(0.0)
    return amounts.groupby(rows['category_id']).sum()


def percentage_used(spent: float, amount: float) -> int:
    if amount == 0:
        return 0
    return round_half_up(spent / amount * 100)


def get_budget_with_spending(
    budgets: Iterable[Budget],
    transactions: pd.DataFrame,
    month: str,
    categories: Optional[Iterable[Category]] = None,
) -> Optional[BudgetWithSpending]:
    """Return the month's budget joined with actual spending.

    Returns ``None`` when no budget exists for ``month``; callers must not
    treat that as a zero budget.  Allocations are ordered by percentage used,
    highest first.
    """
    budget = find_budget(budgets, month)
    if budget is None:
        return None

    lookup: Dict[str, Category] = {c.id: c for c in (categories or [])}
    spent_by_category = spending_by_category(transactions, month)

    allocations: List[AllocationWithSpending] = []
    for allocation in budget.allocations:
        spent = float(spent_by_category.get(allocation.category_id, 0.0))
        allocations.append(
            AllocationWithSpending(
                category_id=allocation.category_id,
                amount=allocation.amount,
                spent=spent,
                remaining=allocation.amount - spent,
                percentage_used=percentage_used(spent, allocation.amount),
                is_over_budget=spent > allocation.amount,
                category=lookup.get(allocation.category_id),
            )
        )
    allocations.sort(key=lambda a: a.percentage_used, reverse=True)

    total_spent = sum(a.spent for a in allocations)
    return BudgetWithSpending(
        id=budget.id,
        user_id=budget.user_id,
        month=budget.month,
        total_amount=budget.total_amount,
        total_spent=total_spent,
        total_remaining=budget.total_amount - total_spent,
        allocations=allocations,
    )


def budget_status(percentage: float) -> str:
    if percentage >= OVER_BUDGET_PERCENT:
        return 'Over Budget'
    if percentage >= ALMOST_THERE_PERCENT:
        return 'Almost There'
    return 'On Track'


def summarize_budget(view: BudgetWithSpending) -> Dict[str, float]:
    """Headline numbers for the budget page."""
    overall = percentage_used(view.total_spent, view.total_amount)
    return {
        'total_amount': view.total_amount,
        'total_spent': view.total_spent,
        'total_remaining': view.total_remaining,
        'percentage_used': overall,
        'status': budget_status(overall),
        'over_budget_count': sum(1 for a in view.allocations if a.percentage_used >= OVER_BUDGET_PERCENT),
        'on_track_count': sum(1 for a in view.allocations if a.percentage_used < ON_TRACK_PERCENT),
        'allocated_total': sum(a.amount for a in view.allocations),
    }

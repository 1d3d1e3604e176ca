"""Helpers for recurring transaction templates like subscriptions or rent.

Templates are plain records; nothing here turns them into transactions.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Iterable, List

import pandas as pd

from .models import RecurringTransaction, to_date

# How many times a template fires in one month
FREQUENCY_MONTHLY_MULTIPLIER: Dict[str, float] = {
    'daily': 30.0,
    'weekly': 4.0,
    'monthly': 1.0,
    'yearly': 1 / 12,
}

UPCOMING_WINDOW_DAYS = 30


def active_templates(templates: Iterable[RecurringTransaction]) -> List[RecurringTransaction]:
    return [t for t in templates if t.status == 'active']


def monthly_equivalent(template: RecurringTransaction) -> float:
    return float(template.amount) * FREQUENCY_MONTHLY_MULTIPLIER.get(template.frequency, 1.0)


def monthly_commitment(templates: Iterable[RecurringTransaction]) -> float:
    """Monthly cost of all active templates.  Paused ones are ignored."""
    return sum(monthly_equivalent(t) for t in active_templates(templates))


def upcoming_payments(
    templates: Iterable[RecurringTransaction],
    reference_date: Any,
    days: int = UPCOMING_WINDOW_DAYS,
) -> pd.DataFrame:
    """Active templates due within ``days`` of the reference date, soonest first."""
    start = to_date(reference_date)
    end = start + timedelta(days=days)
    rows = [
        {
            'id': t.id,
            'Name': t.name,
            'Amount': float(t.amount),
            'Frequency': t.frequency,
            'Next Date': t.next_date,
            'Monthly Equivalent': monthly_equivalent(t),
            'category_id': t.category_id,
        }
        for t in active_templates(templates)
        if start <= t.next_date <= end
    ]
    columns = ['id', 'Name', 'Amount', 'Frequency', 'Next Date', 'Monthly Equivalent', 'category_id']
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns).sort_values('Next Date', kind='mergesort').reset_index(drop=True)

"""Smart insights rule engine.

A fixed list of rules evaluated in order.  Each rule produces at most one
insight; the result is ordered by priority and capped.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .analytics import FinanceAnalytics
from .formatting import format_currency
from .models import SmartInsight, month_key, round_half_up, shift_month, to_date

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 3

PRIORITY = {'warning': 0, 'opportunity': 1, 'achievement': 2, 'tip': 3}

# Top category share of the month's spending
CONCENTRATION_PERCENT = 30.0
# Top category amount relative to the budget total
ALLOCATION_TIP_PERCENT = 25.0
SAVINGS_REDUCTION = 0.15

SURGE_PERCENT = 15.0
CONTROL_PERCENT = -10.0


def _money(amount: float, symbol: str) -> str:
    return format_currency(round_half_up(amount), symbol)


def budget_projection_insight(
    analytics: FinanceAnalytics,
    reference_date: Any,
    budget_total: Optional[float],
    symbol: str = '$',
) -> Optional[SmartInsight]:
    if not budget_total or budget_total <= 0:
        return None
    velocity = analytics.spending_velocity(reference_date, budget_total)
    if velocity.days_elapsed <= 0 or velocity.days_remaining <= 0:
        return None

    overage = velocity.projected_total - budget_total
    if overage <= 0:
        return None

    spent = analytics.monthly_expense(month_key(to_date(reference_date)))
    recommended_daily = (budget_total - spent) / velocity.days_remaining
    return SmartInsight(
        type='warning',
        title='Budget Alert',
        message=f"Projected to exceed budget by {_money(overage, symbol)}",
        action=f"Reduce to {_money(recommended_daily, symbol)}/day",
        impact=f"{velocity.days_remaining} days left",
    )


def concentration_insight(
    analytics: FinanceAnalytics,
    month: str,
    budget_total: Optional[float],
    symbol: str = '$',
) -> Optional[SmartInsight]:
    breakdown = analytics.category_breakdown(month)
    if not breakdown:
        return None

    top = breakdown[0]
    if top.percentage > CONCENTRATION_PERCENT:
        return SmartInsight(
            type='opportunity',
            title='Savings Opportunity',
            message=f"{top.category_name} is {top.percentage:.0f}% of spending",
            action='Reduce by 15%',
            impact=f"Save {_money(top.amount * SAVINGS_REDUCTION, symbol)}/mo",
        )

    if budget_total and budget_total > 0:
        share_of_budget = top.amount / budget_total * 100
        if share_of_budget > ALLOCATION_TIP_PERCENT:
            return SmartInsight(
                type='tip',
                title='Allocation Tip',
                message=f"{top.category_name} is {share_of_budget:.0f}% of your budget",
                action=f"Set a {top.category_name} allocation",
            )
    return None


def month_over_month_insight(
    analytics: FinanceAnalytics,
    month: str,
    symbol: str = '$',
) -> Optional[SmartInsight]:
    current = analytics.monthly_expense(month)
    previous = analytics.monthly_expense(shift_month(month, -1))
    if previous <= 0:
        return None

    change = (current - previous) / previous * 100
    if change > SURGE_PERCENT:
        return SmartInsight(
            type='warning',
            title='Spending Surge',
            message=f"Up {change:.0f}% from last month",
            action=f"+{_money(current - previous, symbol)}",
        )
    if change < CONTROL_PERCENT:
        return SmartInsight(
            type='achievement',
            title='Excellent Control!',
            message=f"Spending down {abs(change):.0f}% from last month",
            impact=f"Saved {_money(previous - current, symbol)}",
        )
    return None


def generate_smart_insights(
    analytics: FinanceAnalytics,
    reference_date: Any,
    budget_total: Optional[float] = None,
    symbol: str = '$',
) -> List[SmartInsight]:
    """Evaluate every rule for the month containing ``reference_date``."""
    month = month_key(to_date(reference_date))
    candidates = [
        budget_projection_insight(analytics, reference_date, budget_total, symbol),
        concentration_insight(analytics, month, budget_total, symbol),
        month_over_month_insight(analytics, month, symbol),
    ]
    insights = [insight for insight in candidates if insight is not None]
    # sorted() is stable, so rules of equal priority keep evaluation order
    insights = sorted(insights, key=lambda insight: PRIORITY[insight.type])
    logger.debug("Generated %d insights for %s", len(insights), month)
    return insights[:MAX_INSIGHTS]

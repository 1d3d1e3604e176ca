"""Financial health score.

A 0-100 heuristic built from three weighted sub-scores: savings rate,
budget adherence and month-over-month spending trend.  The breakpoints
below are a fixed policy; changing any of them changes user-visible scores.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from .models import FinancialHealthScore, round_half_up, shift_month

SAVINGS_WEIGHT = 0.4
ADHERENCE_WEIGHT = 0.35
TREND_WEIGHT = 0.25

NEUTRAL_SCORE = 50.0

# Savings: a 50% savings rate maps to a full score
SAVINGS_MULTIPLIER = 2.0

# Budget adherence, in percent of budget used
ADHERENCE_FULL_USAGE = 80.0
ADHERENCE_LIMIT_USAGE = 100.0
ADHERENCE_SLOPE = 2.5
ADHERENCE_OVER_SLOPE = 2.0

# Spending trend, in percent change against last month
TREND_STRONG_DECREASE = -10.0
TREND_MILD_INCREASE = 10.0
TREND_DECREASE_SLOPE = 5.0
TREND_INCREASE_SLOPE = 2.5
TREND_SURGE_BASE = 25.0
TREND_SURGE_SLOPE = 1.25

STATUS_BUCKETS = (
    (80, 'excellent'),
    (60, 'good'),
    (40, 'fair'),
)

SAVINGS_RECOMMENDATION_BELOW = 40
ADHERENCE_RECOMMENDATION_BELOW = 50
TREND_RECOMMENDATION_BELOW = 40

RECOMMEND_SAVE_MORE = 'Try to save at least 20% of your income'
RECOMMEND_REVIEW_BUDGET = 'Review your budget - spending is too high'
RECOMMEND_CUT_SPENDING = 'Spending is increasing - find areas to cut'


def savings_score(income: float, expense: float) -> float:
    rate = (income - expense) / income * 100 if income > 0 else 0.0
    return float(np.clip(rate * SAVINGS_MULTIPLIER, 0.0, 100.0))


def adherence_score(expense: float, budget_total: Optional[float]) -> float:
    if budget_total is None or budget_total <= 0:
        return NEUTRAL_SCORE
    usage = expense / budget_total * 100
    if usage <= ADHERENCE_FULL_USAGE:
        return 100.0
    if usage <= ADHERENCE_LIMIT_USAGE:
        return 100.0 - (usage - ADHERENCE_FULL_USAGE) * ADHERENCE_SLOPE
    return max(NEUTRAL_SCORE - (usage - ADHERENCE_LIMIT_USAGE) * ADHERENCE_OVER_SLOPE, 0.0)


def trend_score(expense: float, previous_expense: float) -> float:
    if previous_expense <= 0:
        return NEUTRAL_SCORE
    change = (expense - previous_expense) / previous_expense * 100
    if change <= TREND_STRONG_DECREASE:
        return 100.0
    if change <= 0:
        return 100.0 - abs(change) * TREND_DECREASE_SLOPE
    if change <= TREND_MILD_INCREASE:
        return NEUTRAL_SCORE - change * TREND_INCREASE_SLOPE
    return max(TREND_SURGE_BASE - (change - TREND_MILD_INCREASE) * TREND_SURGE_SLOPE, 0.0)


def health_status(overall: int) -> str:
    for floor, label in STATUS_BUCKETS:
        if overall >= floor:
            return label
    return 'poor'


def calculate_financial_health(
    income: float,
    expense: float,
    budget_total: Optional[float],
    previous_expense: float,
) -> FinancialHealthScore:
    """Score one month of activity.

    Args:
        income: Income for the month
        expense: Expense for the month
        budget_total: The month's budget total, or ``None`` without a budget
        previous_expense: Expense for the previous month

    Returns:
        FinancialHealthScore with rounded sub-scores.  ``overall`` is rounded
        from the unrounded weighted sum.
    """
    savings = savings_score(income, expense)
    adherence = adherence_score(expense, budget_total)
    trend = trend_score(expense, previous_expense)

    overall = round_half_up(savings * SAVINGS_WEIGHT + adherence * ADHERENCE_WEIGHT + trend * TREND_WEIGHT)

    recommendations: List[str] = []
    if savings < SAVINGS_RECOMMENDATION_BELOW:
        recommendations.append(RECOMMEND_SAVE_MORE)
    if adherence < ADHERENCE_RECOMMENDATION_BELOW:
        recommendations.append(RECOMMEND_REVIEW_BUDGET)
    if trend < TREND_RECOMMENDATION_BELOW:
        recommendations.append(RECOMMEND_CUT_SPENDING)

    return FinancialHealthScore(
        overall=overall,
        savings_rate=round_half_up(savings),
        budget_adherence=round_half_up(adherence),
        spending_trend=round_half_up(trend),
        status=health_status(overall),
        recommendations=recommendations,
    )


def health_for_month(analytics, month: str, budget_total: Optional[float]) -> FinancialHealthScore:
    """Convenience wrapper pulling the inputs from a ``FinanceAnalytics``."""
    totals = analytics.monthly_totals(month)
    previous = analytics.monthly_expense(shift_month(month, -1))
    return calculate_financial_health(totals.income, totals.expense, budget_total, previous)

"""Savings goal progress."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from .models import Goal, GoalProgress, to_date


def months_until(reference_date: Any, deadline: Any) -> int:
    """Whole calendar months from the reference month to the deadline month."""
    start = to_date(reference_date)
    end = to_date(deadline)
    return (end.year - start.year) * 12 + (end.month - start.month)


def calculate_goal_progress(
    goals: Iterable[Goal],
    monthly_savings: float,
    reference_date: Any,
) -> List[GoalProgress]:
    """Calculate progress towards savings goals.

    Args:
        goals: Goals to evaluate
        monthly_savings: Net savings of the latest month, used to estimate
            how long each goal will take
        reference_date: Date the deadline countdown starts from

    Returns:
        One ``GoalProgress`` per goal with a positive target.  Goals with a
        non-positive target are skipped.
    """
    progress: List[GoalProgress] = []
    for goal in goals:
        if goal.target_amount <= 0:
            continue

        percentage = goal.current_amount / goal.target_amount * 100
        remaining = max(goal.target_amount - goal.current_amount, 0.0)

        if remaining == 0:
            months_to_goal = 0.0
        elif monthly_savings > 0:
            months_to_goal = remaining / monthly_savings
        else:
            months_to_goal = float('inf')

        monthly_needed: Optional[float] = None
        if goal.deadline is not None:
            monthly_needed = remaining / max(1, months_until(reference_date, goal.deadline))

        progress.append(
            GoalProgress(
                goal_id=goal.id,
                name=goal.name,
                current_amount=goal.current_amount,
                target_amount=goal.target_amount,
                progress_percentage=min(percentage, 100.0),
                remaining_amount=remaining,
                months_to_goal=months_to_goal,
                monthly_needed=monthly_needed,
                status='Completed' if percentage >= 100 else 'In Progress',
            )
        )
    return progress

import math
from datetime import date

from finance_tracker.goals import calculate_goal_progress, months_until
from finance_tracker.models import Goal, RecurringTransaction
from finance_tracker.recurring import monthly_commitment, monthly_equivalent, upcoming_payments


def _goal(goal_id, target, current, deadline=None):
    return Goal(id=goal_id, user_id='u1', name=goal_id, target_amount=target,
                current_amount=current, deadline=deadline)


def _template(name, amount, frequency, next_date=date(2024, 3, 20), status='active'):
    return RecurringTransaction(id=name, user_id='u1', name=name, amount=amount, type='expense',
                                category_id=None, frequency=frequency, next_date=next_date, status=status)


def test_months_until_counts_calendar_months():
    assert months_until(date(2024, 3, 31), date(2024, 6, 1)) == 3
    assert months_until(date(2024, 11, 5), date(2025, 2, 5)) == 3


def test_goal_progress_estimates():
    progress = calculate_goal_progress(
        [_goal('car', 10_000.0, 2_500.0, deadline=date(2024, 9, 1))],
        monthly_savings=500.0,
        reference_date=date(2024, 3, 15),
    )[0]

    assert progress.progress_percentage == 25.0
    assert progress.remaining_amount == 7_500.0
    assert progress.months_to_goal == 15.0
    assert progress.monthly_needed == 1_250.0
    assert progress.status == 'In Progress'


def test_goal_without_savings_never_completes():
    progress = calculate_goal_progress([_goal('trip', 1000.0, 100.0)], 0.0, date(2024, 3, 1))[0]
    assert math.isinf(progress.months_to_goal)
    assert progress.monthly_needed is None


def test_completed_and_invalid_goals():
    results = calculate_goal_progress(
        [_goal('done', 500.0, 650.0), _goal('broken', 0.0, 10.0)],
        monthly_savings=100.0,
        reference_date=date(2024, 3, 1),
    )
    assert [r.goal_id for r in results] == ['done']
    assert results[0].progress_percentage == 100.0
    assert results[0].remaining_amount == 0.0
    assert results[0].months_to_goal == 0.0
    assert results[0].status == 'Completed'


def test_past_deadline_needs_everything_now():
    progress = calculate_goal_progress(
        [_goal('late', 1000.0, 400.0, deadline=date(2024, 1, 1))], 0.0, date(2024, 3, 1),
    )[0]
    assert progress.monthly_needed == 600.0


def test_monthly_commitment_normalises_frequencies():
    templates = [
        _template('rent', 10.0, 'monthly'),
        _template('gym', 5.0, 'weekly'),
        _template('insurance', 120.0, 'yearly'),
        _template('coffee', 1.0, 'daily'),
        _template('paused', 100.0, 'monthly', status='paused'),
    ]
    assert monthly_equivalent(templates[2]) == 10.0
    assert monthly_commitment(templates) == 70.0
    assert monthly_commitment([]) == 0


def test_upcoming_payments_window():
    templates = [
        _template('later', 10.0, 'monthly', next_date=date(2024, 5, 1)),
        _template('soon', 20.0, 'weekly', next_date=date(2024, 3, 5)),
        _template('sooner', 30.0, 'monthly', next_date=date(2024, 3, 2)),
        _template('paused', 40.0, 'monthly', next_date=date(2024, 3, 3), status='paused'),
        _template('missed', 50.0, 'monthly', next_date=date(2024, 2, 28)),
    ]
    upcoming = upcoming_payments(templates, date(2024, 3, 1))

    assert list(upcoming['Name']) == ['sooner', 'soon']
    assert list(upcoming['Monthly Equivalent']) == [30.0, 80.0]
    assert upcoming_payments([], date(2024, 3, 1)).empty

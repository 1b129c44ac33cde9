"""
Target Service - Monthly hour targets with carry-over between months.

Every closed month (from the first month with completed work up to, but not
including, the current month) is compared against the monthly target. The
surplus or deficit is carried into the current month: a credit lowers what is
still owed, a debt raises it. The target itself is never carried.

All functions are pure: "now" is always passed in.
"""

import datetime
from typing import Iterable, List, Optional, Tuple

from timeapp.domain.models import Project, TargetCalculation, TimeEntry
from timeapp.services.period_service import month_bounds

MonthInterval = Tuple[datetime.datetime, datetime.datetime]


def closed_months(first_month: Optional[MonthInterval],
                  current_month: MonthInterval) -> List[MonthInterval]:
    """Month intervals from `first_month` up to `current_month` (exclusive)"""
    if first_month is None:
        return []

    months = []
    month = first_month
    while month[0] < current_month[0]:
        months.append(month)
        month = month_bounds(month[1])
    return months


def hours_in(month: MonthInterval, entries: Iterable[TimeEntry]) -> float:
    """Hours of completed entries that started inside `month`"""
    start, end = month
    return sum(
        e.completed_seconds / 3600.0
        for e in entries
        if start <= e.started_at < end
    )


def calculate_target(monthly_target: Optional[float], entries: Iterable[TimeEntry],
                     now: datetime.datetime) -> Optional[TargetCalculation]:
    """
    Compute the target standing for the month containing `now`.

    Returns:
        None when no target is set (None or <= 0), otherwise the calculation.
    """
    if monthly_target is None or monthly_target <= 0:
        return None

    completed = [e for e in entries if not e.is_running]
    current_month = month_bounds(now)

    first_month = None
    if completed:
        first_month = month_bounds(min(e.started_at for e in completed))

    months = closed_months(first_month, current_month)
    realized_closed = sum(hours_in(month, completed) for month in months)
    carry = realized_closed - monthly_target * len(months)

    credit = max(0.0, carry)
    debt = max(0.0, -carry)

    realized_current = hours_in(current_month, completed)
    target_current = monthly_target

    remaining = max(0.0, (target_current - realized_current - credit) + debt)
    status = (realized_current - target_current) + carry

    return TargetCalculation(
        monthly_target=monthly_target,
        realized_current_month=realized_current,
        target_current_month=target_current,
        carry_previous_months=carry,
        remaining_this_month=remaining,
        status_this_month=status,
        number_of_closed_months=len(months)
    )


def compute_target(project: Project, entries: Iterable[TimeEntry],
                   now: datetime.datetime) -> Optional[TargetCalculation]:
    """Target standing of `project`; entries of other projects are ignored"""
    if not project.has_target:
        return None
    if project.id is not None:
        entries = [e for e in entries if e.project_id == project.id]
    return calculate_target(project.monthly_target_hours, entries, now)

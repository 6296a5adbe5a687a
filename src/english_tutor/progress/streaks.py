"""Practice-day streak reconstruction from sparse active days."""

from collections.abc import Iterable
from datetime import date, datetime

from english_tutor.clock import day_before, utc_day, utc_now
from english_tutor.models.progress import StreakRecord


def _unique_days_descending(active_days: Iterable[datetime | date]) -> list[date]:
    return sorted({utc_day(d) for d in active_days}, reverse=True)


def current_streak(days: list[date], today: date) -> int:
    """Consecutive days ending today or yesterday.

    Args:
        days: Distinct active days, most recent first.
        today: Current UTC day.
    """
    if not days or days[0] not in (today, day_before(today)):
        return 0
    streak = 1
    for previous, day in zip(days, days[1:]):
        if day != day_before(previous):
            break
        streak += 1
    return streak


def longest_streak(days: list[date]) -> int:
    """Longest run of consecutive days anywhere in ``days``."""
    if not days:
        return 0
    longest = run = 1
    for previous, day in zip(days, days[1:]):
        if day == day_before(previous):
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def compute_streak(
    active_days: Iterable[datetime | date],
    today_minutes: int,
    daily_goal_minutes: int,
    now: datetime | None = None,
) -> StreakRecord:
    """Build the streak record for a user.

    Args:
        active_days: Days with at least one completed session, normally
            most recent first; order and duplicates are normalized here.
        today_minutes: Minutes practiced during the current UTC day.
        daily_goal_minutes: The user's daily goal.
        now: Reference time, defaults to the current time.

    Returns:
        Current and longest streak plus today's goal progress.
    """
    today = utc_day(now or utc_now())
    days = _unique_days_descending(active_days)
    today_minutes = max(0, today_minutes)

    current = current_streak(days, today)
    return StreakRecord(
        current_streak=current,
        longest_streak=max(longest_streak(days), current),
        today_minutes=today_minutes,
        daily_goal_minutes=daily_goal_minutes,
        daily_goal_met=today_minutes >= daily_goal_minutes,
    )

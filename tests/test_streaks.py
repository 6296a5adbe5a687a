"""Tests for streak reconstruction."""

from datetime import UTC, date, datetime, timedelta, timezone

from english_tutor.progress.streaks import compute_streak, current_streak, longest_streak

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
TODAY = NOW.date()


def _days_ago(*offsets: int) -> list[date]:
    return [TODAY - timedelta(days=n) for n in offsets]


class TestComputeStreak:
    def test_run_ending_today(self):
        record = compute_streak(_days_ago(0, 1, 2, 5), 0, 15, now=NOW)
        assert record.current_streak == 3
        assert record.longest_streak == 3

    def test_run_ending_yesterday_still_counts(self):
        record = compute_streak(_days_ago(1, 2), 0, 15, now=NOW)
        assert record.current_streak == 2

    def test_broken_streak(self):
        record = compute_streak(_days_ago(3), 0, 15, now=NOW)
        assert record.current_streak == 0
        assert record.longest_streak == 1

    def test_no_activity(self):
        record = compute_streak([], 0, 15, now=NOW)
        assert record.current_streak == 0
        assert record.longest_streak == 0
        assert record.daily_goal_met is False

    def test_longest_from_history(self):
        record = compute_streak(_days_ago(0, 10, 11, 12, 13, 14), 0, 15, now=NOW)
        assert record.current_streak == 1
        assert record.longest_streak == 5

    def test_unsorted_and_duplicate_days(self):
        days = _days_ago(2, 0, 1, 0, 1)
        record = compute_streak(days, 0, 15, now=NOW)
        assert record.current_streak == 3
        assert record.longest_streak == 3

    def test_timestamps_use_utc_day(self):
        # 23:30 in UTC-5 on the 16th is already the 17th in UTC
        late_evening = datetime(2026, 10, 16, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        record = compute_streak([late_evening], 0, 15, now=NOW)
        assert record.current_streak == 1

    def test_goal_met(self):
        record = compute_streak(_days_ago(0), 20, 15, now=NOW)
        assert record.today_minutes == 20
        assert record.daily_goal_minutes == 15
        assert record.daily_goal_met is True

    def test_goal_exactly_met(self):
        assert compute_streak(_days_ago(0), 15, 15, now=NOW).daily_goal_met is True

    def test_goal_not_met(self):
        assert compute_streak(_days_ago(0), 14, 15, now=NOW).daily_goal_met is False

    def test_longest_never_below_current(self):
        record = compute_streak(_days_ago(0, 1, 2, 3), 0, 15, now=NOW)
        assert record.longest_streak >= record.current_streak


class TestStreakHelpers:
    def test_current_streak_from_descending_days(self):
        assert current_streak(_days_ago(0, 1, 2), TODAY) == 3

    def test_current_streak_gap_stops_count(self):
        assert current_streak(_days_ago(0, 2, 3), TODAY) == 1

    def test_longest_streak(self):
        assert longest_streak(_days_ago(0, 1, 4, 5, 6)) == 3

    def test_longest_streak_empty(self):
        assert longest_streak([]) == 0

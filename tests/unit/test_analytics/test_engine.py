"""Tests for the pure analytics functions."""

import random
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from src.analytics.engine import (
    CategoryCount,
    average_per_user,
    compute_stats,
    goal_progress,
    inactive_users,
    streak,
    today_count,
    top_categories,
    window_average,
    window_total,
)
from src.storage.models import User, UserSettings

UTC = timezone.utc
NOW = datetime(2024, 3, 6, 12, 0, tzinfo=UTC)


def entry(created_at: datetime, category=None) -> SimpleNamespace:
    return SimpleNamespace(created_at=created_at, category=category)


def days_ago(n: int, hour: int = 10) -> datetime:
    return (NOW - timedelta(days=n)).replace(hour=hour)


class TestNoEntries:
    """A user with nothing logged."""

    def test_everything_is_zero(self) -> None:
        stats = compute_stats([], NOW, UTC)
        assert stats.total == 0
        assert stats.today == 0
        assert stats.streak == 0
        assert stats.week_total == 0
        assert stats.week_average == 0.0
        assert stats.month_total == 0
        assert stats.top_categories == []
        assert stats.goal_progress is None


class TestStreak:
    """Consecutive-day streak."""

    def test_three_consecutive_days_including_today(self) -> None:
        entries = [entry(days_ago(0)), entry(days_ago(1)), entry(days_ago(2))]
        assert streak(entries, NOW, UTC) == 3

    def test_empty_today_counts_from_yesterday(self) -> None:
        """An empty today does not break a running streak."""
        entries = [entry(days_ago(1)), entry(days_ago(2))]
        assert streak(entries, NOW, UTC) == 2

    def test_gap_ends_streak(self) -> None:
        entries = [entry(days_ago(0)), entry(days_ago(2)), entry(days_ago(3))]
        assert streak(entries, NOW, UTC) == 1

    def test_nothing_today_or_yesterday(self) -> None:
        entries = [entry(days_ago(2)), entry(days_ago(3))]
        assert streak(entries, NOW, UTC) == 0

    def test_multiple_entries_same_day_count_once(self) -> None:
        entries = [entry(days_ago(0, hour)) for hour in (8, 9, 10)]
        assert streak(entries, NOW, UTC) == 1

    def test_uses_user_timezone(self) -> None:
        """Day boundaries are local to the user."""
        tokyo = ZoneInfo("Asia/Tokyo")
        # 16:00 UTC is already the next day in Tokyo.
        entries = [
            entry(datetime(2024, 3, 5, 16, 0, tzinfo=UTC)),
            entry(datetime(2024, 3, 5, 10, 0, tzinfo=UTC)),
        ]
        assert streak(entries, NOW, tokyo) == 2
        assert streak(entries, NOW, UTC) == 1


class TestTodayAndGoal:
    def test_today_count(self) -> None:
        entries = [entry(days_ago(0, 1)), entry(days_ago(0, 11)), entry(days_ago(1))]
        assert today_count(entries, NOW, UTC) == 2

    @pytest.mark.parametrize(
        "count,goal,expected",
        [
            (3, 5, 60),
            (7, 5, 100),
            (0, 5, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),
            (5, 5, 100),
        ],
    )
    def test_goal_progress(self, count: int, goal: int, expected: int) -> None:
        assert goal_progress(count, goal) == expected

    def test_no_goal(self) -> None:
        assert goal_progress(3, None) is None

    def test_goal_reached_flag(self) -> None:
        entries = [entry(days_ago(0, h)) for h in (8, 9)]
        assert compute_stats(entries, NOW, UTC, goal=2).goal_reached
        assert not compute_stats(entries, NOW, UTC, goal=3).goal_reached
        assert not compute_stats(entries, NOW, UTC).goal_reached


class TestWindows:
    def test_week_total_and_average(self) -> None:
        entries = [entry(days_ago(n)) for n in (0, 1, 3, 6, 8, 20)]
        assert window_total(entries, NOW, 7) == 4
        assert window_average(entries, NOW, 7) == pytest.approx(4 / 7)
        assert window_total(entries, NOW, 30) == 6

    def test_order_independent(self) -> None:
        """Shuffling the input never changes the totals."""
        entries = [entry(days_ago(n)) for n in (0, 1, 2, 5, 9, 12)]
        shuffled = list(entries)
        random.Random(3).shuffle(shuffled)
        assert window_total(shuffled, NOW, 7) == window_total(entries, NOW, 7)
        assert compute_stats(shuffled, NOW, UTC) == compute_stats(entries, NOW, UTC)

    def test_zero_day_window(self) -> None:
        assert window_average([entry(NOW)], NOW, 0) == 0.0


class TestTopCategories:
    def test_count_descending_ties_by_first_appearance(self) -> None:
        entries = [
            entry(NOW, "Science"),
            entry(NOW, "Language"),
            entry(NOW, "Language"),
            entry(NOW, "Business"),
            entry(NOW, "Science"),
            entry(NOW, None),
        ]
        assert top_categories(entries) == [
            CategoryCount("Science", 2),
            CategoryCount("Language", 2),
            CategoryCount("Business", 1),
        ]

    def test_limit(self) -> None:
        entries = [entry(NOW, c) for c in ("A", "B", "C", "D")]
        assert len(top_categories(entries, limit=2)) == 2


class TestUserAggregates:
    def test_inactive_users_skips_active_and_muted(self) -> None:
        users = [
            User(user_id=1),
            User(user_id=2),
            User(user_id=3, settings=UserSettings(notifications=False)),
        ]
        result = inactive_users(users, active_ids={2})
        assert [u.user_id for u in result] == [1]

    def test_average_per_user(self) -> None:
        assert average_per_user(10, 4) == 2.5

    def test_average_per_user_without_users(self) -> None:
        assert average_per_user(10, 0) == 0.0

"""Streaks, goal progress and aggregate statistics over diary entries."""

from .engine import (
    CategoryCount,
    UserStats,
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
from .service import AnalyticsService

__all__ = [
    "AnalyticsService",
    "CategoryCount",
    "UserStats",
    "average_per_user",
    "compute_stats",
    "goal_progress",
    "inactive_users",
    "streak",
    "today_count",
    "top_categories",
    "window_average",
    "window_total",
]

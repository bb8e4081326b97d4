"""Pure analytics over diary entries.

Every function here depends only on its arguments: the entries (anything
with ``created_at`` and ``category``), the user's timezone and the caller's
``now``. Nothing is read from storage and no entry is modified.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from ..storage.models import User


class _Timestamped(Protocol):
    created_at: datetime
    category: Optional[str]


@dataclass(frozen=True)
class CategoryCount:
    """Number of entries in one category."""

    name: str
    count: int


@dataclass
class UserStats:
    """Snapshot of how a user is doing at ``now``."""

    total: int = 0
    today: int = 0
    streak: int = 0
    week_total: int = 0
    week_average: float = 0.0
    month_total: int = 0
    month_average: float = 0.0
    goal: Optional[int] = None
    goal_progress: Optional[int] = None
    top_categories: List[CategoryCount] = field(default_factory=list)

    @property
    def goal_reached(self) -> bool:
        return self.goal is not None and self.today >= self.goal


def _local_date(moment: datetime, tz: tzinfo) -> date:
    return moment.astimezone(tz).date()


def today_count(entries: Iterable[_Timestamped], now: datetime, tz: tzinfo) -> int:
    """Entries whose local date equals ``now``'s local date."""
    today = _local_date(now, tz)
    return sum(1 for e in entries if _local_date(e.created_at, tz) == today)


def goal_progress(count: int, goal: Optional[int]) -> Optional[int]:
    """Percentage of the daily goal reached, capped at 100.

    Returns ``None`` when no goal is set. Halves round up.
    """
    if not goal or goal <= 0:
        return None
    return min(100, int(count * 100 / goal + 0.5))


def streak(entries: Iterable[_Timestamped], now: datetime, tz: tzinfo) -> int:
    """Consecutive days with at least one entry, walking back from today.

    An empty today does not break the streak: the walk then starts from
    yesterday.
    """
    days: Set[date] = {_local_date(e.created_at, tz) for e in entries}
    if not days:
        return 0

    cursor = _local_date(now, tz)
    if cursor not in days:
        cursor -= timedelta(days=1)

    count = 0
    while cursor in days:
        count += 1
        cursor -= timedelta(days=1)
    return count


def window_total(entries: Iterable[_Timestamped], now: datetime, days: int) -> int:
    """Entries created at or after ``now - days``."""
    since = now - timedelta(days=days)
    return sum(1 for e in entries if e.created_at >= since)


def window_average(entries: Iterable[_Timestamped], now: datetime, days: int) -> float:
    """Simple per-day mean over the window, not adjusted for account age."""
    if days <= 0:
        return 0.0
    return window_total(entries, now, days) / days


def top_categories(
    entries: Iterable[_Timestamped], limit: int = 5
) -> List[CategoryCount]:
    """Most used categories, highest count first.

    Ties keep the order in which categories first appear in ``entries``.
    """
    counts = Counter(e.category for e in entries if e.category)
    return [CategoryCount(name, n) for name, n in counts.most_common(limit)]


def inactive_users(users: Iterable[User], active_ids: Set[int]) -> List[User]:
    """Users with notifications on who have not logged anything today."""
    return [
        u for u in users if u.settings.notifications and u.user_id not in active_ids
    ]


def average_per_user(total: int, user_count: int) -> float:
    if user_count <= 0:
        return 0.0
    return total / user_count


def compute_stats(
    entries: Sequence[_Timestamped],
    now: datetime,
    tz: tzinfo,
    goal: Optional[int] = None,
    category_limit: int = 5,
) -> UserStats:
    """Bundle every per-user metric for one ``now``."""
    today = today_count(entries, now, tz)
    return UserStats(
        total=len(entries),
        today=today,
        streak=streak(entries, now, tz),
        week_total=window_total(entries, now, 7),
        week_average=window_average(entries, now, 7),
        month_total=window_total(entries, now, 30),
        month_average=window_average(entries, now, 30),
        goal=goal,
        goal_progress=goal_progress(today, goal),
        top_categories=top_categories(entries, category_limit),
    )

"""Analytics service -- reads from the entry store, computes with the engine."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from ..storage.models import User
from ..storage.store import EntryStore, day_bounds
from .engine import UserStats, average_per_user, compute_stats, inactive_users


@dataclass
class GlobalStats:
    """Bot-wide numbers for admins."""

    users: int
    week_entries: int
    week_average_per_user: float


class AnalyticsService:
    """Answer "how is this user doing" from stored entries.

    Read-only: never creates users or touches activity timestamps.
    """

    def __init__(
        self,
        store: EntryStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def user_stats(self, user_id: int, now: Optional[datetime] = None) -> UserStats:
        """Compute stats for one user as of ``now``."""
        now = now or self._clock()
        user = await self._store.get_user(user_id)
        if user is None:
            return UserStats()
        entries = await self._store.get_all_entries(user_id)
        return compute_stats(
            entries,
            now,
            ZoneInfo(user.settings.timezone),
            goal=user.daily_goal,
        )

    async def inactive_today(
        self,
        now: Optional[datetime] = None,
        users: Optional[Iterable[User]] = None,
    ) -> List[User]:
        """Users with notifications on and no entry since their start of day.

        Start of day is taken per timezone, so users are grouped by it.
        """
        now = now or self._clock()
        if users is None:
            users = await self._store.get_all_users()

        by_tz: Dict[str, List[User]] = {}
        for user in users:
            by_tz.setdefault(user.settings.timezone, []).append(user)

        result: List[User] = []
        for tz_name, group in by_tz.items():
            start, _ = day_bounds(now, ZoneInfo(tz_name))
            active = await self._store.get_user_ids_with_entries_since(start)
            result.extend(inactive_users(group, active))
        return result

    async def global_stats(self, now: Optional[datetime] = None) -> GlobalStats:
        now = now or self._clock()
        users = await self._store.count_users()
        week_entries = await self._store.count_entries_since(now - timedelta(days=7))
        return GlobalStats(
            users=users,
            week_entries=week_entries,
            week_average_per_user=average_per_user(week_entries, users),
        )

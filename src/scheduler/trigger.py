"""ScheduleTrigger -- hourly tick that fires weekly reviews and nudges.

Each tick walks every user and compares their configured review slot
``(quiz_day, quiz_time)`` with the current local weekday and hour. Work for
one user is isolated: a failing store read or AI call is logged and the loop
moves on.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

import structlog

from ..analytics.service import AnalyticsService
from ..conversation.state import ConversationStateStore
from ..events.bus import EventBus
from ..events.types import NudgeEvent, WeeklyReviewEvent
from ..llm.summarizer import AISummarizer
from ..storage.models import User
from ..storage.store import EntryStore

logger = structlog.get_logger()

REVIEW_WINDOW = timedelta(days=7)


def sunday_first_weekday(moment: datetime) -> int:
    """Weekday with Sunday as 0, matching ``User.quiz_day``."""
    return moment.isoweekday() % 7


@dataclass
class TickResult:
    """What one tick did."""

    reviews: int = 0
    nudges: int = 0
    failures: int = 0
    deleted_entries: int = 0


class ScheduleTrigger:
    """Job body invoked once per scheduler interval."""

    def __init__(
        self,
        store: EntryStore,
        analytics: AnalyticsService,
        summarizer: AISummarizer,
        event_bus: EventBus,
        nudge_hour: Optional[int] = 19,
        retention_days: int = 0,
        conversation_states: Optional[ConversationStateStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._analytics = analytics
        self._summarizer = summarizer
        self._event_bus = event_bus
        self._nudge_hour = nudge_hour
        self._retention_days = retention_days
        self._states = conversation_states
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        # user_id -> (kind -> local slot already fired)
        self._fired: Dict[int, Dict[str, Tuple[date, int]]] = {}
        self._last_cleanup: Optional[date] = None

    async def on_tick(self, now: Optional[datetime] = None) -> TickResult:
        """Run one scheduling pass."""
        now = now or self._clock()
        result = TickResult()

        try:
            users = await self._store.get_all_users()
        except Exception:
            logger.exception("Scheduler could not load users")
            result.failures += 1
            return result

        nudge_candidates = []
        for user in users:
            try:
                local = now.astimezone(ZoneInfo(user.settings.timezone))
                if self._is_review_slot(user, local) and self._claim(user, "review", local):
                    if await self._weekly_review(user, now):
                        result.reviews += 1
                if (
                    self._nudge_hour is not None
                    and local.hour == self._nudge_hour
                    and user.settings.notifications
                ):
                    nudge_candidates.append(user)
            except Exception:
                result.failures += 1
                logger.exception("Weekly review failed", user_id=user.user_id)

        if nudge_candidates:
            await self._send_nudges(nudge_candidates, now, result)

        await self._maintenance(now, result)

        logger.info(
            "Scheduler tick",
            users=len(users),
            reviews=result.reviews,
            nudges=result.nudges,
            failures=result.failures,
        )
        return result

    async def job_callback(self, context: Any) -> None:
        """``telegram.ext.JobQueue`` callback."""
        await self.on_tick()

    def schedule(self, job_queue: Any, interval_seconds: int = 3600) -> None:
        """Register the tick on a python-telegram-bot JobQueue."""
        now = self._clock()
        next_hour = (now + timedelta(hours=1)).replace(minute=0, second=5, microsecond=0)
        job_queue.run_repeating(
            self.job_callback,
            interval=interval_seconds,
            first=(next_hour - now).total_seconds(),
            name="diary-scheduler",
        )
        logger.info("Scheduler registered", interval=interval_seconds)

    # --- internals ---

    @staticmethod
    def _is_review_slot(user: User, local: datetime) -> bool:
        return (user.quiz_day, user.quiz_time) == (
            sunday_first_weekday(local),
            local.hour,
        )

    def _claim(self, user: User, kind: str, local: datetime) -> bool:
        """Mark the local hour slot as fired; False if it already was."""
        slot = (local.date(), local.hour)
        fired = self._fired.setdefault(user.user_id, {})
        if fired.get(kind) == slot:
            return False
        fired[kind] = slot
        return True

    async def _weekly_review(self, user: User, now: datetime) -> bool:
        entries = await self._store.get_entries_in_range(
            user.user_id, now - REVIEW_WINDOW, now
        )
        if not entries:
            logger.debug("No entries for weekly review", user_id=user.user_id)
            return False
        summary = await self._summarizer.generate_analysis(entries, "summary")
        await self._event_bus.publish(
            WeeklyReviewEvent(
                user_id=user.user_id,
                summary=summary,
                entry_count=len(entries),
            )
        )
        return True

    async def _send_nudges(self, candidates: list, now: datetime, result: TickResult) -> None:
        try:
            inactive = await self._analytics.inactive_today(now, users=candidates)
        except Exception:
            result.failures += 1
            logger.exception("Could not determine inactive users")
            return

        for user in inactive:
            try:
                local = now.astimezone(ZoneInfo(user.settings.timezone))
                if not self._claim(user, "nudge", local):
                    continue
                stats = await self._analytics.user_stats(user.user_id, now)
                text = self._summarizer.motivational_message("nudge", streak=stats.streak)
                await self._event_bus.publish(
                    NudgeEvent(user_id=user.user_id, text=text, streak=stats.streak)
                )
                result.nudges += 1
            except Exception:
                result.failures += 1
                logger.exception("Nudge failed", user_id=user.user_id)

    async def _maintenance(self, now: datetime, result: TickResult) -> None:
        if self._states is not None:
            purged = self._states.purge_expired()
            if purged:
                logger.info("Expired conversations purged", count=purged)

        if self._retention_days <= 0 or self._last_cleanup == now.date():
            return
        try:
            result.deleted_entries = await self._store.delete_entries_before(
                now - timedelta(days=self._retention_days)
            )
            self._last_cleanup = now.date()
        except Exception:
            result.failures += 1
            logger.exception("Retention cleanup failed")

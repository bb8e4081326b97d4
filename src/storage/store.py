"""Entry store -- user and diary entry data access."""

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Set
from zoneinfo import ZoneInfo

import structlog

from ..exceptions import ValidationError
from .database import DatabaseManager
from .models import Entry, EntryOptions, User, UserSettings, format_timestamp

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def day_bounds(now: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` of ``now``'s calendar day in ``tz``."""
    local = now.astimezone(tz)
    start = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


class EntryStore:
    """User settings and append-only entry log.

    Every method is a single atomic call; no multi-call transactions are
    exposed.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        clock: Optional[Clock] = None,
        default_settings: Optional[UserSettings] = None,
        default_quiz_day: int = 0,
        default_quiz_time: int = 20,
    ) -> None:
        self.db = db_manager
        self._clock = clock or _utcnow
        self._default_settings = default_settings or UserSettings()
        self._default_quiz_day = default_quiz_day
        self._default_quiz_time = default_quiz_time

    # --- users ---

    async def find_or_create_user(self, user_id: int) -> User:
        """Create the user if absent; otherwise only bump last_active_at."""
        now = format_timestamp(self._clock())
        async with self.db.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO users (
                    user_id, quiz_day, quiz_time, joined_at, last_active_at,
                    settings_json
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    last_active_at = excluded.last_active_at
                """,
                (
                    user_id,
                    self._default_quiz_day,
                    self._default_quiz_time,
                    now,
                    now,
                    self._default_settings.model_dump_json(),
                ),
            )
            await conn.commit()
            cursor = await conn.execute(
                "SELECT * FROM users WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return User.from_row(row)

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get a user by id."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM users WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return User.from_row(row) if row else None

    async def get_all_users(self) -> List[User]:
        """Get every registered user."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM users ORDER BY user_id")
            rows = await cursor.fetchall()
            return [User.from_row(row) for row in rows]

    async def count_users(self) -> int:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM users")
            row = await cursor.fetchone()
            return row[0]

    async def set_quiz_time(self, user_id: int, day: int, hour: int) -> None:
        """Set the weekly review slot (day 0 = Sunday, hour 0-23)."""
        if not 0 <= day <= 6:
            raise ValidationError("Day must be between 0 and 6", field="day")
        if not 0 <= hour <= 23:
            raise ValidationError("Hour must be between 0 and 23", field="hour")
        async with self.db.get_connection() as conn:
            await conn.execute(
                "UPDATE users SET quiz_day = ?, quiz_time = ? WHERE user_id = ?",
                (day, hour, user_id),
            )
            await conn.commit()
        logger.info("Quiz time set", user_id=user_id, day=day, hour=hour)

    async def set_user_goal(self, user_id: int, goal: Optional[int]) -> None:
        """Set or clear (``None``) the daily entry goal."""
        if goal is not None and not 1 <= goal <= 50:
            raise ValidationError("Goal must be between 1 and 50", field="goal")
        async with self.db.get_connection() as conn:
            await conn.execute(
                "UPDATE users SET daily_goal = ? WHERE user_id = ?",
                (goal, user_id),
            )
            await conn.commit()
        logger.info("Daily goal set", user_id=user_id, goal=goal)

    async def get_user_goal(self, user_id: int) -> Optional[int]:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT daily_goal FROM users WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return row[0] if row else None

    async def update_settings(self, user_id: int, **changes: object) -> UserSettings:
        """Merge ``changes`` into the user's settings and return the result."""
        user = await self.get_user(user_id)
        current = user.settings if user else self._default_settings
        updated = current.model_copy(update=changes)
        async with self.db.get_connection() as conn:
            await conn.execute(
                "UPDATE users SET settings_json = ? WHERE user_id = ?",
                (updated.model_dump_json(), user_id),
            )
            await conn.commit()
        return updated

    # --- entries ---

    async def add_entry(
        self,
        user_id: int,
        content: str,
        options: Optional[EntryOptions] = None,
        *,
        work: Optional[str] = None,
        learn: Optional[str] = None,
        blockers: Optional[str] = None,
    ) -> Entry:
        """Append an entry. ``created_at`` is assigned here."""
        content = (content or "").strip()
        if not content:
            raise ValidationError("Entry content must not be empty", field="content")
        options = options or EntryOptions()
        created_at = self._clock()

        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO entries (
                    user_id, content, category, created_at, difficulty,
                    confidence, tags_json, source, is_ai_generated,
                    work, learn, blockers
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    content,
                    options.category,
                    format_timestamp(created_at),
                    options.difficulty,
                    options.confidence,
                    json.dumps(options.tags, ensure_ascii=False),
                    options.source,
                    int(options.is_ai_generated),
                    work,
                    learn,
                    blockers,
                ),
            )
            await conn.commit()
            entry_id = cursor.lastrowid

        logger.info(
            "Entry added",
            user_id=user_id,
            entry_id=entry_id,
            category=options.category,
            source=options.source,
        )
        return Entry(
            id=entry_id,
            user_id=user_id,
            content=content,
            category=options.category,
            created_at=created_at,
            difficulty=options.difficulty,
            confidence=options.confidence,
            tags=options.tags,
            source=options.source,
            is_ai_generated=options.is_ai_generated,
            work=work,
            learn=learn,
            blockers=blockers,
        )

    async def add_log(
        self, user_id: int, work: str, learn: str, blockers: str
    ) -> Entry:
        """Store a work log as one entry carrying all three answers."""
        content = f"Worked on: {work}\nLearned: {learn}\nBlockers: {blockers}"
        return await self.add_entry(
            user_id,
            content,
            EntryOptions.build(source="log"),
            work=work,
            learn=learn,
            blockers=blockers,
        )

    async def get_entries_in_range(
        self, user_id: int, start: datetime, end: datetime
    ) -> List[Entry]:
        """Entries with ``start <= created_at <= end``, oldest first."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM entries
                WHERE user_id = ? AND created_at >= ? AND created_at <= ?
                ORDER BY created_at ASC, id ASC
                """,
                (user_id, format_timestamp(start), format_timestamp(end)),
            )
            rows = await cursor.fetchall()
            return [Entry.from_row(row) for row in rows]

    async def get_all_entries(self, user_id: int) -> List[Entry]:
        """Every entry of a user, oldest first."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM entries WHERE user_id = ? ORDER BY created_at, id",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [Entry.from_row(row) for row in rows]

    async def get_today_count(
        self, user_id: int, now: Optional[datetime] = None, tz: str = "UTC"
    ) -> int:
        """Number of entries created during ``now``'s day in ``tz``."""
        start, end = day_bounds(now or self._clock(), ZoneInfo(tz))
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT COUNT(*) FROM entries
                WHERE user_id = ? AND created_at >= ? AND created_at < ?
                """,
                (user_id, format_timestamp(start), format_timestamp(end)),
            )
            row = await cursor.fetchone()
            return row[0]

    async def search_entries(
        self, user_id: int, query: str, limit: int = 50
    ) -> List[Entry]:
        """Case-insensitive substring match on content and tags, newest first."""
        query = query.strip()
        if not query:
            return []
        needle = query.casefold()
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM entries
                WHERE user_id = ?
                  AND (instr(casefold(content), ?) > 0
                       OR instr(casefold(tags_json), ?) > 0)
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, needle, needle, limit),
            )
            rows = await cursor.fetchall()
            return [Entry.from_row(row) for row in rows]

    async def get_user_ids_with_entries_since(self, since: datetime) -> Set[int]:
        """Ids of users who logged at least one entry at or after ``since``."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT DISTINCT user_id FROM entries WHERE created_at >= ?",
                (format_timestamp(since),),
            )
            rows = await cursor.fetchall()
            return {row[0] for row in rows}

    async def count_entries_since(self, since: datetime) -> int:
        """Entries across all users created at or after ``since``."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM entries WHERE created_at >= ?",
                (format_timestamp(since),),
            )
            row = await cursor.fetchone()
            return row[0]

    async def delete_entries_before(self, cutoff: datetime) -> int:
        """Retention cleanup: drop entries older than ``cutoff``."""
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM entries WHERE created_at < ?",
                (format_timestamp(cutoff),),
            )
            await conn.commit()
            deleted = cursor.rowcount
        if deleted:
            logger.info("Retention cleanup", deleted=deleted)
        return deleted

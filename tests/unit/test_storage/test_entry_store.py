"""Tests for EntryStore against a temporary SQLite database."""

from datetime import datetime, timedelta, timezone

import pytest

from src.exceptions import ValidationError
from src.storage.database import DatabaseManager
from src.storage.models import EntryOptions, UserSettings
from src.storage.store import EntryStore


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 6, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
async def db(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'diary.db'}")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def store(db: DatabaseManager, clock: FakeClock) -> EntryStore:
    return EntryStore(db, clock=clock)


class TestUsers:
    """User creation and settings."""

    async def test_find_or_create_uses_defaults(self, store: EntryStore) -> None:
        """New users get the default review slot and no goal."""
        user = await store.find_or_create_user(42)
        assert user.user_id == 42
        assert user.quiz_day == 0
        assert user.quiz_time == 20
        assert user.daily_goal is None
        assert user.settings.notifications is True
        assert user.settings.timezone == "UTC"

    async def test_second_call_only_bumps_last_active(
        self, store: EntryStore, clock: FakeClock
    ) -> None:
        """Existing users keep their data, only last_active_at moves."""
        first = await store.find_or_create_user(42)
        await store.set_quiz_time(42, 3, 18)
        clock.advance(hours=2)

        again = await store.find_or_create_user(42)

        assert again.joined_at == first.joined_at
        assert again.last_active_at == clock.now
        assert (again.quiz_day, again.quiz_time) == (3, 18)
        assert await store.count_users() == 1

    async def test_configured_defaults(self, db: DatabaseManager, clock) -> None:
        """Store-level defaults apply to newly created users."""
        store = EntryStore(
            db,
            clock=clock,
            default_settings=UserSettings(timezone="Europe/Berlin"),
            default_quiz_day=5,
            default_quiz_time=9,
        )
        user = await store.find_or_create_user(7)
        assert user.settings.timezone == "Europe/Berlin"
        assert (user.quiz_day, user.quiz_time) == (5, 9)

    async def test_get_user_missing(self, store: EntryStore) -> None:
        assert await store.get_user(999) is None

    async def test_set_quiz_time_rejects_out_of_range(self, store: EntryStore) -> None:
        """Invalid day or hour raises without writing."""
        await store.find_or_create_user(42)
        with pytest.raises(ValidationError) as exc:
            await store.set_quiz_time(42, 3, 24)
        assert exc.value.field == "hour"
        with pytest.raises(ValidationError):
            await store.set_quiz_time(42, 7, 10)
        user = await store.get_user(42)
        assert (user.quiz_day, user.quiz_time) == (0, 20)

    async def test_goal_set_and_clear(self, store: EntryStore) -> None:
        await store.find_or_create_user(42)
        await store.set_user_goal(42, 5)
        assert await store.get_user_goal(42) == 5
        await store.set_user_goal(42, None)
        assert await store.get_user_goal(42) is None

    @pytest.mark.parametrize("goal", [0, 51, -3])
    async def test_goal_out_of_range(self, store: EntryStore, goal: int) -> None:
        await store.find_or_create_user(42)
        with pytest.raises(ValidationError):
            await store.set_user_goal(42, goal)

    async def test_update_settings_merges(self, store: EntryStore) -> None:
        """Unmentioned settings keep their values."""
        await store.find_or_create_user(42)
        await store.update_settings(42, timezone="Asia/Tokyo")
        updated = await store.update_settings(42, notifications=False)
        assert updated.timezone == "Asia/Tokyo"
        assert updated.notifications is False
        user = await store.get_user(42)
        assert user.settings == updated

    async def test_get_all_users(self, store: EntryStore) -> None:
        for uid in (3, 1, 2):
            await store.find_or_create_user(uid)
        users = await store.get_all_users()
        assert [u.user_id for u in users] == [1, 2, 3]


class TestEntries:
    """Appending and querying entries."""

    async def test_add_entry_assigns_timestamp(
        self, store: EntryStore, clock: FakeClock
    ) -> None:
        """created_at comes from the store clock and content is stripped."""
        entry = await store.add_entry(
            42,
            "  Learned about asyncio locks  ",
            EntryOptions(category="Tech/Programming", tags=["Python", "python"]),
        )
        assert entry.id > 0
        assert entry.content == "Learned about asyncio locks"
        assert entry.created_at == clock.now
        assert entry.tags == ["python"]

        stored = await store.get_all_entries(42)
        assert len(stored) == 1
        assert stored[0].created_at == clock.now
        assert stored[0].category == "Tech/Programming"
        assert stored[0].tags == ["python"]

    @pytest.mark.parametrize("content", ["", "   ", "\n"])
    async def test_add_entry_rejects_empty(self, store: EntryStore, content) -> None:
        with pytest.raises(ValidationError) as exc:
            await store.add_entry(42, content)
        assert exc.value.field == "content"
        assert await store.get_all_entries(42) == []

    async def test_add_log_composes_content(self, store: EntryStore) -> None:
        """A work log is one entry carrying all three answers."""
        entry = await store.add_log(42, "API refactor", "Pydantic v2", "none")
        assert entry.source == "log"
        assert entry.work == "API refactor"
        assert entry.learn == "Pydantic v2"
        assert entry.blockers == "none"
        assert "Worked on: API refactor" in entry.content
        assert "Learned: Pydantic v2" in entry.content
        assert "Blockers: none" in entry.content

    async def test_range_is_inclusive_and_ascending(
        self, store: EntryStore, clock: FakeClock
    ) -> None:
        """Both bounds are included; results are oldest first."""
        start = clock.now
        await store.add_entry(42, "first")
        clock.advance(hours=1)
        await store.add_entry(42, "second")
        clock.advance(hours=1)
        end = clock.now
        await store.add_entry(42, "third")
        clock.advance(hours=1)
        await store.add_entry(42, "outside")
        await store.add_entry(99, "other user")

        entries = await store.get_entries_in_range(42, start, end)

        assert [e.content for e in entries] == ["first", "second", "third"]

    async def test_today_count_respects_timezone(
        self, store: EntryStore, clock: FakeClock
    ) -> None:
        """Day boundaries follow the requested timezone."""
        clock.now = datetime(2024, 3, 6, 23, 30, tzinfo=timezone.utc)
        await store.add_entry(42, "late UTC entry")

        assert await store.get_today_count(42, clock.now, "UTC") == 1
        # Already March 7th in Tokyo; the entry counts there too.
        assert await store.get_today_count(42, clock.now, "Asia/Tokyo") == 1
        next_day = clock.now + timedelta(hours=1)
        assert await store.get_today_count(42, next_day, "UTC") == 0

    async def test_search_case_insensitive_newest_first(
        self, store: EntryStore, clock: FakeClock
    ) -> None:
        await store.add_entry(42, "Python decorators")
        clock.advance(minutes=5)
        await store.add_entry(42, "Went running", EntryOptions(tags=["python"]))
        clock.advance(minutes=5)
        await store.add_entry(42, "Learned PYTHON generators")
        await store.add_entry(42, "Rust ownership")

        results = await store.search_entries(42, "python")

        assert [e.content for e in results] == [
            "Learned PYTHON generators",
            "Went running",
            "Python decorators",
        ]

    async def test_search_escapes_wildcards(self, store: EntryStore) -> None:
        """% and _ in the query are matched literally."""
        await store.add_entry(42, "grew 50% faster")
        await store.add_entry(42, "grew 50 times")
        results = await store.search_entries(42, "50%")
        assert [e.content for e in results] == ["grew 50% faster"]

    async def test_search_non_ascii_content(self, store: EntryStore) -> None:
        await store.add_entry(42, "Привет мир")
        await store.add_entry(42, "Straße gelernt")

        assert [e.content for e in await store.search_entries(42, "привет")] == [
            "Привет мир"
        ]
        assert len(await store.search_entries(42, "МИР")) == 1
        assert len(await store.search_entries(42, "STRASSE")) == 1

    async def test_search_non_ascii_tags(self, store: EntryStore) -> None:
        await store.add_entry(42, "Espresso notes", EntryOptions(tags=["Café"]))

        for query in ("café", "CAFÉ"):
            results = await store.search_entries(42, query)
            assert [e.content for e in results] == ["Espresso notes"]
        [entry] = await store.get_all_entries(42)
        assert entry.tags == ["café"]

    async def test_search_blank_query(self, store: EntryStore) -> None:
        await store.add_entry(42, "anything")
        assert await store.search_entries(42, "   ") == []

    async def test_search_limit(self, store: EntryStore) -> None:
        for i in range(5):
            await store.add_entry(42, f"note {i}")
        assert len(await store.search_entries(42, "note", limit=2)) == 2


class TestAggregateQueries:
    """Cross-user queries used by analytics and the scheduler."""

    async def test_users_with_entries_since(
        self, store: EntryStore, clock: FakeClock
    ) -> None:
        await store.add_entry(1, "old")
        clock.advance(days=1)
        since = clock.now
        await store.add_entry(2, "fresh")
        await store.add_entry(3, "fresh too")

        assert await store.get_user_ids_with_entries_since(since) == {2, 3}
        assert await store.count_entries_since(since) == 2

    async def test_delete_entries_before(
        self, store: EntryStore, clock: FakeClock
    ) -> None:
        await store.add_entry(1, "old")
        clock.advance(days=10)
        await store.add_entry(1, "new")

        deleted = await store.delete_entries_before(clock.now - timedelta(days=1))

        assert deleted == 1
        assert [e.content for e in await store.get_all_entries(1)] == ["new"]

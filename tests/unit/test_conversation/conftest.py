"""Shared fixtures for conversation tests: real SQLite store, fake AI."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.analytics.service import AnalyticsService
from src.conversation.actions import DiaryActions
from src.conversation.machine import ConversationMachine
from src.conversation.state import ConversationStateStore
from src.llm.summarizer import AISummarizer
from src.storage.database import DatabaseManager
from src.storage.store import EntryStore

USER = 42


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
async def store(tmp_path, clock):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'diary.db'}")
    await manager.initialize()
    store = EntryStore(manager, clock=clock)
    await store.find_or_create_user(USER)
    yield store
    await manager.close()


@pytest.fixture
def summarizer() -> MagicMock:
    summarizer = MagicMock(spec=AISummarizer)
    summarizer.available = True
    summarizer.generate_follow_up = AsyncMock(return_value="Why does that matter?")
    summarizer.generate_analysis = AsyncMock(return_value="A fine week.")
    summarizer.get_next_question = AsyncMock(return_value=None)
    summarizer.suggest_category = AsyncMock(return_value=None)
    summarizer.generate_recommendations = AsyncMock(return_value="Try Rust.")
    summarizer.motivational_message = MagicMock(return_value="Keep going!")
    return summarizer


@pytest.fixture
def actions(store, summarizer, clock) -> DiaryActions:
    return DiaryActions(store, AnalyticsService(store, clock=clock), summarizer, clock=clock)


@pytest.fixture
def machine(store, summarizer, actions, clock) -> ConversationMachine:
    return ConversationMachine(
        store,
        summarizer,
        actions,
        states=ConversationStateStore(clock=clock),
        clock=clock,
    )

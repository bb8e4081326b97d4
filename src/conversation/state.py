"""Per-user conversation state and its in-memory keyed store."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger()


class FlowCommand(str, Enum):
    """Kinds of multi-step dialog."""

    LOG = "log"
    QUIZ_TIME = "quiztime"
    QUICK_LEARN = "quick_learn"
    WAITING_FOR_LEARNING = "waiting_for_learning"
    SEARCH = "search"
    CUSTOM_GOAL = "custom_goal"
    AI_CONVO = "ai_convo"
    INLINE_QUIZ = "inline_quiz"


@dataclass
class ConversationState:
    """An in-progress dialog for one user."""

    user_id: int
    command: FlowCommand
    step: int = 1
    data: Dict[str, Any] = field(default_factory=dict)
    history: List[Dict[str, str]] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationStateStore:
    """Mapping of user id to at most one active ConversationState.

    States live in process memory only; a restart drops every in-flight
    dialog. Idle states expire after ``ttl``.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=24),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._states: Dict[int, ConversationState] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def lock(self, user_id: int) -> asyncio.Lock:
        """Lock serialising message handling for one user."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def get(self, user_id: int) -> Optional[ConversationState]:
        state = self._states.get(user_id)
        if state and self._expired(state):
            logger.info(
                "Conversation expired",
                user_id=user_id,
                command=state.command.value,
                step=state.step,
            )
            del self._states[user_id]
            return None
        return state

    def start(
        self,
        user_id: int,
        command: FlowCommand,
        data: Optional[Dict[str, Any]] = None,
        step: int = 1,
    ) -> ConversationState:
        """Begin a flow, replacing whatever the user had open."""
        previous = self._states.get(user_id)
        if previous:
            logger.info(
                "Conversation replaced",
                user_id=user_id,
                previous=previous.command.value,
                command=command.value,
            )
        state = ConversationState(
            user_id=user_id,
            command=command,
            step=step,
            data=dict(data or {}),
            updated_at=self._clock(),
        )
        self._states[user_id] = state
        return state

    def save(self, state: ConversationState) -> None:
        """Store ``state`` after a step and refresh its idle timer."""
        state.updated_at = self._clock()
        self._states[state.user_id] = state

    def clear(self, user_id: int) -> Optional[ConversationState]:
        return self._states.pop(user_id, None)

    def purge_expired(self) -> int:
        """Drop every expired state and idle lock; returns states removed."""
        expired = [uid for uid, s in self._states.items() if self._expired(s)]
        for uid in expired:
            del self._states[uid]
        # Locks of users without a flow are recreated on their next message.
        idle = [
            uid
            for uid, lock in self._locks.items()
            if uid not in self._states and not lock.locked()
        ]
        for uid in idle:
            del self._locks[uid]
        return len(expired)

    def __contains__(self, user_id: object) -> bool:
        return isinstance(user_id, int) and self.get(user_id) is not None

    def __len__(self) -> int:
        return len(self._states)

    def _expired(self, state: ConversationState) -> bool:
        return self._clock() - state.updated_at > self._ttl

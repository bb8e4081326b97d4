"""Concrete event types for the event bus."""

from dataclasses import dataclass

from .bus import Event


@dataclass
class WeeklyReviewEvent(Event):
    """A user's weekly review slot came up and a summary is ready."""

    user_id: int = 0
    summary: str = ""
    entry_count: int = 0
    source: str = "scheduler"


@dataclass
class NudgeEvent(Event):
    """A user with notifications on has not logged anything today."""

    user_id: int = 0
    text: str = ""
    streak: int = 0
    source: str = "scheduler"

"""In-process event bus connecting the scheduler to notifications."""

from .bus import Event, EventBus
from .types import NudgeEvent, WeeklyReviewEvent

__all__ = ["Event", "EventBus", "NudgeEvent", "WeeklyReviewEvent"]

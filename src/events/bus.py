"""Minimal async publish/subscribe event bus."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Type

import structlog

logger = structlog.get_logger()


@dataclass
class Event:
    """Base event."""

    source: str = "unknown"
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_type(self) -> str:
        return type(self).__name__


EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """Deliver events to handlers subscribed to their type (or a base type)."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[Event], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[Event], handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: Type[Event], handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Event) -> None:
        """Run every matching handler; one failing handler does not stop the rest."""
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                try:
                    await handler(event)
                except Exception as exc:
                    logger.error(
                        "Event handler failed",
                        event_type=event.event_type,
                        event_id=event.id,
                        error=str(exc),
                    )

"""Per-user guided dialogs and the diary actions they trigger."""

from .actions import DiaryActions
from .base import Button, Reply
from .machine import ConversationMachine
from .state import ConversationState, ConversationStateStore, FlowCommand

__all__ = [
    "Button",
    "ConversationMachine",
    "ConversationState",
    "ConversationStateStore",
    "DiaryActions",
    "FlowCommand",
    "Reply",
]

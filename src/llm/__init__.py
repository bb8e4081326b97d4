"""AI collaborators: chat completion provider and diary summarizer."""

from .chat_provider import ChatProvider, ChatResponse
from .summarizer import AISummarizer

__all__ = ["AISummarizer", "ChatProvider", "ChatResponse"]

"""Persistent storage for users and diary entries."""

from .database import DatabaseManager
from .models import CATEGORIES, Entry, EntryOptions, User, UserSettings
from .store import EntryStore

__all__ = [
    "CATEGORIES",
    "DatabaseManager",
    "Entry",
    "EntryOptions",
    "EntryStore",
    "User",
    "UserSettings",
]

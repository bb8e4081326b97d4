"""Delivery of scheduled diary notifications to Telegram."""

from .diary_notifications import DiaryNotificationHandler

__all__ = ["DiaryNotificationHandler"]

"""Periodic weekly reviews and nudges."""

from .trigger import ScheduleTrigger, TickResult, sunday_first_weekday

__all__ = ["ScheduleTrigger", "TickResult", "sunday_first_weekday"]

"""Learning diary Telegram bot."""

__version__ = "0.3.0"

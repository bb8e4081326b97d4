"""Telegram transport adapter."""

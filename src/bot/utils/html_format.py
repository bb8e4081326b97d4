"""HTML helpers for Telegram's HTML parse mode."""

import html


def escape_html(text: str) -> str:
    """Escape ``&``, ``<`` and ``>`` for Telegram HTML messages."""
    return html.escape(text or "", quote=False)


def truncate(text: str, limit: int = 4000, suffix: str = "…") -> str:
    """Cut ``text`` to Telegram's message size limit."""
    if len(text) <= limit:
        return text
    return text[: limit - len(suffix)] + suffix

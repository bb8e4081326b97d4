"""Diary notification handler -- delivers scheduler events to Telegram.

Subscribes to WeeklyReviewEvent and NudgeEvent on the event bus and sends
formatted messages with inline keyboards to the user's chat.
"""

import structlog
from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import TelegramError

from ..bot.utils.html_format import escape_html
from ..events.bus import Event, EventBus
from ..events.types import NudgeEvent, WeeklyReviewEvent

logger = structlog.get_logger()


class DiaryNotificationHandler:
    """Delivers weekly reviews and nudges."""

    def __init__(self, event_bus: EventBus, bot: Bot) -> None:
        self.event_bus = event_bus
        self.bot = bot

    def register(self) -> None:
        """Subscribe to scheduler events."""
        self.event_bus.subscribe(WeeklyReviewEvent, self.handle_weekly_review)
        self.event_bus.subscribe(NudgeEvent, self.handle_nudge)

    async def handle_weekly_review(self, event: Event) -> None:
        """Send the weekly wrap-up."""
        if not isinstance(event, WeeklyReviewEvent):
            return
        text = (
            "🎓 <b>Weekly Learning Wrap-up</b>\n\n"
            f"{escape_html(event.summary)}\n\n"
            f"📚 {event.entry_count} learnings this week. "
            "🚀 Ready for another week of learning?"
        )
        keyboard = InlineKeyboardMarkup([
            [
                InlineKeyboardButton("🧠 Take Quiz", callback_data="start_quiz"),
                InlineKeyboardButton("🎯 Practice", callback_data="start_inline_quiz"),
            ]
        ])
        await self._send(event.user_id, text, reply_markup=keyboard)

    async def handle_nudge(self, event: Event) -> None:
        """Send a reminder to log today's learning."""
        if not isinstance(event, NudgeEvent):
            return
        keyboard = InlineKeyboardMarkup([
            [InlineKeyboardButton("📚 Quick Learn", callback_data="quick_learn")]
        ])
        await self._send(event.user_id, escape_html(event.text), reply_markup=keyboard)

    async def _send(self, chat_id: int, text: str, **kwargs: object) -> None:
        """Send message to chat, logging Telegram failures."""
        if not chat_id:
            logger.warning("Diary notification skipped: no chat_id")
            return
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode="HTML",
                **kwargs,
            )
        except TelegramError as e:
            logger.error(
                "Failed to send diary notification",
                chat_id=chat_id,
                error=str(e),
            )

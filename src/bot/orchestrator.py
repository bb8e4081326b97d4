"""Message orchestrator -- single entry point for all Telegram updates.

Commands go to the handlers in ``handlers/``; free text and button presses
are forwarded to the conversation machine, whose replies are rendered back
into Telegram messages.
"""

from typing import Any, Callable, Dict, List

import structlog
from telegram import BotCommand, Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..config.settings import Settings
from ..conversation.menus import GENERIC_ERROR
from .rendering import answer_callback, send_replies

logger = structlog.get_logger()


class DiaryOrchestrator:
    """Wires the diary core into a python-telegram-bot Application."""

    def __init__(self, settings: Settings, deps: Dict[str, Any]):
        self.settings = settings
        self.deps = deps

    def _inject_deps(self, handler: Callable) -> Callable:  # type: ignore[type-arg]
        """Wrap handler to inject dependencies and guard against failures."""

        async def wrapped(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            for key, value in self.deps.items():
                context.bot_data[key] = value
            context.bot_data["settings"] = self.settings

            user = update.effective_user
            if user is None:
                return

            try:
                await self.deps["store"].find_or_create_user(user.id)
                await handler(update, context)
            except Exception:
                logger.exception(
                    "Handler failed",
                    handler=handler.__name__,
                    user_id=user.id,
                )
                self.deps["machine"].states.clear(user.id)
                await self._reply_error(update)

        return wrapped

    async def _reply_error(self, update: Update) -> None:
        try:
            if update.callback_query is not None:
                await update.callback_query.message.reply_text(GENERIC_ERROR)
            elif update.effective_message is not None:
                await update.effective_message.reply_text(GENERIC_ERROR)
        except Exception:
            logger.exception("Failed to deliver error reply")

    def register_handlers(self, app: Application) -> None:
        """Register command, text and callback handlers."""
        from .handlers import admin_commands, diary_commands

        handlers = [
            ("start", diary_commands.start_command),
            ("help", diary_commands.start_command),
            ("learn", diary_commands.learn_command),
            ("quick", diary_commands.quick_command),
            ("log", diary_commands.log_command),
            ("search", diary_commands.search_command),
            ("stats", diary_commands.stats_command),
            ("goals", diary_commands.goals_command),
            ("view", diary_commands.view_command),
            ("export", diary_commands.export_command),
            ("summarize", diary_commands.summarize_command),
            ("quiz", diary_commands.quiz_command),
            ("practice", diary_commands.practice_command),
            ("insights", diary_commands.insights_command),
            ("recommend", diary_commands.recommend_command),
            ("quiztime", diary_commands.quiztime_command),
            ("notifications", diary_commands.notifications_command),
            ("timezone", diary_commands.timezone_command),
            ("stop", diary_commands.stop_command),
            ("cancel", diary_commands.stop_command),
            ("botstats", admin_commands.botstats_command),
        ]
        for cmd, handler in handlers:
            app.add_handler(CommandHandler(cmd, self._inject_deps(handler)))

        # Free text -> active conversation flow
        app.add_handler(
            MessageHandler(
                filters.TEXT & ~filters.COMMAND,
                self._inject_deps(self.handle_text),
            ),
            group=10,
        )

        app.add_handler(CallbackQueryHandler(self._inject_deps(self.handle_callback)))

        logger.info("Handlers registered", commands=len(handlers))

    async def handle_text(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Forward plain text to the conversation machine."""
        machine = context.bot_data["machine"]
        user_id = update.effective_user.id
        replies = await machine.handle_inbound_message(user_id, update.message.text or "")
        if not replies:
            logger.debug("Text outside any flow ignored", user_id=user_id)
            return
        await send_replies(update.message, replies)

    async def handle_callback(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Forward inline button payloads to the conversation machine."""
        query = update.callback_query
        await query.answer()
        machine = context.bot_data["machine"]
        replies = await machine.handle_button(update.effective_user.id, query.data or "")
        await answer_callback(query, replies)

    async def get_bot_commands(self) -> List[BotCommand]:
        """Return the command menu shown by Telegram clients."""
        return [
            BotCommand("start", "Start the bot and show the menu"),
            BotCommand("learn", "Record something you learned"),
            BotCommand("quick", "Quick one-line entry"),
            BotCommand("log", "Log work, learnings and blockers"),
            BotCommand("view", "Browse your entries"),
            BotCommand("search", "Search your diary"),
            BotCommand("stats", "Show your progress"),
            BotCommand("goals", "Set a daily goal"),
            BotCommand("summarize", "AI summary of the past week"),
            BotCommand("quiz", "Quiz on the past week"),
            BotCommand("practice", "Interactive quiz, one question at a time"),
            BotCommand("insights", "Patterns in your learning"),
            BotCommand("recommend", "What to learn next"),
            BotCommand("quiztime", "Schedule your weekly review"),
            BotCommand("notifications", "Turn reminders on or off"),
            BotCommand("timezone", "Set your timezone"),
            BotCommand("export", "Download your diary"),
            BotCommand("stop", "End the current conversation"),
        ]

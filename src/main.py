"""Process entry point: build the diary components and run the bot."""

import random
import sys
from datetime import timedelta
from typing import Any, Dict

import structlog
from telegram.ext import Application

from .analytics import AnalyticsService
from .bot.orchestrator import DiaryOrchestrator
from .config import Settings, load_settings
from .conversation import ConversationMachine, ConversationStateStore, DiaryActions
from .events import EventBus
from .exceptions import ConfigurationError
from .llm import AISummarizer, ChatProvider
from .logging_config import configure_logging
from .notifications import DiaryNotificationHandler
from .scheduler import ScheduleTrigger
from .storage import DatabaseManager, EntryStore, UserSettings

logger = structlog.get_logger()


def build_dependencies(settings: Settings, db_manager: DatabaseManager) -> Dict[str, Any]:
    """Assemble the core services shared by every handler."""
    store = EntryStore(
        db_manager,
        default_settings=UserSettings(timezone=settings.default_timezone),
        default_quiz_day=settings.default_quiz_day,
        default_quiz_time=settings.default_quiz_time,
    )
    analytics = AnalyticsService(store)

    provider = None
    if settings.ai_api_key_str:
        provider = ChatProvider(
            model=settings.model_fast,
            api_key=settings.ai_api_key_str,
            base_url=settings.ai_base_url,
            timeout=settings.ai_timeout_seconds,
        )
    else:
        logger.warning("No AI API key configured, AI features disabled")

    summarizer = AISummarizer(
        provider,
        fast_model=settings.model_fast,
        analysis_model=settings.model_analysis,
        rng=random.Random(),
        timeout=settings.ai_timeout_seconds,
        max_quiz_questions=settings.inline_quiz_max_questions,
    )
    actions = DiaryActions(store, analytics, summarizer)
    states = ConversationStateStore(
        ttl=timedelta(minutes=settings.conversation_ttl_minutes)
    )
    machine = ConversationMachine(store, summarizer, actions, states=states)

    return {
        "db_manager": db_manager,
        "store": store,
        "analytics": analytics,
        "summarizer": summarizer,
        "actions": actions,
        "machine": machine,
        "event_bus": EventBus(),
    }


def create_application(settings: Settings) -> Application:
    """Build the Telegram application with handlers and scheduler wired in."""
    db_manager = DatabaseManager(settings.database_url)
    deps = build_dependencies(settings, db_manager)
    orchestrator = DiaryOrchestrator(settings, deps)

    trigger = ScheduleTrigger(
        deps["store"],
        deps["analytics"],
        deps["summarizer"],
        deps["event_bus"],
        nudge_hour=settings.nudge_hour if settings.nudges_enabled else None,
        retention_days=settings.entry_retention_days,
        conversation_states=deps["machine"].states,
    )

    async def post_init(app: Application) -> None:
        await db_manager.initialize()
        await app.bot.set_my_commands(await orchestrator.get_bot_commands())
        DiaryNotificationHandler(deps["event_bus"], app.bot).register()
        if app.job_queue is None:
            logger.warning("JobQueue unavailable, scheduled reviews disabled")
            return
        trigger.schedule(app.job_queue, settings.scheduler_interval_seconds)

    async def post_shutdown(app: Application) -> None:
        await db_manager.close()

    app = (
        Application.builder()
        .token(settings.telegram_token_str)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    orchestrator.register_handlers(app)
    return app


def main() -> None:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        configure_logging()
        logger.error("Invalid configuration", error=str(e))
        sys.exit(1)

    configure_logging(settings.log_level, settings.log_json)
    logger.info(
        "Starting learning diary bot",
        database=settings.database_url,
        ai_enabled=bool(settings.ai_api_key_str),
    )
    create_application(settings).run_polling()


if __name__ == "__main__":
    main()

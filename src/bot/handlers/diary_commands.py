"""Handlers for diary slash commands.

Each handler pulls its collaborators from ``context.bot_data`` (injected by
the orchestrator) and renders the core's replies.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from telegram import Update
from telegram.ext import ContextTypes

from ..rendering import send_replies
from ..utils.html_format import escape_html

logger = structlog.get_logger()


def _args_text(context: ContextTypes.DEFAULT_TYPE) -> str:
    return " ".join(context.args or []).strip()


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start and /help -- welcome with progress and main menu."""
    actions = context.bot_data["actions"]
    user = update.effective_user
    reply = await actions.welcome(user.id, first_name=user.first_name or "")
    await send_replies(update.message, [reply])


async def learn_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /learn [text] -- save directly or start the guided flow."""
    machine = context.bot_data["machine"]
    content = _args_text(context)
    if content:
        replies = await machine.submit_learning(update.effective_user.id, content)
    else:
        replies = await machine.start_learning(update.effective_user.id)
    await send_replies(update.message, replies)


async def quick_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /quick -- one-message learning entry."""
    machine = context.bot_data["machine"]
    await send_replies(
        update.message, await machine.start_quick_learn(update.effective_user.id)
    )


async def log_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /log -- work, learnings and blockers in three steps."""
    machine = context.bot_data["machine"]
    await send_replies(update.message, await machine.start_log(update.effective_user.id))


async def search_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /search [query]."""
    query = _args_text(context)
    user_id = update.effective_user.id
    if query:
        reply = await context.bot_data["actions"].search(user_id, query)
        await send_replies(update.message, [reply])
        return
    await send_replies(update.message, await context.bot_data["machine"].start_search(user_id))


async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stats."""
    reply = await context.bot_data["actions"].stats(update.effective_user.id)
    await send_replies(update.message, [reply])


async def goals_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /goals -- show current goal and presets."""
    reply = await context.bot_data["actions"].goals_menu(update.effective_user.id)
    await send_replies(update.message, [reply])


async def view_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /view -- pick a history period."""
    await send_replies(update.message, [context.bot_data["actions"].view_menu()])


async def export_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export -- whole diary as a text file."""
    reply = await context.bot_data["actions"].export(update.effective_user.id)
    await send_replies(update.message, [reply])


async def summarize_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /summarize -- AI summary of the past week."""
    await update.message.reply_text(
        "🤖 Analyzing your learning journey... This might take a moment."
    )
    reply = await context.bot_data["actions"].summary(update.effective_user.id)
    await send_replies(update.message, [reply])


async def quiz_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /quiz -- multiple-choice quiz from the past week."""
    await update.message.reply_text("🧠 Preparing your personalized quiz...")
    reply = await context.bot_data["actions"].quiz(update.effective_user.id)
    await send_replies(update.message, [reply])


async def practice_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /practice -- interactive one-question-at-a-time quiz."""
    machine = context.bot_data["machine"]
    await send_replies(
        update.message, await machine.start_inline_quiz(update.effective_user.id)
    )


async def insights_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /insights."""
    reply = await context.bot_data["actions"].insights(update.effective_user.id)
    await send_replies(update.message, [reply])


async def recommend_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /recommend."""
    reply = await context.bot_data["actions"].recommendations(update.effective_user.id)
    await send_replies(update.message, [reply])


async def quiztime_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /quiztime -- choose the weekly review day, then the hour."""
    reply = await context.bot_data["actions"].quiz_day_menu(update.effective_user.id)
    await send_replies(update.message, [reply])


async def stop_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stop and /cancel."""
    machine = context.bot_data["machine"]
    await send_replies(update.message, await machine.stop(update.effective_user.id))


async def notifications_command(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Handle /notifications [on|off]."""
    store = context.bot_data["store"]
    user_id = update.effective_user.id
    arg = _args_text(context).lower()

    if arg not in ("on", "off"):
        user = await store.find_or_create_user(user_id)
        state = "on" if user.settings.notifications else "off"
        await update.message.reply_text(
            f"🔔 Reminders are <b>{state}</b>.\n"
            "Use <code>/notifications on</code> or <code>/notifications off</code>.",
            parse_mode="HTML",
        )
        return

    await store.update_settings(user_id, notifications=arg == "on")
    await update.message.reply_text(f"🔔 Reminders turned {arg}.")


async def timezone_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /timezone <Area/City>."""
    store = context.bot_data["store"]
    user_id = update.effective_user.id
    name = _args_text(context)

    if not name:
        user = await store.find_or_create_user(user_id)
        await update.message.reply_text(
            f"🌍 Your timezone: <code>{escape_html(user.settings.timezone)}</code>\n"
            "Change it with <code>/timezone Europe/Berlin</code>.",
            parse_mode="HTML",
        )
        return

    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        await update.message.reply_text(
            f"❌ Unknown timezone <code>{escape_html(name)}</code>.",
            parse_mode="HTML",
        )
        return

    await store.update_settings(user_id, timezone=name)
    logger.info("Timezone changed", user_id=user_id, timezone=name)
    await update.message.reply_text(
        f"🌍 Timezone set to <code>{escape_html(name)}</code>.", parse_mode="HTML"
    )

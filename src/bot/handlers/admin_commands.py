"""Admin commands.

Commands:
- /botstats - Users, weekly entries and entries per user
"""

import structlog
from telegram import Update
from telegram.ext import ContextTypes

from ..rendering import send_replies

logger = structlog.get_logger()


def _is_admin(user_id: int, context: ContextTypes.DEFAULT_TYPE) -> bool:
    settings = context.bot_data.get("settings")
    return settings is not None and user_id in settings.admin_user_ids


async def _admin_only(update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
    """Check admin access and reply if denied. Returns True if allowed."""
    if _is_admin(update.effective_user.id, context):
        return True
    await update.message.reply_text(
        "🔒 <b>Admin Access Required</b>\n\n"
        "This command is only available to bot admins.",
        parse_mode="HTML",
    )
    return False


async def botstats_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show bot-wide statistics: /botstats."""
    if not await _admin_only(update, context):
        return
    reply = await context.bot_data["actions"].bot_stats()
    logger.info("Bot stats requested", user_id=update.effective_user.id)
    await send_replies(update.message, [reply])

"""Tests for admin command handlers."""

from unittest.mock import AsyncMock, MagicMock

from src.bot.handlers.admin_commands import botstats_command
from src.conversation.base import Reply


def _make_context(admin_ids: list) -> MagicMock:
    ctx = MagicMock()
    settings = MagicMock()
    settings.admin_user_ids = admin_ids
    actions = MagicMock()
    actions.bot_stats = AsyncMock(return_value=Reply("📈 stats"))
    ctx.bot_data = {"settings": settings, "actions": actions}
    return ctx


def _make_update(user_id: int = 42) -> MagicMock:
    update = MagicMock()
    update.effective_user.id = user_id
    update.message.reply_text = AsyncMock()
    return update


class TestBotStats:
    async def test_admin_sees_stats(self) -> None:
        update = _make_update(42)
        ctx = _make_context([42])
        await botstats_command(update, ctx)
        ctx.bot_data["actions"].bot_stats.assert_awaited_once()
        assert update.message.reply_text.call_args.args[0] == "📈 stats"

    async def test_non_admin_denied(self) -> None:
        update = _make_update(7)
        ctx = _make_context([42])
        await botstats_command(update, ctx)
        ctx.bot_data["actions"].bot_stats.assert_not_called()
        assert "Admin Access Required" in update.message.reply_text.call_args.args[0]

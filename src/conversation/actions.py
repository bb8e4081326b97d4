"""Single-shot diary actions: stats, history views, summaries, export.

These produce a Reply and never touch conversation state.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo

import structlog

from ..analytics.service import AnalyticsService
from ..bot.utils.html_format import escape_html, truncate
from ..llm.summarizer import AISummarizer
from ..storage.models import Entry
from ..storage.store import EntryStore, day_bounds
from . import menus
from .base import Reply

logger = structlog.get_logger()

MIN_QUIZ_ENTRIES = 3
SEARCH_RESULTS_SHOWN = 10
STREAK_MILESTONES = (7, 30, 100, 365)

_PERIOD_TITLES = {
    "today": "📅 Today's Learnings",
    "yesterday": "📅 Yesterday's Learnings",
    "week": "📅 Past 7 Days",
    "month": "📅 Past 30 Days",
}


def format_entries(entries: Sequence[Entry], tz: ZoneInfo) -> str:
    """Numbered list of entries with local timestamps."""
    if not entries:
        return "📭 No entries found for this period."
    lines = []
    for i, entry in enumerate(entries, start=1):
        stamp = entry.created_at.astimezone(tz).strftime("%b %d, %H:%M")
        category = f"[{escape_html(entry.category)}] " if entry.category else ""
        lines.append(f"{i}. {category}{escape_html(entry.content)}\n   ⏰ {stamp}")
    return "\n\n".join(lines)


class DiaryActions:
    """Read-mostly actions invoked from commands and menu buttons."""

    def __init__(
        self,
        store: EntryStore,
        analytics: AnalyticsService,
        summarizer: AISummarizer,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._analytics = analytics
        self._summarizer = summarizer
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _timezone(self, user_id: int) -> ZoneInfo:
        user = await self._store.find_or_create_user(user_id)
        return ZoneInfo(user.settings.timezone)

    async def _last_days(self, user_id: int, days: int) -> List[Entry]:
        now = self._clock()
        return await self._store.get_entries_in_range(
            user_id, now - timedelta(days=days), now
        )

    # --- menus ---

    def main_menu(self, edit: bool = True) -> Reply:
        return Reply(
            "🏠 <b>Main Menu</b>\n\nWhat would you like to do?",
            buttons=menus.main_menu(),
            edit=edit,
        )

    def view_menu(self, edit: bool = False) -> Reply:
        return Reply(
            "👀 <b>View Your Learning History</b>\n\nWhich period would you like to see?",
            buttons=menus.view_menu(),
            edit=edit,
        )

    async def welcome(self, user_id: int, first_name: str = "") -> Reply:
        stats = await self._analytics.user_stats(user_id)
        greeting = f"Hi {escape_html(first_name)}! " if first_name else ""
        progress = (
            f"🔥 Learning streak: {stats.streak} days\n"
            f"📚 Total learnings: {stats.total}\n\n"
            if stats.total
            else ""
        )
        return Reply(
            f"🎓 {greeting}<b>Welcome to your AI Learning Companion!</b>\n\n"
            f"{progress}"
            "<b>Quick actions:</b>\n"
            "• /learn or /quick to log something you learned\n"
            "• /log for a work log (work, learnings, blockers)\n"
            "• /view, /search and /stats to look back\n"
            "• /goals and /quiztime to set your rhythm\n"
            "• /summarize, /quiz and /practice to review\n\n"
            "Ready to learn something new today? 🚀",
            buttons=menus.main_menu(),
        )

    # --- statistics ---

    async def stats(self, user_id: int) -> Reply:
        stats = await self._analytics.user_stats(user_id)
        lines = [
            "📊 <b>Your Learning Statistics</b>\n",
            f"🔥 Current streak: {stats.streak} days",
            f"📚 Total learnings: {stats.total}",
            f"📅 Today: {stats.today} learnings",
            f"📈 Weekly average: {stats.week_average:.1f} per day",
            f"🗓 Last 30 days: {stats.month_total} learnings",
        ]
        if stats.goal:
            lines.append(
                f"\n🎯 Daily goal: {stats.today}/{stats.goal} ({stats.goal_progress}%)"
            )
        if stats.top_categories:
            lines.append("\n🏆 <b>Top Categories:</b>")
            for i, cat in enumerate(stats.top_categories, start=1):
                lines.append(f"{i}. {escape_html(cat.name)}: {cat.count} learnings")
        return Reply("\n".join(lines), buttons=menus.stats_actions())

    async def entry_saved(self, user_id: int) -> Reply:
        """Confirmation with daily goal progress after a new entry."""
        stats = await self._analytics.user_stats(user_id)
        text = f"✅ <b>Learning saved!</b> ({stats.today} today)"
        if stats.goal:
            text += f"\n🎯 Daily goal progress: {stats.goal_progress}%"
            if stats.goal_reached:
                text += f"\n🎉 Daily goal achieved! Streak: {stats.streak} days"
        if stats.today == 1 and stats.streak in STREAK_MILESTONES:
            text += "\n" + self._summarizer.motivational_message(
                "streak_milestone", streak=stats.streak
            )
        return Reply(text)

    async def bot_stats(self) -> Reply:
        stats = await self._analytics.global_stats()
        return Reply(
            "📈 <b>Bot statistics</b>\n\n"
            f"👥 Users: {stats.users}\n"
            f"📝 Entries (7 days): {stats.week_entries}\n"
            f"⚖️ Per user (7 days): {stats.week_average_per_user:.1f}"
        )

    # --- history ---

    async def view_period(self, user_id: int, period: str, edit: bool = True) -> Optional[Reply]:
        if period not in _PERIOD_TITLES:
            return None
        tz = await self._timezone(user_id)
        now = self._clock()
        if period in ("today", "yesterday"):
            day = now if period == "today" else now - timedelta(days=1)
            start, end = day_bounds(day, tz)
            entries = await self._store.get_entries_in_range(
                user_id, start, end - timedelta(microseconds=1)
            )
        else:
            entries = await self._last_days(user_id, 7 if period == "week" else 30)
        text = f"<b>{_PERIOD_TITLES[period]}</b>\n\n{format_entries(entries, tz)}"
        return Reply(truncate(text), buttons=menus.after_view(), edit=edit)

    def search_results(
        self, query: str, results: Sequence[Entry], tz: ZoneInfo
    ) -> Reply:
        safe_query = escape_html(query)
        if not results:
            return Reply(
                f'🔍 No results found for "{safe_query}"\n\n'
                "Try different keywords or browse your history with /view"
            )
        lines = []
        for i, entry in enumerate(results[:SEARCH_RESULTS_SHOWN], start=1):
            stamp = entry.created_at.astimezone(tz).strftime("%b %d, %Y")
            lines.append(f"{i}. {escape_html(entry.content)}\n   📅 {stamp}")
        more = "\n\n...and more" if len(results) > SEARCH_RESULTS_SHOWN else ""
        return Reply(
            truncate(
                f'🔍 <b>Found {len(results)} result(s) for "{safe_query}"</b>\n\n'
                + "\n\n".join(lines)
                + more
            )
        )

    async def search(self, user_id: int, query: str) -> Reply:
        results = await self._store.search_entries(user_id, query)
        return self.search_results(query, results, await self._timezone(user_id))

    async def export(self, user_id: int) -> Reply:
        entries = await self._store.get_all_entries(user_id)
        if not entries:
            return Reply(
                "📭 No learnings to export yet. Start logging your learning journey!"
            )
        tz = await self._timezone(user_id)
        body = "\n".join(
            f"[{e.created_at.astimezone(tz):%Y-%m-%d %H:%M}] "
            + (f"[{e.category}] " if e.category else "")
            + e.content.replace("\n", " | ")
            for e in entries
        )
        return Reply(
            f"📚 Your complete learning diary\n📊 Total entries: {len(entries)}",
            document=body.encode("utf-8"),
            filename=f"learning-diary-{self._clock():%Y-%m-%d}.txt",
        )

    # --- goals & schedule ---

    async def goals_menu(self, user_id: int) -> Reply:
        goal = await self._store.get_user_goal(user_id)
        current = f"Current goal: {goal} learnings per day" if goal else "No goal set yet"
        return Reply(
            f"🎯 <b>Daily Learning Goals</b>\n\n{current}\n\n"
            "How many things would you like to learn each day?",
            buttons=menus.goals(),
        )

    async def set_goal(self, user_id: int, goal: Optional[int]) -> Reply:
        await self._store.set_user_goal(user_id, goal)
        if goal is None:
            return Reply("🎯 Daily goal cleared.", buttons=menus.main_menu(), edit=True)
        return Reply(
            f"🎯 <b>Goal Set!</b>\n\nYour daily learning goal: {goal} per day\n\n"
            "I'll track your progress and celebrate when you hit your target!",
            buttons=menus.main_menu(),
            edit=True,
        )

    async def quiz_day_menu(self, user_id: int) -> Reply:
        user = await self._store.find_or_create_user(user_id)
        return Reply(
            "🗓 <b>Weekly review time</b>\n\n"
            f"Currently: {menus.DAY_NAMES[user.quiz_day]} at {user.quiz_time:02d}:00 "
            f"({escape_html(user.settings.timezone)})\n\n"
            "Pick a day for your weekly summary:",
            buttons=menus.quiz_days(),
        )

    # --- AI ---

    async def summary(self, user_id: int) -> Reply:
        entries = await self._last_days(user_id, 7)
        if not entries:
            return Reply(
                "📭 No learnings from the past week. Start your learning streak today!"
            )
        text = await self._summarizer.generate_analysis(entries, "summary")
        return Reply(
            f"📝 <b>Your Weekly Learning Summary</b>\n\n{escape_html(text)}",
            buttons=menus.summary_actions(),
        )

    async def quiz(self, user_id: int) -> Reply:
        entries = await self._last_days(user_id, 7)
        if len(entries) < MIN_QUIZ_ENTRIES:
            return Reply(
                f"📚 You need at least {MIN_QUIZ_ENTRIES} learnings from the past "
                "week to generate a quiz.\n\nKeep learning and come back later!",
                buttons=menus.main_menu(),
            )
        text = await self._summarizer.generate_analysis(entries, "quiz")
        return Reply(
            f"🧠 <b>Your Personalized Quiz</b>\n\n{escape_html(text)}",
            buttons=menus.quiz_actions(),
        )

    async def insights(self, user_id: int) -> Reply:
        entries = await self._last_days(user_id, 30)
        text = await self._summarizer.generate_analysis(entries, "insights")
        return Reply(f"💡 <b>Learning Insights</b>\n\n{escape_html(text)}")

    async def recommendations(self, user_id: int) -> Reply:
        entries = await self._last_days(user_id, 30)
        text = await self._summarizer.generate_recommendations(entries)
        return Reply(f"🧭 <b>What to explore next</b>\n\n{escape_html(text)}")

    async def quiz_entries(self, user_id: int) -> List[Entry]:
        """Entries used to seed an interactive quiz."""
        return await self._last_days(user_id, 7)

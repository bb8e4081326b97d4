"""Conversation state machine -- guided multi-step data entry.

Turns independent inbound messages from one user into completed diary
operations. Each user has at most one active flow. Store writes happen only
on a flow's terminal step, so an abandoned or crashed flow never leaves a
partial entry behind.

Command policy: text starting with ``/`` is never flow input. Commands that
start a flow replace the active one, ``/stop`` clears it, and every other
command leaves it untouched.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

import structlog

from ..bot.utils.html_format import escape_html
from ..exceptions import ValidationError
from ..llm.summarizer import AISummarizer
from ..storage.models import Entry, EntryOptions
from ..storage.store import EntryStore
from . import menus
from .actions import MIN_QUIZ_ENTRIES, DiaryActions
from .base import Reply
from .state import ConversationState, ConversationStateStore, FlowCommand

logger = structlog.get_logger()

COMMAND_PREFIX = "/"

TextHandler = Callable[[ConversationState, str], Awaitable[List[Reply]]]


def parse_bounded_int(text: str, low: int, high: int, field: str) -> int:
    """Parse ``text`` as an integer within ``[low, high]``."""
    try:
        value = int(text.strip())
    except ValueError:
        raise ValidationError(
            f"Please enter a whole number between {low} and {high}.", field=field
        ) from None
    if not low <= value <= high:
        raise ValidationError(
            f"Please enter a number between {low} and {high}.", field=field
        )
    return value


class ConversationMachine:
    """Routes messages and button presses to the user's active flow."""

    def __init__(
        self,
        store: EntryStore,
        summarizer: AISummarizer,
        actions: DiaryActions,
        states: Optional[ConversationStateStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._summarizer = summarizer
        self._actions = actions
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.states = states or ConversationStateStore(clock=self._clock)
        self._text_handlers: Dict[FlowCommand, TextHandler] = {
            FlowCommand.LOG: self._on_log,
            FlowCommand.QUIZ_TIME: self._on_quiz_time,
            FlowCommand.QUICK_LEARN: self._on_quick_learn,
            FlowCommand.WAITING_FOR_LEARNING: self._on_learning,
            FlowCommand.SEARCH: self._on_search,
            FlowCommand.CUSTOM_GOAL: self._on_custom_goal,
            FlowCommand.AI_CONVO: self._on_ai_convo,
            FlowCommand.INLINE_QUIZ: self._on_inline_quiz,
        }

    # --- entry points ---

    async def handle_inbound_message(self, user_id: int, text: str) -> List[Reply]:
        """Advance the user's active flow with a plain text message.

        Returns an empty list when there is nothing to do: no active flow,
        an empty message, or a command.
        """
        if not text or not text.strip() or text.startswith(COMMAND_PREFIX):
            return []

        async with self.states.lock(user_id):
            state = self.states.get(user_id)
            if state is None:
                return []
            handler = self._text_handlers[state.command]
            logger.debug(
                "Flow input",
                user_id=user_id,
                command=state.command.value,
                step=state.step,
            )
            try:
                return await handler(state, text.strip())
            except Exception:
                return self._fail(user_id, state.command.value)

    async def handle_button(self, user_id: int, payload: str) -> List[Reply]:
        """React to an inline button press.

        Unknown payloads yield an empty list.
        """
        async with self.states.lock(user_id):
            try:
                return await self._dispatch_button(user_id, payload)
            except Exception:
                return self._fail(user_id, payload)

    # --- flow starters used by command handlers ---

    async def start_log(self, user_id: int) -> List[Reply]:
        async with self.states.lock(user_id):
            return self._begin_log(user_id)

    async def start_learning(self, user_id: int) -> List[Reply]:
        async with self.states.lock(user_id):
            return self._begin_learning(user_id)

    async def start_quick_learn(self, user_id: int) -> List[Reply]:
        async with self.states.lock(user_id):
            return self._begin_quick_learn(user_id)

    async def start_search(self, user_id: int) -> List[Reply]:
        async with self.states.lock(user_id):
            return self._begin_search(user_id)

    async def start_inline_quiz(self, user_id: int) -> List[Reply]:
        async with self.states.lock(user_id):
            try:
                return await self._begin_inline_quiz(user_id)
            except Exception:
                return self._fail(user_id, FlowCommand.INLINE_QUIZ.value)

    async def begin_quiz_time(self, user_id: int, day: int) -> List[Reply]:
        async with self.states.lock(user_id):
            return self._begin_quiz_time(user_id, day)

    async def submit_learning(
        self, user_id: int, content: str, category: Optional[str] = None
    ) -> List[Reply]:
        """Commit a one-shot learning (``/learn <text>``) and open a follow-up."""
        async with self.states.lock(user_id):
            try:
                entry = await self._store.add_entry(
                    user_id, content, EntryOptions.build(category=category)
                )
                return await self._after_entry(user_id, entry)
            except ValidationError as exc:
                return [Reply(f"❌ {escape_html(str(exc))}")]
            except Exception:
                return self._fail(user_id, "learn")

    async def stop(self, user_id: int) -> List[Reply]:
        """End whatever flow is active."""
        async with self.states.lock(user_id):
            return self._stop(user_id)

    # --- text handlers ---

    async def _on_log(self, state: ConversationState, text: str) -> List[Reply]:
        if state.step == 1:
            state.data["work"] = text
            state.step = 2
            self.states.save(state)
            return [
                Reply(
                    "📚 <b>What did you learn?</b>",
                    force_reply=True,
                    placeholder="I learned that...",
                )
            ]
        if state.step == 2:
            state.data["learn"] = text
            state.step = 3
            self.states.save(state)
            return [
                Reply(
                    "🚧 <b>Any blockers?</b>\n\nReply \"none\" if nothing is in your way.",
                    force_reply=True,
                    placeholder="Blockers...",
                )
            ]

        entry = await self._store.add_log(
            state.user_id, state.data["work"], state.data["learn"], text
        )
        self.states.clear(state.user_id)
        logger.info("Work log committed", user_id=state.user_id, entry_id=entry.id)
        return await self._after_entry(state.user_id, entry, topic=entry.learn)

    async def _on_quiz_time(self, state: ConversationState, text: str) -> List[Reply]:
        try:
            hour = parse_bounded_int(text, 0, 23, "hour")
        except ValidationError as exc:
            return [
                Reply(
                    f"❌ {exc} Which hour (0-23) should I send your weekly review?",
                    force_reply=True,
                    placeholder="e.g. 18",
                )
            ]
        day = state.data["day"]
        await self._store.set_quiz_time(state.user_id, day, hour)
        self.states.clear(state.user_id)
        return [
            Reply(
                f"✅ Weekly review set for <b>{menus.DAY_NAMES[day]}</b> "
                f"at <b>{hour:02d}:00</b>.",
                buttons=menus.main_menu(),
            )
        ]

    async def _on_quick_learn(self, state: ConversationState, text: str) -> List[Reply]:
        entry = await self._store.add_entry(
            state.user_id, text, EntryOptions.build(source="quick")
        )
        self.states.clear(state.user_id)
        return await self._after_entry(state.user_id, entry)

    async def _on_learning(self, state: ConversationState, text: str) -> List[Reply]:
        if state.step == 1:
            state.data["content"] = text
            state.data["suggested"] = await self._summarizer.suggest_category(text)
            state.step = 2
            self.states.save(state)
        return [
            Reply(
                "🏷️ <b>Choose a category</b> (optional):",
                buttons=menus.categories(state.data.get("suggested")),
            )
        ]

    async def _on_search(self, state: ConversationState, text: str) -> List[Reply]:
        self.states.clear(state.user_id)
        return [await self._actions.search(state.user_id, text)]

    async def _on_custom_goal(self, state: ConversationState, text: str) -> List[Reply]:
        try:
            goal = parse_bounded_int(text, 1, 50, "goal")
        except ValidationError:
            return [Reply("❌ Please enter a valid number between 1 and 50.")]
        await self._store.set_user_goal(state.user_id, goal)
        self.states.clear(state.user_id)
        return [
            Reply(
                f"🎯 Perfect! Your daily goal is set to {goal} learnings per day.",
                buttons=menus.main_menu(),
            )
        ]

    async def _on_ai_convo(self, state: ConversationState, text: str) -> List[Reply]:
        await self._store.add_entry(
            state.user_id,
            f"💭 Follow-up thought: {text}",
            EntryOptions.build(source="followup"),
        )
        state.history.append(
            {"question": state.data.get("question", ""), "answer": text}
        )
        question = await self._summarizer.generate_follow_up(text)
        state.data["question"] = question
        self.states.save(state)
        return [
            Reply(
                f"🤔 {escape_html(question)}\n\n<i>Keep the conversation going or /stop</i>",
                buttons=menus.conversation_controls(),
            )
        ]

    async def _on_inline_quiz(self, state: ConversationState, text: str) -> List[Reply]:
        state.history.append(
            {"question": state.data.get("question", ""), "answer": text}
        )
        question = await self._summarizer.get_next_question(
            state.data["entries"], state.history
        )
        if question is None:
            self.states.clear(state.user_id)
            answered = len(state.history)
            return [
                Reply(
                    f"🏁 <b>Quiz complete!</b> You answered {answered} "
                    f"question{'s' if answered != 1 else ''}. Great review session!",
                    buttons=menus.main_menu(),
                )
            ]
        state.data["question"] = question
        self.states.save(state)
        return [
            Reply(
                f"❓ {escape_html(question)}",
                buttons=menus.quiz_controls(),
                force_reply=True,
            )
        ]

    # --- buttons ---

    async def _dispatch_button(self, user_id: int, payload: str) -> List[Reply]:
        if payload in menus.CATEGORY_PAYLOADS:
            return await self._on_category(user_id, menus.CATEGORY_PAYLOADS[payload])
        if payload.startswith("qday_"):
            day = _payload_int(payload)
            if day is None or not 0 <= day <= 6:
                return []
            return self._begin_quiz_time(user_id, day)
        if payload == "goal_custom":
            return self._begin_custom_goal(user_id)
        if payload.startswith("goal_"):
            goal = _payload_int(payload)
            if goal is None:
                return []
            return [await self._actions.set_goal(user_id, goal or None)]
        if payload.startswith("view_"):
            reply = await self._actions.view_period(user_id, payload[len("view_"):])
            return [reply] if reply else []

        if payload == "quick_learn":
            return self._begin_quick_learn(user_id)
        if payload == "start_search":
            return self._begin_search(user_id)
        if payload == "start_log":
            return self._begin_log(user_id)
        if payload == "start_inline_quiz":
            return await self._begin_inline_quiz(user_id)
        if payload == "stop_convo":
            return self._stop(user_id)

        simple: Dict[str, Callable[[], Awaitable[Reply]]] = {
            "show_stats": lambda: self._actions.stats(user_id),
            "manage_goals": lambda: self._actions.goals_menu(user_id),
            "start_quiz": lambda: self._actions.quiz(user_id),
            "get_summary": lambda: self._actions.summary(user_id),
            "export_data": lambda: self._actions.export(user_id),
            "set_quiztime": lambda: self._actions.quiz_day_menu(user_id),
        }
        if payload in simple:
            return [await simple[payload]()]
        if payload == "main_menu":
            return [self._actions.main_menu()]
        if payload == "back_to_view":
            return [self._actions.view_menu(edit=True)]

        logger.warning("Unknown button payload", user_id=user_id, payload=payload)
        return []

    async def _on_category(self, user_id: int, category: Optional[str]) -> List[Reply]:
        state = self.states.get(user_id)
        if (
            state is None
            or state.command is not FlowCommand.WAITING_FOR_LEARNING
            or "content" not in state.data
        ):
            return []
        entry = await self._store.add_entry(
            user_id, state.data["content"], EntryOptions.build(category=category)
        )
        self.states.clear(user_id)
        return await self._after_entry(user_id, entry)

    # --- transitions ---

    def _begin_log(self, user_id: int) -> List[Reply]:
        self.states.start(user_id, FlowCommand.LOG)
        return [
            Reply(
                "🛠 <b>What did you work on today?</b>",
                force_reply=True,
                placeholder="I worked on...",
            )
        ]

    def _begin_learning(self, user_id: int) -> List[Reply]:
        self.states.start(user_id, FlowCommand.WAITING_FOR_LEARNING)
        return [
            Reply(
                "📚 <b>What did you learn today?</b>\n\n"
                "Tell me something new you discovered, understood, or mastered!\n\n"
                "💡 <i>Examples:</i>\n"
                "• Learned how to use async/await in Python\n"
                "• Discovered that octopuses have three hearts\n"
                "• Understood the concept of compound interest",
                force_reply=True,
                placeholder="I learned that...",
            )
        ]

    def _begin_quick_learn(self, user_id: int) -> List[Reply]:
        self.states.start(user_id, FlowCommand.QUICK_LEARN)
        return [
            Reply(
                "⚡ <b>Quick Learning Entry</b>\n\n"
                "Just type what you learned - I'll save it instantly!",
                force_reply=True,
                placeholder="Quick note...",
            )
        ]

    def _begin_search(self, user_id: int) -> List[Reply]:
        self.states.start(user_id, FlowCommand.SEARCH)
        return [
            Reply(
                "🔍 <b>Search Your Learnings</b>\n\nWhat topic would you like to search for?",
                force_reply=True,
                placeholder="Search for...",
            )
        ]

    def _begin_custom_goal(self, user_id: int) -> List[Reply]:
        self.states.start(user_id, FlowCommand.CUSTOM_GOAL)
        return [
            Reply(
                "🔢 Enter your custom daily goal (number of learnings per day, 1-50):",
                force_reply=True,
                edit=True,
            )
        ]

    def _begin_quiz_time(self, user_id: int, day: int) -> List[Reply]:
        self.states.start(user_id, FlowCommand.QUIZ_TIME, data={"day": day})
        return [
            Reply(
                f"🕰 <b>{menus.DAY_NAMES[day]}</b> it is. "
                "Which hour (0-23) should I send your weekly review?",
                force_reply=True,
                placeholder="e.g. 18",
            )
        ]

    async def _begin_inline_quiz(self, user_id: int) -> List[Reply]:
        entries = await self._actions.quiz_entries(user_id)
        if len(entries) < MIN_QUIZ_ENTRIES:
            return [
                Reply(
                    f"📚 You need at least {MIN_QUIZ_ENTRIES} learnings from the past "
                    "week for practice mode.\n\nKeep learning and come back later!",
                    buttons=menus.main_menu(),
                )
            ]
        question = await self._summarizer.get_next_question(entries, [])
        if question is None:
            return [Reply("😕 I couldn't come up with a question right now. Try /quiz instead.")]
        self.states.start(
            user_id,
            FlowCommand.INLINE_QUIZ,
            data={"entries": entries, "question": question},
        )
        return [
            Reply(
                f"🎯 <b>Practice Mode</b>\n\nAnswer in your own words.\n\n❓ {escape_html(question)}",
                buttons=menus.quiz_controls(),
                force_reply=True,
            )
        ]

    async def _after_entry(
        self, user_id: int, entry: Entry, topic: Optional[str] = None
    ) -> List[Reply]:
        """Progress confirmation, then a follow-up discussion if AI is available."""
        replies = [await self._actions.entry_saved(user_id)]
        if not self._summarizer.available:
            return replies

        question = await self._summarizer.generate_follow_up(topic or entry.content)
        self.states.start(
            user_id,
            FlowCommand.AI_CONVO,
            data={"entry_id": entry.id, "question": question},
        )
        replies.append(
            Reply(
                f"💭 {escape_html(question)}\n\n"
                "<i>Reply to continue our discussion or use /stop to end</i>",
                buttons=menus.conversation_controls(),
            )
        )
        return replies

    def _stop(self, user_id: int) -> List[Reply]:
        state = self.states.clear(user_id)
        if state is None:
            return [Reply("ℹ️ No active session to stop.")]
        logger.info("Conversation stopped", user_id=user_id, command=state.command.value)
        return [
            Reply(
                "✅ <b>Session ended!</b>\n\nGreat job on your learning session. Ready for more?",
                buttons=menus.main_menu(),
            )
        ]

    def _fail(self, user_id: int, what: str) -> List[Reply]:
        """Error boundary: log, drop the flow, apologise."""
        logger.exception("Conversation handler failed", user_id=user_id, action=what)
        self.states.clear(user_id)
        return [Reply(menus.GENERIC_ERROR)]


def _payload_int(payload: str) -> Optional[int]:
    try:
        return int(payload.rsplit("_", 1)[1])
    except (IndexError, ValueError):
        return None

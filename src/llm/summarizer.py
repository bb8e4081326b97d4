"""AI summarizer -- follow-up questions, weekly analysis and quiz questions.

Every public coroutine tolerates an unavailable provider: failures are logged
and converted to a user-visible apology (or ``None`` where the caller expects
"nothing"), never raised.
"""

import asyncio
import random
from typing import Any, Optional, Sequence

import structlog

from ..exceptions import CollaboratorUnavailable
from ..storage.models import CATEGORIES, Entry
from . import prompts
from .chat_provider import ChatProvider

logger = structlog.get_logger()

ANALYSIS_MODES = ("summary", "quiz", "insights")


def format_entries(entries: Sequence[Entry], limit: int = 50) -> str:
    """Render entries as a bulleted list for a prompt."""
    lines = []
    for entry in entries[-limit:]:
        label = f"[{entry.category}] " if entry.category else ""
        lines.append(f"- {entry.created_at:%Y-%m-%d} {label}{entry.content}")
    return "\n".join(lines)


class AISummarizer:
    """Prompt assembly around a chat completion provider."""

    def __init__(
        self,
        provider: Optional[ChatProvider],
        fast_model: Optional[str] = None,
        analysis_model: Optional[str] = None,
        rng: Optional[random.Random] = None,
        timeout: float = 30.0,
        max_quiz_questions: int = 5,
    ) -> None:
        self._provider = provider
        self._fast_model = fast_model
        self._analysis_model = analysis_model
        self._rng = rng or random.Random()
        self._timeout = timeout
        self._max_quiz_questions = max_quiz_questions

    @property
    def available(self) -> bool:
        return self._provider is not None

    async def _complete(self, **kwargs: Any) -> str:
        if self._provider is None:
            raise CollaboratorUnavailable("No AI provider configured")
        return await asyncio.wait_for(
            self._provider.complete(**kwargs), timeout=self._timeout
        )

    async def generate_follow_up(self, text: str) -> str:
        """One open-ended reflection question about ``text``."""
        if self._provider is None:
            return prompts.NOT_CONFIGURED
        focus = self._rng.choice(prompts.FOLLOW_UP_FOCUSES)
        try:
            question = await self._complete(
                prompt=text,
                system=prompts.FOLLOW_UP_SYSTEM.format(focus=focus),
                model=self._fast_model,
                max_tokens=100,
                temperature=0.8,
            )
        except (CollaboratorUnavailable, asyncio.TimeoutError) as exc:
            logger.warning("Follow-up generation failed", error=str(exc))
            return prompts.APOLOGY
        return question or prompts.APOLOGY

    async def generate_analysis(
        self, entries: Sequence[Entry], mode: str = "summary"
    ) -> str:
        """Summary, quiz or insights text for ``entries``."""
        if mode not in ANALYSIS_MODES:
            mode = "summary"
        if not entries:
            return prompts.EMPTY_ANALYSIS[mode]
        if self._provider is None:
            return prompts.NOT_CONFIGURED

        system, template = prompts.ANALYSIS_PROMPTS[mode]
        try:
            text = await self._complete(
                prompt=template.format(entries=format_entries(entries)),
                system=system,
                model=self._analysis_model,
                max_tokens=400,
                temperature=0.6,
            )
        except (CollaboratorUnavailable, asyncio.TimeoutError) as exc:
            logger.warning("Analysis generation failed", mode=mode, error=str(exc))
            return prompts.APOLOGY
        return text or prompts.APOLOGY

    async def get_next_question(
        self,
        entries: Sequence[Entry],
        history: Sequence[dict[str, str]],
    ) -> Optional[str]:
        """Next interactive quiz question, or ``None`` when exhausted.

        Provider failures also end the quiz (``None``).
        """
        if not entries or self._provider is None:
            return None
        if len(history) >= self._max_quiz_questions:
            return None

        transcript = "\n".join(
            f"Q: {item.get('question', '')}\nA: {item.get('answer', '')}"
            for item in history
        )
        prompt = f"Diary entries:\n{format_entries(entries)}"
        if transcript:
            prompt += f"\n\nQuestions so far:\n{transcript}"

        try:
            text = await self._complete(
                prompt=prompt,
                system=prompts.NEXT_QUESTION_SYSTEM,
                model=self._analysis_model,
                max_tokens=200,
                temperature=0.5,
            )
        except (CollaboratorUnavailable, asyncio.TimeoutError) as exc:
            logger.warning("Quiz question generation failed", error=str(exc))
            return None

        if not text or text.strip().upper().rstrip(".") == "DONE":
            return None
        return text

    async def suggest_category(self, content: str) -> Optional[str]:
        """Best-fitting category for ``content``, or ``None``."""
        if self._provider is None:
            return None
        try:
            suggestion = await self._complete(
                prompt=content,
                system=prompts.CATEGORY_SYSTEM.format(
                    categories="\n".join(f"- {c}" for c in CATEGORIES)
                ),
                model=self._fast_model,
                max_tokens=20,
                temperature=0.3,
            )
        except (CollaboratorUnavailable, asyncio.TimeoutError) as exc:
            logger.debug("Category suggestion failed", error=str(exc))
            return None
        suggestion = suggestion.strip()
        return suggestion if suggestion in CATEGORIES else None

    async def generate_recommendations(self, entries: Sequence[Entry]) -> str:
        """Topics to explore next, based on the latest entries."""
        if not entries:
            return (
                "🎯 Start logging your daily learnings, and I'll suggest related "
                "topics to explore!"
            )
        if self._provider is None:
            return prompts.NOT_CONFIGURED
        try:
            text = await self._complete(
                prompt=(
                    "Based on these recent learnings, what related topics would "
                    f"you recommend exploring next?\n\n{format_entries(entries, 10)}"
                ),
                system=prompts.RECOMMENDATIONS_SYSTEM,
                model=self._analysis_model,
                max_tokens=350,
                temperature=0.7,
            )
        except (CollaboratorUnavailable, asyncio.TimeoutError) as exc:
            logger.warning("Recommendation generation failed", error=str(exc))
            return prompts.APOLOGY
        return text or prompts.APOLOGY

    def motivational_message(self, kind: str, **data: Any) -> str:
        """Pick a canned encouragement for ``kind``."""
        templates = prompts.MOTIVATION_TEMPLATES.get(
            kind, prompts.MOTIVATION_TEMPLATES["comeback"]
        )
        if not data.get("streak"):
            templates = [t for t in templates if "{streak}" not in t] or templates
        data.setdefault("streak", 0)
        data.setdefault("count", 0)
        return self._rng.choice(templates).format(**data)

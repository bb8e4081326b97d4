"""Tests for AISummarizer."""

import asyncio
import random
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.exceptions import AIServiceError
from src.llm import prompts
from src.llm.summarizer import AISummarizer, format_entries
from src.storage.models import Entry


def make_entry(content: str, category=None, entry_id: int = 1) -> Entry:
    return Entry(
        id=entry_id,
        user_id=42,
        content=content,
        category=category,
        created_at=datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def provider() -> AsyncMock:
    provider = AsyncMock()
    provider.complete = AsyncMock(return_value="What did you find hardest?")
    return provider


@pytest.fixture
def summarizer(provider: AsyncMock) -> AISummarizer:
    return AISummarizer(
        provider,
        fast_model="fast",
        analysis_model="analysis",
        rng=random.Random(0),
        max_quiz_questions=3,
    )


@pytest.fixture
def entries():
    return [
        make_entry("Python generators", "Tech/Programming", 1),
        make_entry("Spanish subjunctive", "Language", 2),
    ]


class TestFormatEntries:
    def test_includes_date_category_and_content(self, entries) -> None:
        text = format_entries(entries)
        assert "- 2024-03-05 [Tech/Programming] Python generators" in text
        assert "- 2024-03-05 [Language] Spanish subjunctive" in text

    def test_limit_keeps_latest(self, entries) -> None:
        assert "Python" not in format_entries(entries, limit=1)


class TestFollowUp:
    async def test_returns_question(self, summarizer, provider) -> None:
        question = await summarizer.generate_follow_up("I learned about decorators")
        assert question == "What did you find hardest?"
        kwargs = provider.complete.call_args[1]
        assert kwargs["prompt"] == "I learned about decorators"
        assert kwargs["model"] == "fast"

    async def test_provider_failure_apologizes(self, summarizer, provider) -> None:
        """Failures never raise, they return an apology."""
        provider.complete.side_effect = AIServiceError("boom")
        assert await summarizer.generate_follow_up("x") == prompts.APOLOGY

    async def test_timeout_apologizes(self, provider) -> None:
        async def slow(**kwargs):
            await asyncio.sleep(1)
            return "late"

        provider.complete.side_effect = slow
        summarizer = AISummarizer(provider, timeout=0.01)
        assert await summarizer.generate_follow_up("x") == prompts.APOLOGY

    async def test_without_provider(self) -> None:
        summarizer = AISummarizer(None)
        assert not summarizer.available
        assert await summarizer.generate_follow_up("x") == prompts.NOT_CONFIGURED

    async def test_injected_rng_is_deterministic(self, provider) -> None:
        """The same seed picks the same reflection focus."""
        systems = []
        for _ in range(2):
            s = AISummarizer(provider, rng=random.Random(7))
            await s.generate_follow_up("x")
            systems.append(provider.complete.call_args[1]["system"])
        assert systems[0] == systems[1]


class TestAnalysis:
    @pytest.mark.parametrize("mode", ["summary", "quiz", "insights"])
    async def test_empty_entries_skip_provider(self, summarizer, provider, mode) -> None:
        assert await summarizer.generate_analysis([], mode) == prompts.EMPTY_ANALYSIS[mode]
        provider.complete.assert_not_called()

    async def test_uses_analysis_model_and_entries(
        self, summarizer, provider, entries
    ) -> None:
        provider.complete.return_value = "Great week!"
        assert await summarizer.generate_analysis(entries, "summary") == "Great week!"
        kwargs = provider.complete.call_args[1]
        assert kwargs["model"] == "analysis"
        assert "Spanish subjunctive" in kwargs["prompt"]

    async def test_unknown_mode_falls_back_to_summary(
        self, summarizer, provider, entries
    ) -> None:
        await summarizer.generate_analysis(entries, "poetry")
        system, _ = prompts.ANALYSIS_PROMPTS["summary"]
        assert provider.complete.call_args[1]["system"] == system

    async def test_failure_apologizes(self, summarizer, provider, entries) -> None:
        provider.complete.side_effect = AIServiceError("boom")
        assert await summarizer.generate_analysis(entries, "quiz") == prompts.APOLOGY


class TestNextQuestion:
    async def test_returns_question(self, summarizer, provider, entries) -> None:
        provider.complete.return_value = "What is a generator?"
        history = [{"question": "Q1", "answer": "A1"}]
        assert await summarizer.get_next_question(entries, history) == "What is a generator?"
        assert "Q: Q1\nA: A1" in provider.complete.call_args[1]["prompt"]

    async def test_done_ends_quiz(self, summarizer, provider, entries) -> None:
        provider.complete.return_value = "DONE."
        assert await summarizer.get_next_question(entries, []) is None

    async def test_question_cap(self, summarizer, provider, entries) -> None:
        history = [{"question": f"Q{i}", "answer": "A"} for i in range(3)]
        assert await summarizer.get_next_question(entries, history) is None
        provider.complete.assert_not_called()

    async def test_failure_returns_none(self, summarizer, provider, entries) -> None:
        provider.complete.side_effect = AIServiceError("boom")
        assert await summarizer.get_next_question(entries, []) is None

    async def test_no_entries(self, summarizer, provider) -> None:
        assert await summarizer.get_next_question([], []) is None


class TestSuggestCategory:
    async def test_known_category(self, summarizer, provider) -> None:
        provider.complete.return_value = " Science\n"
        assert await summarizer.suggest_category("Cell division") == "Science"

    async def test_unknown_category_dropped(self, summarizer, provider) -> None:
        provider.complete.return_value = "Astrology"
        assert await summarizer.suggest_category("Horoscopes") is None

    async def test_failure_returns_none(self, summarizer, provider) -> None:
        provider.complete.side_effect = AIServiceError("boom")
        assert await summarizer.suggest_category("x") is None


class TestRecommendations:
    async def test_without_entries(self, summarizer, provider) -> None:
        text = await summarizer.generate_recommendations([])
        assert "Start logging" in text
        provider.complete.assert_not_called()

    async def test_failure_apologizes(self, summarizer, provider, entries) -> None:
        provider.complete.side_effect = AIServiceError("boom")
        assert await summarizer.generate_recommendations(entries) == prompts.APOLOGY

    async def test_prompt_uses_latest_ten(self, summarizer, provider) -> None:
        entries = [make_entry(f"Fact {i}", entry_id=i) for i in range(15)]
        await summarizer.generate_recommendations(entries)
        prompt = provider.complete.call_args.kwargs["prompt"]
        assert "Fact 14" in prompt
        assert "Fact 5" in prompt
        assert "Fact 4" not in prompt


class TestMotivation:
    def test_nudge_with_zero_streak_avoids_streak_text(self) -> None:
        summarizer = AISummarizer(None, rng=random.Random(1))
        for _ in range(20):
            message = summarizer.motivational_message("nudge", streak=0)
            assert "streak" not in message

    def test_streak_is_formatted(self) -> None:
        summarizer = AISummarizer(None, rng=random.Random(1))
        message = summarizer.motivational_message("streak_milestone", streak=7)
        assert "{streak}" not in message

    def test_unknown_kind_uses_comeback(self) -> None:
        summarizer = AISummarizer(None, rng=random.Random(1))
        templates = [
            t.format(streak=0, count=0) for t in prompts.MOTIVATION_TEMPLATES["comeback"]
        ]
        assert summarizer.motivational_message("mystery") in templates

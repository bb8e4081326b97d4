"""OpenAI-compatible chat provider for OpenRouter, OpenAI and similar vendors.

Uses the openai SDK, which speaks OpenRouter's API when given its base_url.
"""

import time
from dataclasses import dataclass
from typing import Optional

import structlog
from openai import AsyncOpenAI, OpenAIError

from ..exceptions import AIServiceError

logger = structlog.get_logger()

# Approximate pricing per 1M tokens (input/output)
MODEL_PRICING = {
    "mistralai/mistral-7b-instruct": (0.03, 0.05),
    "qwen/qwen-coder-plus": (1.00, 5.00),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.00),
}

OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://github.com",
    "X-Title": "Learning Diary Bot",
}


def _estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimate cost based on known pricing."""
    pricing = MODEL_PRICING.get(model, (1.0, 3.0))
    return (input_tokens * pricing[0] + output_tokens * pricing[1]) / 1_000_000


@dataclass
class ChatResponse:
    """Response from a chat completion."""

    content: str
    model: str
    cost: float
    input_tokens: int
    output_tokens: int
    duration_ms: int


class ChatProvider:
    """OpenAI-compatible chat completion client."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        headers = OPENROUTER_HEADERS if base_url and "openrouter" in base_url else None
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            default_headers=headers,
        )
        self.model = model

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> ChatResponse:
        """Send chat completion request.

        Raises:
            AIServiceError: on any SDK error or an empty response.
        """
        used_model = model or self.model
        start = time.monotonic()

        try:
            response = await self.client.chat.completions.create(
                model=used_model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as exc:
            logger.warning("Chat completion failed", model=used_model, error=str(exc))
            raise AIServiceError(f"{used_model}: {exc}") from exc

        if not response.choices:
            raise AIServiceError(f"{used_model}: empty response")

        duration_ms = int((time.monotonic() - start) * 1000)
        choice = response.choices[0]
        usage = response.usage

        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return ChatResponse(
            content=(choice.message.content or "").strip(),
            model=response.model or used_model,
            cost=_estimate_cost(used_model, input_tokens, output_tokens),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )

    async def complete(
        self,
        prompt: str,
        system: str = "",
        model: Optional[str] = None,
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> str:
        """Single-turn completion with an optional system prompt."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        response = await self.chat(
            messages=messages,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.content

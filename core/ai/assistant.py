"""Trading chat assistant backed by a selectable LLM provider."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from core.ai.providers import LLMError, ProviderRegistry, default_registry
from core.ai.types import ChatMessage, ChatReply, ResponseType

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a professional cryptocurrency trading assistant. You provide expert analysis, trading advice, and market insights.

Key responsibilities:
- Analyze market trends and provide actionable insights
- Suggest trading strategies based on technical and fundamental analysis
- Help with risk management and position sizing
- Explain complex crypto concepts in simple terms
- Provide alerts about important market movements
- Stay up-to-date with crypto news and developments

Always be professional, accurate, and helpful. If you're uncertain about something, say so rather than guessing."""

DEFAULT_MODEL = "openrouter"
CONTEXT_WINDOW = 10
TEMPERATURE = 0.7
MAX_TOKENS = 1000

PLACEHOLDER_RESPONSE = (
    "I'm a crypto trading assistant. I can help you analyze markets, suggest strategies, "
    "and provide trading insights. However, I need an API key to be configured to provide "
    "real-time analysis."
)
FALLBACK_RESPONSE = (
    "I'm experiencing technical difficulties. Please try again or check your API configuration in settings."
)
EMPTY_RESPONSE = "No response generated"

_TYPE_KEYWORDS: tuple[tuple[ResponseType, tuple[str, ...]], ...] = (
    ("analysis", ("analysis", "chart")),
    ("advice", ("advice", "strategy")),
    ("alert", ("alert", "warning")),
)


class AssistantError(Exception):
    """The upstream provider failed to produce a reply."""


def classify_response(text: str) -> ResponseType:
    lowered = text.lower()
    for response_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return response_type
    return "general"


def _context_messages(context: Iterable[Any]) -> list[ChatMessage]:
    messages: list[ChatMessage] = []
    for item in context:
        if not isinstance(item, dict):
            continue
        role = item.get("role")
        content = item.get("content")
        if role in ("user", "assistant", "system") and isinstance(content, str):
            messages.append({"role": role, "content": content})
    return messages[-CONTEXT_WINDOW:]


class ChatAssistant:
    def __init__(self, registry: Optional[ProviderRegistry] = None) -> None:
        self._registry = registry or default_registry()

    async def chat(
        self,
        message: str,
        *,
        model: str = DEFAULT_MODEL,
        context: Iterable[Any] = (),
    ) -> ChatReply:
        """Answer ``message`` using the provider named by ``model``.

        Unknown providers and missing keys produce a placeholder reply rather
        than an error.

        Raises:
            AssistantError: when the provider request fails.
        """
        provider = self._registry.get(model)
        if provider is None:
            logger.info("No chat provider named %r, returning placeholder", model)
            return ChatReply(response=PLACEHOLDER_RESPONSE, type="general")

        if not provider.has_credentials():
            return ChatReply(
                response=(
                    f"{model.upper()} API key not configured. "
                    "Please add it in the API settings to enable AI assistance."
                ),
                type="general",
            )

        messages: list[ChatMessage] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            *_context_messages(context),
            {"role": "user", "content": message},
        ]
        try:
            completion = await provider.complete(messages, temperature=TEMPERATURE, max_tokens=MAX_TOKENS)
        except LLMError as exc:
            logger.error("AI chat request to %s failed: %s", model, exc)
            raise AssistantError(str(exc)) from exc

        text = completion.text or EMPTY_RESPONSE
        return ChatReply(response=text, type=classify_response(text), model=model)

    async def close(self) -> None:
        await self._registry.close_all()

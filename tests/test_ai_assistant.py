"""Tests for the trading chat assistant."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from core.ai import AssistantError, ChatAssistant, classify_response
from core.ai.assistant import CONTEXT_WINDOW, EMPTY_RESPONSE, PLACEHOLDER_RESPONSE, SYSTEM_PROMPT
from core.ai.providers import ProviderRegistry, TransientError
from core.ai.types import ChatCompletion, ProviderName


def fake_provider(name: ProviderName, *, text: str = "", has_key: bool = True, error: Exception | None = None):
    provider = MagicMock()
    provider.name = name
    provider.has_credentials.return_value = has_key
    provider.complete = AsyncMock(
        side_effect=error,
        return_value=ChatCompletion(provider=name, model="m", text=text),
    )
    provider.close = AsyncMock()
    return provider


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Here is my chart analysis", "analysis"),
        ("My advice: dollar cost average", "advice"),
        ("Consider a grid STRATEGY", "advice"),
        ("Warning: high volatility", "alert"),
        ("Hello there", "general"),
        ("An alert about this analysis", "analysis"),
    ],
)
def test_classify_response(text, expected):
    assert classify_response(text) == expected


@pytest.mark.asyncio
async def test_unknown_model_returns_placeholder():
    assistant = ChatAssistant(ProviderRegistry())
    reply = await assistant.chat("hi", model="claude")
    assert reply.response == PLACEHOLDER_RESPONSE
    assert reply.to_dict() == {"response": PLACEHOLDER_RESPONSE, "type": "general"}


@pytest.mark.asyncio
async def test_missing_key_message():
    provider = fake_provider(ProviderName.GROQ, has_key=False)
    assistant = ChatAssistant(ProviderRegistry([provider]))

    reply = await assistant.chat("hi", model="groq")

    assert reply.response.startswith("GROQ API key not configured.")
    assert reply.type == "general"
    provider.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_chat_builds_prompt_with_context_window():
    provider = fake_provider(ProviderName.OPENROUTER, text="Strategy: buy the dip")
    assistant = ChatAssistant(ProviderRegistry([provider]))
    context = [{"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"} for i in range(15)]
    context.append("not a message")

    reply = await assistant.chat("What now?", model="openrouter", context=context)

    assert reply.to_dict() == {"response": "Strategy: buy the dip", "type": "advice", "model": "openrouter"}
    messages = provider.complete.await_args.args[0]
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[-1] == {"role": "user", "content": "What now?"}
    history = messages[1:-1]
    assert len(history) == CONTEXT_WINDOW
    assert history[0]["content"] == "m5"
    assert provider.complete.await_args.kwargs == {"temperature": 0.7, "max_tokens": 1000}


@pytest.mark.asyncio
async def test_empty_completion():
    provider = fake_provider(ProviderName.OPENAI, text="")
    assistant = ChatAssistant(ProviderRegistry([provider]))
    reply = await assistant.chat("hi", model="openai")
    assert reply.response == EMPTY_RESPONSE


@pytest.mark.asyncio
async def test_provider_failure_raises_assistant_error():
    provider = fake_provider(ProviderName.DEEPSEEK, error=TransientError("upstream 503", 503))
    assistant = ChatAssistant(ProviderRegistry([provider]))

    with pytest.raises(AssistantError, match="upstream 503"):
        await assistant.chat("hi", model="deepseek")


@pytest.mark.asyncio
async def test_close_closes_providers():
    provider = fake_provider(ProviderName.OPENAI)
    assistant = ChatAssistant(ProviderRegistry([provider]))
    await assistant.close()
    provider.close.assert_awaited_once()

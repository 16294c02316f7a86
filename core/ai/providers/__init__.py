"""LLM provider adapters: abstract base, registry and the chat providers."""

from __future__ import annotations

from .base import LLMError, LLMProvider, PermanentError, ProviderRegistry, TransientError
from .deepseek import DeepSeekProvider
from .groq import GroqProvider
from .openai import OpenAIProvider
from .openrouter import OpenRouterProvider

__all__ = [
    "DeepSeekProvider",
    "GroqProvider",
    "LLMError",
    "LLMProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "PermanentError",
    "ProviderRegistry",
    "TransientError",
    "default_registry",
]


def default_registry() -> ProviderRegistry:
    return ProviderRegistry(
        [OpenRouterProvider(), OpenAIProvider(), GroqProvider(), DeepSeekProvider()]
    )

"""AI chat assistant.

Submodules:
- providers: OpenAI-compatible chat adapters (OpenRouter, OpenAI, Groq, DeepSeek)
- assistant: ChatAssistant, the trading assistant prompt and reply classification
- types:     Shared dataclasses and enums
"""

from core.ai.assistant import AssistantError, ChatAssistant, classify_response
from core.ai.types import ChatCompletion, ChatMessage, ChatReply, ProviderConfig, ProviderName

__all__ = [
    "AssistantError",
    "ChatAssistant",
    "ChatCompletion",
    "ChatMessage",
    "ChatReply",
    "ProviderConfig",
    "ProviderName",
    "classify_response",
]

"""Shared dataclasses and enums for the AI assistant."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, TypedDict


class ProviderName(str, Enum):
    """Chat providers selectable from the dashboard."""

    OPENROUTER = "openrouter"  # OpenAI-compatible gateway
    OPENAI = "openai"
    GROQ = "groq"
    DEEPSEEK = "deepseek"


ResponseType = Literal["analysis", "advice", "alert", "general"]


class ChatMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration for an LLM provider."""

    name: ProviderName
    api_key_env: str  # e.g. "GROQ_API_KEY"
    base_url: str  # e.g. "https://api.groq.com/openai"
    default_model: str
    max_tokens: int = 1000
    temperature: float = 0.7
    timeout_seconds: int = 60
    rate_limit_rpm: int = 60  # requests per minute
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    extra_headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ChatCompletion:
    """A single chat-completion result."""

    provider: ProviderName
    model: str
    text: str
    tokens_in: int = 0
    tokens_out: int = 0
    latency_ms: float = 0.0


@dataclass(frozen=True)
class ChatReply:
    """What the assistant returns to the dashboard."""

    response: str
    type: ResponseType = "general"
    model: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"response": self.response, "type": self.type}
        if self.model is not None:
            data["model"] = self.model
        return data

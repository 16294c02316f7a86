"""Groq provider adapter (OpenAI-compatible API under ``/openai``)."""

from __future__ import annotations

import httpx

from core.ai.providers.openai import OpenAIProvider
from core.ai.types import ProviderConfig, ProviderName

GROQ_CONFIG = ProviderConfig(
    name=ProviderName.GROQ,
    api_key_env="GROQ_API_KEY",
    base_url="https://api.groq.com/openai",
    default_model="llama-3.1-70b-versatile",
    timeout_seconds=30,
    rate_limit_rpm=30,
)


class GroqProvider(OpenAIProvider):
    def __init__(self, config: ProviderConfig | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(config or GROQ_CONFIG, transport=transport)

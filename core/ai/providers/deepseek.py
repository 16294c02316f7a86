"""DeepSeek provider adapter (V3 chat model)."""

from __future__ import annotations

import httpx

from core.ai.providers.openai import OpenAIProvider
from core.ai.types import ProviderConfig, ProviderName

DEEPSEEK_CONFIG = ProviderConfig(
    name=ProviderName.DEEPSEEK,
    api_key_env="DEEPSEEK_API_KEY",
    base_url="https://api.deepseek.com",
    default_model="deepseek-chat",
    timeout_seconds=60,
)


class DeepSeekProvider(OpenAIProvider):
    def __init__(self, config: ProviderConfig | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(config or DEEPSEEK_CONFIG, transport=transport)

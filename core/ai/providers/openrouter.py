"""OpenRouter provider adapter (OpenAI-compatible gateway).

OpenRouter routes requests to multiple upstream models. Model names are
namespaced (e.g. ``openai/gpt-4o-mini``).
"""

from __future__ import annotations

import os

import httpx

from core.ai.providers.openai import OpenAIProvider
from core.ai.types import ProviderConfig, ProviderName


def _openrouter_headers() -> dict[str, str]:
    # OpenRouter recommends sending HTTP-Referer and X-Title.
    return {
        "HTTP-Referer": os.environ.get("OPENROUTER_HTTP_REFERER", "").strip()
        or "https://crypto-trading-simulator.com",
        "X-Title": os.environ.get("OPENROUTER_X_TITLE", "").strip() or "Crypto Trading Simulator",
    }


def openrouter_config() -> ProviderConfig:
    return ProviderConfig(
        name=ProviderName.OPENROUTER,
        api_key_env="OPENROUTER_API_KEY",
        base_url="https://openrouter.ai/api",
        default_model="openai/gpt-4o-mini",
        timeout_seconds=90,
        extra_headers=_openrouter_headers(),
    )


class OpenRouterProvider(OpenAIProvider):
    def __init__(self, config: ProviderConfig | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(config or openrouter_config(), transport=transport)

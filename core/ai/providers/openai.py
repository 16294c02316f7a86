"""OpenAI provider adapter and the shared chat-completions implementation."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from core.ai.providers.base import LLMProvider, PermanentError
from core.ai.types import ChatCompletion, ChatMessage, ProviderConfig, ProviderName

logger = logging.getLogger(__name__)

OPENAI_CONFIG = ProviderConfig(
    name=ProviderName.OPENAI,
    api_key_env="OPENAI_API_KEY",
    base_url="https://api.openai.com",
    default_model="gpt-4o-mini",
)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions (``POST /v1/chat/completions``).

    OpenRouter, Groq and DeepSeek speak the same protocol and subclass this
    with their own config.
    """

    completions_path = "/v1/chat/completions"

    def __init__(self, config: ProviderConfig | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(config or OPENAI_CONFIG)
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={"Content-Type": "application/json", **self.config.extra_headers},
                timeout=httpx.Timeout(self.config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletion:
        model = model or self.config.default_model
        payload = {
            "model": model,
            "messages": list(messages),
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
        }

        start = time.monotonic()
        data = await self._request(
            self._get_client(),
            "POST",
            self.completions_path,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key()}"},
        )
        latency = round((time.monotonic() - start) * 1000, 2)

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise PermanentError(f"{self.name.value} returned no choices") from exc

        usage = data.get("usage") or {}
        logger.info("%s completion: model=%s latency=%.0fms", self.name.value, model, latency)
        return ChatCompletion(
            provider=self.name,
            model=data.get("model") or model,
            text=text,
            tokens_in=usage.get("prompt_tokens", 0),
            tokens_out=usage.get("completion_tokens", 0),
            latency_ms=latency,
        )

"""Base LLM provider interface and provider registry."""

from __future__ import annotations

import asyncio
import logging
import os
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Sequence

import httpx

from core.ai.types import ChatCompletion, ChatMessage, ProviderConfig, ProviderName

logger = logging.getLogger(__name__)

# Retried with backoff; every other 4xx fails immediately.
TRANSIENT_STATUS_CODES = frozenset({408, 425, 429})


class TokenBucket:
    """Per-provider request budget, refilled continuously at ``rate_per_minute``."""

    _instances: dict[ProviderName, "TokenBucket"] = {}

    def __init__(self, rate_per_minute: int, provider: ProviderName) -> None:
        self.capacity = rate_per_minute
        self.tokens = float(rate_per_minute)
        self.rate_per_second = rate_per_minute / 60.0
        self.last_update = time.monotonic()
        self.provider = provider
        self._lock = asyncio.Lock()

    @classmethod
    def get_instance(cls, provider: ProviderName, rate_per_minute: int) -> "TokenBucket":
        bucket = cls._instances.get(provider)
        if bucket is None:
            bucket = cls._instances[provider] = cls(rate_per_minute, provider)
        return bucket

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_update) * self.rate_per_second)
        self.last_update = now

    async def acquire(self, tokens: int = 1) -> None:
        async with self._lock:
            self._refill()
            while self.tokens < tokens:
                wait_time = (tokens - self.tokens) / self.rate_per_second
                logger.debug("%s request budget spent, waiting %.2fs", self.provider.value, wait_time)
                await asyncio.sleep(min(wait_time, 1.0))
                self._refill()
            self.tokens -= tokens


class LLMError(Exception):
    """A chat provider call failed."""

    def __init__(self, message: str, is_transient: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.is_transient = is_transient
        self.status_code = status_code


class TransientError(LLMError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, is_transient=True, status_code=status_code)


class PermanentError(LLMError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, is_transient=False, status_code=status_code)


def classify_http_error(status_code: int, message: str) -> LLMError:
    if status_code >= 500 or status_code in TRANSIENT_STATUS_CODES:
        return TransientError(message, status_code)
    return PermanentError(message, status_code)


def calculate_backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: bool = True) -> float:
    """Exponential backoff for ``attempt`` (0-based), optionally scaled by 0.5-1.5."""
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


class LLMProvider(ABC):
    """Abstract base class for the chat provider adapters.

    Subclasses build the request payload and parse the reply; this class
    owns the API key lookup, the shared rate limit and retries.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> ProviderName:
        return self.config.name

    def api_key(self) -> str:
        """Read the key at call time so rotation needs no restart."""
        return os.environ.get(self.config.api_key_env, "").strip()

    def has_credentials(self) -> bool:
        return bool(self.api_key())

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict[str, Any]:
        await TokenBucket.get_instance(self.name, self.config.rate_limit_rpm).acquire()
        try:
            resp = await client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise classify_http_error(
                e.response.status_code,
                f"{self.name.value} {url} failed: {e.response.status_code} {e.response.text[:200]}",
            ) from e
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise TransientError(f"{self.name.value} {url} unreachable: {e}") from e
        except ValueError as e:
            raise PermanentError(f"{self.name.value} {url} returned invalid JSON: {e}") from e

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict[str, Any]:
        """Send with up to ``config.max_retries`` retries on transient failures.

        Raises:
            TransientError: retries exhausted
            PermanentError: rejected by the provider
        """
        attempt = 0
        while True:
            try:
                return await self._send(client, method, url, **kwargs)
            except TransientError as e:
                if attempt >= self.config.max_retries:
                    logger.error("%s gave up after %d retries: %s", self.name.value, attempt, e)
                    raise
                delay = calculate_backoff_delay(attempt, self.config.retry_base_delay, self.config.retry_max_delay)
                attempt += 1
                logger.warning(
                    "%s transient failure (attempt %d/%d): %s. Retrying in %.2fs",
                    self.name.value,
                    attempt,
                    self.config.max_retries + 1,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletion:
        """Send a chat-completion request and return the reply text."""

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class ProviderRegistry:
    """Providers by ``ProviderName``."""

    def __init__(self, providers: Sequence[LLMProvider] = ()) -> None:
        self._providers: dict[ProviderName, LLMProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: LLMProvider) -> None:
        self._providers[provider.name] = provider
        logger.info("Registered LLM provider: %s", provider.name.value)

    def get(self, name: str | ProviderName) -> LLMProvider | None:
        try:
            key = ProviderName(name)
        except ValueError:
            return None
        return self._providers.get(key)

    def all(self) -> dict[ProviderName, LLMProvider]:
        return dict(self._providers)

    async def close_all(self) -> None:
        for provider in self._providers.values():
            await provider.close()

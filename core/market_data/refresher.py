from __future__ import annotations

import asyncio
import contextlib
import logging

from core.market_data.coingecko import MarketDataError
from core.market_data.service import MarketDataService
from core.storage import StoreError

logger = logging.getLogger(__name__)


class MarketDataRefresher:
    """Background task calling ``MarketDataService.refresh`` every ``interval_seconds``."""

    def __init__(self, service: MarketDataService, *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._service = service
        self._interval = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=1.0)
        except asyncio.TimeoutError:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                result = await asyncio.to_thread(self._service.refresh)
                logger.debug("Scheduled market data refresh: %s rows", result.get("count"))
            except (MarketDataError, StoreError) as exc:
                logger.warning("Scheduled market data refresh failed: %s", exc)
            self.runs += 1

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)

"""In-process change feed pushed to WebSocket subscribers.

Store mutations may be committed from a worker thread (sync route handlers),
so ``publish`` hands each change to the event loop captured in ``attach``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from core.storage import Stores
from core.types import TableChange

logger = logging.getLogger(__name__)


class WebSocketLike(Protocol):
    async def send_json(self, data: object) -> None: ...


@dataclass
class Subscription:
    user_id: str
    tables: set[str] = field(default_factory=set)

    def wants(self, change: TableChange) -> bool:
        if change.user_id != self.user_id:
            return False
        return not self.tables or change.table in self.tables


class ChangeFeed:
    """Fan out ``TableChange`` events to the owning user's sockets."""

    def __init__(self) -> None:
        self._connections: dict[WebSocketLike, Subscription] = {}
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stores: Stores | None = None
        self._pending: set[asyncio.Task] = set()

    def attach(self, stores: Stores) -> None:
        """Start listening to ``stores``. Must be called from the event loop."""
        self._loop = asyncio.get_running_loop()
        self._stores = stores
        stores.add_listener(self.publish)

    def detach(self) -> None:
        if self._stores is not None:
            self._stores.remove_listener(self.publish)
        self._stores = None
        self._loop = None

    async def connect(self, websocket: WebSocketLike, *, user_id: str, tables: Optional[Iterable[str]] = None) -> None:
        async with self._lock:
            self._connections[websocket] = Subscription(user_id=user_id, tables=set(tables or ()))

    async def update_subscription(self, websocket: WebSocketLike, *, tables: Iterable[str]) -> None:
        async with self._lock:
            state = self._connections.get(websocket)
            if state is not None:
                state.tables = set(tables)

    async def disconnect(self, websocket: WebSocketLike) -> None:
        async with self._lock:
            self._connections.pop(websocket, None)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def publish(self, change: TableChange) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._schedule, change)

    def _schedule(self, change: TableChange) -> None:
        task = asyncio.create_task(self.broadcast(change))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def broadcast(self, change: TableChange) -> None:
        async with self._lock:
            connections = list(self._connections.items())

        message = change.to_message()
        failures: list[WebSocketLike] = []
        for websocket, state in connections:
            if not state.wants(change):
                continue
            try:
                await websocket.send_json(message)
            except Exception:
                logger.warning("Failed to send change event to websocket", exc_info=True)
                failures.append(websocket)

        for websocket in failures:
            await self.disconnect(websocket)

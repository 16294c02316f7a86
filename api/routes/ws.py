"""WebSocket routes: the mock market feed and the table change channel."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.responses import PlainTextResponse

from api.deps import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def _split(raw: Optional[str]) -> set[str]:
    return {part.strip() for part in (raw or "").split(",") if part.strip()}


@router.get("/ws/market-feed", include_in_schema=False)
async def market_feed_http() -> PlainTextResponse:
    return PlainTextResponse("Expected WebSocket connection", status_code=400)


@router.websocket("/ws/market-feed")
async def market_feed(websocket: WebSocket, services: Services = Depends(get_services)) -> None:
    feed = services.market_feed()
    send_lock = asyncio.Lock()

    async def send(message: dict[str, Any]) -> None:
        async with send_lock:
            await websocket.send_json(message)

    await websocket.accept()
    logger.info("Client connected to real-time market feed")

    stop_event = asyncio.Event()
    streamer = asyncio.create_task(feed.stream(send, stop_event))
    try:
        while True:
            raw = await websocket.receive_text()
            await send(feed.handle_message(raw))
    except WebSocketDisconnect:
        logger.info("Client disconnected from real-time market feed")
    finally:
        stop_event.set()
        streamer.cancel()
        try:
            await streamer
        except asyncio.CancelledError:
            pass
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("Market feed stream ended after disconnect", exc_info=True)


@router.websocket("/ws/changes")
async def table_changes(
    websocket: WebSocket,
    user_id: Optional[str] = Query(None),
    tables: Optional[str] = Query(None, description="Comma-separated table names"),
    services: Services = Depends(get_services),
) -> None:
    user_id = user_id or websocket.headers.get("x-user-id")
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    feed = services.change_feed
    await feed.connect(websocket, user_id=user_id, tables=_split(tables))
    await websocket.accept()

    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except ValueError:
                await websocket.send_json({"type": "error", "message": "Invalid message format"})
                continue
            if not isinstance(message, dict):
                continue
            action = message.get("action") or message.get("type")
            if action == "subscribe":
                wanted = {str(t) for t in message.get("tables", []) if t}
                await feed.update_subscription(websocket, tables=wanted)
                await websocket.send_json({"type": "subscribed", "tables": sorted(wanted)})
            elif action == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await feed.disconnect(websocket)

from __future__ import annotations

import asyncio
import json
import logging
from typing import Set
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from eyesonyou.deps import get_engine_svc
from eyesonyou.schemas.events import WsMessage

logger = logging.getLogger("eyesonyou.ws")
router = APIRouter()


class WsHub:
    """Fan-out of engine messages to display / UI collaborators."""

    def __init__(self):
        self._clients: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        async with self._lock:
            self._clients.add(ws)

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(ws)

    async def broadcast(self, message: dict) -> None:
        # Copy references to avoid mutation while iterating
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return

        logger.debug("Broadcasting %s to %d client(s)", message.get("kind", "?"), len(clients))
        payload = json.dumps(message, ensure_ascii=False)
        dead = []
        for ws in clients:
            try:
                await ws.send_text(payload)
            except Exception:
                dead.append(ws)
        # Clean dead sockets
        for ws in dead:
            await self.disconnect(ws)


hub = WsHub()


@router.websocket("/ws/engine")
async def ws_engine(ws: WebSocket):
    logger.info("WS connect")
    await hub.connect(ws)

    # New clients need the current display preferences before any anchor
    try:
        svc = get_engine_svc()
        msg = WsMessage(kind="display", data=svc.display_preferences().model_dump())
        await ws.send_text(msg.model_dump_json())
    except Exception as e:
        logger.warning("WS initial state failed: %s", e)

    try:
        while True:
            _ = await ws.receive_text()
    except WebSocketDisconnect:
        logger.info("WS disconnect")
        await hub.disconnect(ws)
    except Exception:
        logger.info("WS error/disconnect")
        await hub.disconnect(ws)

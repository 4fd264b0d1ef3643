from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from campusride.core.dependencies import get_chat_relay
from campusride.core.settings import settings
from campusride.services.chat_relay import ChatRelay

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket(settings.ws_path)
async def chat_ws(
    websocket: WebSocket,
    relay: ChatRelay = Depends(get_chat_relay),
) -> None:
    registry = relay.registry
    await websocket.accept()
    handle = registry.register(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            try:
                relay.handle_frame(handle, raw)
            except Exception:
                # Nothing was broadcast; keep the socket for the next frame.
                logger.exception("Failed to process frame from connection %s", handle)
    except WebSocketDisconnect:
        return
    finally:
        registry.unregister(handle)

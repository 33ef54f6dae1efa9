from __future__ import annotations

import asyncio
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from friend_chat.infrastructure.ws.protocol import WsOutbound


class WebSocketConnection:
    """Connection handle over a FastAPI WebSocket.

    Frames are serialized through a lock because events for one socket may
    be produced by several connection lifecycles at once.
    """

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws
        self._send_lock = asyncio.Lock()

    async def send(self, event_type: str, data: dict[str, Any]) -> None:
        await self.send_frame(WsOutbound(type=event_type, data=data))

    async def send_frame(self, frame: WsOutbound) -> None:
        raw = frame.model_dump_json()
        async with self._send_lock:
            await self._ws.send_text(raw)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._ws.application_state == WebSocketState.DISCONNECTED:
            return
        await self._ws.close(code=code, reason=reason)

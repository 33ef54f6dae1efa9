from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PayloadError

from friend_chat.api.deps import (
    UoWFactory,
    get_event_sink,
    get_presence,
    get_sessions,
    get_uow_factory,
    get_verifier,
)
from friend_chat.api.middleware.correlation_id import HEADER as CORRELATION_HEADER
from friend_chat.api.middleware.correlation_id import bound_correlation_id
from friend_chat.application.dto.events import OutboundEvent
from friend_chat.application.dto.principal import Principal
from friend_chat.application.exceptions import AppError, AuthenticationError
from friend_chat.application.ports.auth import TokenVerifier
from friend_chat.application.ports.bus import EventSink
from friend_chat.application.ports.sessions import Connection, SessionRegistry
from friend_chat.application.uow import UnitOfWork
from friend_chat.config import settings
from friend_chat.domain.value_objects.enums import ServerEvent
from friend_chat.infrastructure.ws.connection import WebSocketConnection
from friend_chat.infrastructure.ws.protocol import (
    INTERNAL_ERROR,
    MALFORMED_ENVELOPE,
    WsInbound,
    WsOutbound,
)
from friend_chat.services import realtime
from friend_chat.services.presence_service import PresenceBroadcaster

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

CLOSE_AUTH_FAILED = 4001
CLOSE_REPLACED = 4000


def _bearer_token(ws: WebSocket) -> str | None:
    header = ws.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


async def _authenticate(
    verifier: TokenVerifier,
    token: str | None,
    uow_factory: UoWFactory,
) -> Principal | None:
    if not token:
        return None
    try:
        principal = await verifier.verify(token)
    except AuthenticationError:
        logger.debug("WS auth failed", exc_info=True)
        return None
    async with uow_factory() as uow:
        user = await uow.users.get_by_id(principal.user_id)
    if user is None:
        logger.info("WS token for unknown user %s rejected", principal.user_id)
        return None
    return principal


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
    sessions: Annotated[SessionRegistry, Depends(get_sessions)],
    presence: Annotated[PresenceBroadcaster, Depends(get_presence)],
    uow_factory: Annotated[UoWFactory, Depends(get_uow_factory)],
    sink: Annotated[EventSink, Depends(get_event_sink)],
    token: str | None = Query(None),
) -> None:
    with bound_correlation_id(websocket.headers.get(CORRELATION_HEADER)):
        await _serve(websocket, verifier, sessions, presence, uow_factory, sink, token)


async def _serve(
    websocket: WebSocket,
    verifier: TokenVerifier,
    sessions: SessionRegistry,
    presence: PresenceBroadcaster,
    uow_factory: UoWFactory,
    sink: EventSink,
    token: str | None,
) -> None:
    principal = await _authenticate(verifier, token or _bearer_token(websocket), uow_factory)
    # Accept first so the client can see the close code.
    await websocket.accept()
    if principal is None:
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")
        return

    user_id = principal.user_id
    connection = WebSocketConnection(websocket)
    displaced = sessions.register(user_id, connection)
    if displaced is not None:
        await _close_displaced(displaced, user_id)
    logger.info("WS connected: %s", user_id)

    await _presence(presence.user_connected, user_id, uow_factory)

    heartbeat_task = asyncio.create_task(
        _heartbeat(connection), name=f"ws-heartbeat-{user_id}",
    )
    try:
        await _read_loop(websocket, connection, principal, sink, uow_factory)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", user_id)
    finally:
        heartbeat_task.cancel()
        # A replaced connection must not take its successor offline.
        if sessions.unregister(user_id, connection):
            await _presence(presence.user_disconnected, user_id, uow_factory)
        logger.info("WS disconnected: %s", user_id)


async def _close_displaced(connection: Connection, user_id: UUID) -> None:
    try:
        await connection.close(code=CLOSE_REPLACED, reason="Replaced by a newer connection")
    except Exception:
        logger.debug("Closing displaced connection of %s failed", user_id, exc_info=True)


async def _presence(
    transition: Callable[[UUID, UnitOfWork], Awaitable[list[OutboundEvent]]],
    user_id: UUID,
    uow_factory: UoWFactory,
) -> None:
    try:
        async with uow_factory() as uow:
            await transition(user_id, uow)
    except Exception:
        logger.warning("Presence update for %s dropped", user_id, exc_info=True)


async def _heartbeat(connection: WebSocketConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await connection.send(ServerEvent.PONG, {})
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(
    ws: WebSocket,
    connection: WebSocketConnection,
    principal: Principal,
    sink: EventSink,
    uow_factory: UoWFactory,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PayloadError:
            await connection.send_frame(MALFORMED_ENVELOPE)
            continue

        try:
            async with uow_factory() as uow:
                events = await realtime.dispatch(principal, msg.type, msg.data, uow)
        except AppError as exc:
            await connection.send_frame(WsOutbound.from_app_error(exc))
            continue
        except Exception:
            logger.exception("Handling %s for %s failed", msg.type, principal.user_id)
            await connection.send_frame(INTERNAL_ERROR)
            continue

        await sink.deliver(events)

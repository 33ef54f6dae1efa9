"""Dispatch table for client→server realtime events.

Each handler is a function of (principal, payload, unit of work) returning
the events to push; it knows nothing about the transport.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable

from pydantic import ValidationError as PayloadError

from friend_chat.application.dto.events import OutboundEvent
from friend_chat.application.dto.inbound import (
    FriendRequestPayload,
    FriendRequestResponsePayload,
    MarkReadPayload,
    SendMessagePayload,
    TypingPayload,
)
from friend_chat.application.dto.message import SendMessageDTO
from friend_chat.application.dto.principal import Principal
from friend_chat.application.exceptions import ValidationError
from friend_chat.application.uow import UnitOfWork
from friend_chat.domain.value_objects.enums import ClientEvent, ServerEvent
from friend_chat.services import message_service, relationship_service

Handler = Callable[[Principal, dict[str, Any], UnitOfWork], Awaitable[list[OutboundEvent]]]


async def _send_message(
    principal: Principal, data: dict[str, Any], uow: UnitOfWork,
) -> list[OutboundEvent]:
    payload = SendMessagePayload.model_validate(data)
    dto = SendMessageDTO(
        receiver_id=payload.receiver_id,
        content=payload.content,
        type=payload.message_type,
        reply_to=payload.reply_to,
        file_url=payload.file_url,
        file_name=payload.file_name,
        file_size=payload.file_size,
    )
    _view, events = await message_service.send_message(principal.user_id, dto, uow)
    return events


async def _typing_start(
    principal: Principal, data: dict[str, Any], uow: UnitOfWork,
) -> list[OutboundEvent]:
    payload = TypingPayload.model_validate(data)
    return await message_service.typing(principal.user_id, payload.receiver_id, True, uow)


async def _typing_stop(
    principal: Principal, data: dict[str, Any], uow: UnitOfWork,
) -> list[OutboundEvent]:
    payload = TypingPayload.model_validate(data)
    return await message_service.typing(principal.user_id, payload.receiver_id, False, uow)


async def _mark_read(
    principal: Principal, data: dict[str, Any], uow: UnitOfWork,
) -> list[OutboundEvent]:
    payload = MarkReadPayload.model_validate(data)
    _msg, events = await message_service.mark_read(principal.user_id, payload.message_id, uow)
    return events


async def _friend_request(
    principal: Principal, data: dict[str, Any], uow: UnitOfWork,
) -> list[OutboundEvent]:
    payload = FriendRequestPayload.model_validate(data)
    _request, events = await relationship_service.send_request(
        principal.user_id, payload.username, uow,
    )
    return events


async def _friend_request_response(
    principal: Principal, data: dict[str, Any], uow: UnitOfWork,
) -> list[OutboundEvent]:
    payload = FriendRequestResponsePayload.model_validate(data)
    _user, events = await relationship_service.respond_to_request(
        principal.user_id, payload.request_id, payload.action, uow,
    )
    return events


async def _ping(
    principal: Principal, data: dict[str, Any], uow: UnitOfWork,
) -> list[OutboundEvent]:
    return [OutboundEvent(recipient_id=principal.user_id, type=ServerEvent.PONG, data={})]


HANDLERS: dict[str, Handler] = {
    ClientEvent.SEND_MESSAGE: _send_message,
    ClientEvent.TYPING_START: _typing_start,
    ClientEvent.TYPING_STOP: _typing_stop,
    ClientEvent.MARK_READ: _mark_read,
    ClientEvent.FRIEND_REQUEST: _friend_request,
    ClientEvent.FRIEND_REQUEST_RESPONSE: _friend_request_response,
    ClientEvent.PING: _ping,
}


async def dispatch(
    principal: Principal,
    event_type: str,
    data: dict[str, Any],
    uow: UnitOfWork,
) -> list[OutboundEvent]:
    handler = HANDLERS.get(event_type)
    if handler is None:
        raise ValidationError(f"Unknown event type: {event_type}")
    try:
        return await handler(principal, data, uow)
    except PayloadError as exc:
        raise ValidationError(f"Invalid {event_type} payload: {exc.error_count()} error(s)") from exc

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from friend_chat.api.deps import CurrentPrincipal, EventSinkDep, UoWDep
from friend_chat.api.v1.schemas.common import PaginatedResponse
from friend_chat.api.v1.schemas.message import (
    ConversationResponse,
    MarkedReadResponse,
    MessageResponse,
    SendMessageRequest,
    SentMessageResponse,
    UnreadCountResponse,
)
from friend_chat.api.v1.schemas.user import UserProfile
from friend_chat.application.dto.message import SendMessageDTO, message_payload
from friend_chat.application.dto.profile import public_profile
from friend_chat.infrastructure.db.repositories._cursor import encode_cursor
from friend_chat.services import message_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get("/conversations", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ConversationResponse]:
    summaries = await message_service.list_conversations(principal.user_id, uow)
    return [
        ConversationResponse(
            friend=UserProfile.model_validate(public_profile(s.friend)),
            last_message=MessageResponse.model_validate(message_payload(s.last_message)),
            unread_count=s.unread_count,
        )
        for s in summaries
    ]


@router.get(
    "/conversations/{friend_id}/messages",
    response_model=PaginatedResponse[MessageResponse],
)
async def list_messages(
    friend_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[MessageResponse]:
    messages = await message_service.list_conversation(
        principal.user_id, friend_id, cursor, limit, uow,
    )
    next_cursor = None
    if len(messages) == limit:
        last = messages[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(message_payload(m)) for m in messages],
        next_cursor=next_cursor,
    )


@router.post("/conversations/{friend_id}/read", response_model=MarkedReadResponse)
async def mark_conversation_read(
    friend_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkedReadResponse:
    count = await message_service.mark_conversation_read(principal.user_id, friend_id, uow)
    return MarkedReadResponse(count=count)


@router.post("/messages", response_model=SentMessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    sink: EventSinkDep,
) -> SentMessageResponse:
    dto = SendMessageDTO(
        receiver_id=body.receiver_id,
        content=body.content,
        type=body.message_type,
        reply_to=body.reply_to,
        file_url=body.file_url,
        file_name=body.file_name,
        file_size=body.file_size,
    )
    view, events = await message_service.send_message(principal.user_id, dto, uow)
    await sink.deliver(events)
    return SentMessageResponse.model_validate(view.to_payload())


@router.get("/messages/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    message = await message_service.get_message(principal.user_id, message_id, uow)
    return MessageResponse.model_validate(message_payload(message))


@router.post("/messages/{message_id}/read", response_model=MessageResponse)
async def mark_read(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    sink: EventSinkDep,
) -> MessageResponse:
    message, events = await message_service.mark_read(principal.user_id, message_id, uow)
    await sink.deliver(events)
    return MessageResponse.model_validate(message_payload(message))


@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    message = await message_service.soft_delete(principal.user_id, message_id, uow)
    return MessageResponse.model_validate(message_payload(message))


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(principal: CurrentPrincipal, uow: UoWDep) -> UnreadCountResponse:
    count = await message_service.unread_count(principal.user_id, uow)
    return UnreadCountResponse(unread_count=count)

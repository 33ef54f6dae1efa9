"""Payloads of client→server realtime events."""
from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from friend_chat.domain.value_objects.enums import MessageType, RequestAction


class SendMessagePayload(BaseModel):
    receiver_id: UUID
    content: str | None = None
    message_type: MessageType = MessageType.TEXT
    reply_to: UUID | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = Field(None, ge=0)


class TypingPayload(BaseModel):
    receiver_id: UUID


class MarkReadPayload(BaseModel):
    message_id: UUID
    # Accepted for compatibility; the sender is taken from the stored message.
    sender_id: UUID | None = None


class FriendRequestPayload(BaseModel):
    username: str = Field(min_length=1)


class FriendRequestResponsePayload(BaseModel):
    request_id: UUID
    action: RequestAction

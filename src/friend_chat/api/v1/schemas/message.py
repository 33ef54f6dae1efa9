from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from friend_chat.api.v1.schemas.user import ShortProfile, UserProfile
from friend_chat.domain.value_objects.enums import MessageType


class SendMessageRequest(BaseModel):
    receiver_id: UUID
    content: str | None = None
    message_type: MessageType = MessageType.TEXT
    reply_to: UUID | None = None
    file_url: str | None = Field(None, max_length=500)
    file_name: str | None = Field(None, max_length=255)
    file_size: int | None = Field(None, ge=0)


class MessageResponse(BaseModel):
    """A message; a deleted one has its content and file reference blanked."""

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    type: MessageType
    content: str | None
    file_url: str | None
    file_name: str | None
    file_size: int | None
    reply_to_id: UUID | None
    is_read: bool
    read_at: datetime | None
    is_deleted: bool
    deleted_at: datetime | None
    created_at: datetime


class ReplySummary(BaseModel):
    id: UUID
    sender_id: UUID
    content: str | None
    is_deleted: bool


class SentMessageResponse(MessageResponse):
    sender: ShortProfile
    receiver: ShortProfile
    reply_to: ReplySummary | None = None


class ConversationResponse(BaseModel):
    friend: UserProfile
    last_message: MessageResponse
    unread_count: int


class MarkedReadResponse(BaseModel):
    count: int


class UnreadCountResponse(BaseModel):
    unread_count: int

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from friend_chat.application.dto.profile import short_profile
from friend_chat.domain.entities.message import Message
from friend_chat.domain.entities.user import User
from friend_chat.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    receiver_id: UUID
    content: str | None = None
    type: MessageType = MessageType.TEXT
    reply_to: UUID | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None


@dataclass(frozen=True, slots=True)
class MessageView:
    """A message with its participants denormalized for display."""

    message: Message
    sender: User
    receiver: User
    reply_to: Message | None = None

    def to_payload(self) -> dict[str, Any]:
        data = message_payload(self.message)
        data["sender"] = short_profile(self.sender)
        data["receiver"] = short_profile(self.receiver)
        if self.reply_to is not None:
            data["reply_to"] = {
                "id": self.reply_to.id,
                "sender_id": self.reply_to.sender_id,
                "content": None if self.reply_to.is_deleted else self.reply_to.content,
                "is_deleted": self.reply_to.is_deleted,
            }
        return data


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    friend: User
    last_message: Message
    unread_count: int


def message_payload(message: Message) -> dict[str, Any]:
    """Render a message; a deleted one keeps its envelope but loses its content."""
    removed = message.is_deleted
    return {
        "id": message.id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "type": message.type,
        "content": None if removed else message.content,
        "file_url": None if removed else message.file_url,
        "file_name": None if removed else message.file_name,
        "file_size": None if removed else message.file_size,
        "reply_to_id": message.reply_to_id,
        "is_read": message.is_read,
        "read_at": message.read_at,
        "is_deleted": message.is_deleted,
        "deleted_at": message.deleted_at,
        "created_at": message.created_at,
    }

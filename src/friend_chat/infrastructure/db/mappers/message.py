from __future__ import annotations

from friend_chat.domain.entities.message import Message
from friend_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        type=model.type,
        content=model.content,
        file_url=model.file_url,
        file_name=model.file_name,
        file_size=model.file_size,
        reply_to_id=model.reply_to_id,
        is_read=model.is_read,
        read_at=model.read_at,
        is_deleted=model.is_deleted,
        deleted_at=model.deleted_at,
        created_at=model.created_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        sender_id=entity.sender_id,
        receiver_id=entity.receiver_id,
        type=entity.type,
        content=entity.content,
        file_url=entity.file_url,
        file_name=entity.file_name,
        file_size=entity.file_size,
        reply_to_id=entity.reply_to_id,
        is_read=entity.is_read,
        read_at=entity.read_at,
        is_deleted=entity.is_deleted,
        deleted_at=entity.deleted_at,
        created_at=entity.created_at,
    )

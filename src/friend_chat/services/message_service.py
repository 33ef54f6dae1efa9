from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from uuid import UUID

from friend_chat.application.dto.events import OutboundEvent
from friend_chat.application.dto.message import (
    ConversationSummary,
    MessageView,
    SendMessageDTO,
)
from friend_chat.application.dto.profile import public_profile
from friend_chat.application.exceptions import (
    InvalidReplyError,
    MessageNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from friend_chat.application.policies.permissions import (
    assert_friends,
    assert_message_participant,
    assert_message_receiver,
    assert_message_sender,
)
from friend_chat.application.transaction import mutation_boundary
from friend_chat.application.uow import UnitOfWork
from friend_chat.config import settings
from friend_chat.domain.entities.message import Message
from friend_chat.domain.value_objects.enums import MessageType, ServerEvent

logger = logging.getLogger(__name__)


def _resolve_content(dto: SendMessageDTO) -> str:
    if dto.type == MessageType.TEXT:
        content = (dto.content or "").strip()
        if not content:
            raise ValidationError("Message content is required")
    else:
        if not dto.file_url:
            raise ValidationError(f"A file reference is required for {dto.type} messages")
        if dto.content and dto.content.strip():
            content = dto.content.strip()
        elif dto.type == MessageType.IMAGE:
            content = "📷 Image"
        else:
            content = f"📎 {dto.file_name or 'File'}"
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message content must be at most {settings.MESSAGE_MAX_LENGTH} characters"
        )
    return content


async def send_message(
    sender_id: UUID,
    dto: SendMessageDTO,
    uow: UnitOfWork,
) -> tuple[MessageView, list[OutboundEvent]]:
    """Persist a message between friends.

    The message is committed before any event is produced; delivering the
    events is the caller's job and never affects what was stored.
    """
    content = _resolve_content(dto)

    async with mutation_boundary(uow):
        await assert_friends(uow.relationships, sender_id, dto.receiver_id)

        reply_to = None
        if dto.reply_to is not None:
            reply_to = await uow.messages.get_by_id(dto.reply_to)
            if reply_to is None or not (
                reply_to.involves(sender_id) and reply_to.involves(dto.receiver_id)
            ):
                raise InvalidReplyError("The message you are replying to does not exist")

        sender = await uow.users.get_by_id(sender_id)
        receiver = await uow.users.get_by_id(dto.receiver_id)
        if sender is None or receiver is None:
            raise UserNotFoundError("User not found")

        msg = Message(
            id=uuid.uuid4(),
            sender_id=sender_id,
            receiver_id=dto.receiver_id,
            type=dto.type,
            content=content,
            file_url=dto.file_url if dto.type != MessageType.TEXT else None,
            file_name=dto.file_name if dto.type != MessageType.TEXT else None,
            file_size=dto.file_size if dto.type != MessageType.TEXT else None,
            reply_to_id=reply_to.id if reply_to else None,
            is_read=False,
            read_at=None,
            is_deleted=False,
            deleted_at=None,
            created_at=datetime.now(timezone.utc),
        )
        msg = await uow.messages_w.create(msg)
        await uow.commit()

    view = MessageView(message=msg, sender=sender, receiver=receiver, reply_to=reply_to)
    payload = view.to_payload()
    events = [
        OutboundEvent(
            recipient_id=receiver.id,
            type=ServerEvent.NEW_MESSAGE,
            data={"message": payload, "sender": public_profile(sender)},
        ),
        OutboundEvent(
            recipient_id=sender.id,
            type=ServerEvent.MESSAGE_SENT,
            data={"message": payload, "status": "sent"},
        ),
    ]
    return view, events


async def mark_read(
    reader_id: UUID,
    message_id: UUID,
    uow: UnitOfWork,
) -> tuple[Message, list[OutboundEvent]]:
    """Mark a received message read.

    Repeating the call is a no-op that returns the original ``read_at``
    and produces no events.
    """
    async with mutation_boundary(uow):
        message = await uow.messages.get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError("Message not found")
        assert_message_receiver(reader_id, message)
        if message.is_read:
            return message, []

        updated = await uow.messages_w.mark_read(message.id, datetime.now(timezone.utc))
        if updated is None:
            # Another session of the reader got there first.
            current = await uow.messages.get_by_id(message.id)
            return current or message, []
        await uow.commit()

    events = [
        OutboundEvent(
            recipient_id=updated.sender_id,
            type=ServerEvent.MESSAGE_READ,
            data={"message_id": updated.id, "read_at": updated.read_at},
        )
    ]
    return updated, events


async def mark_conversation_read(
    reader_id: UUID,
    friend_id: UUID,
    uow: UnitOfWork,
) -> int:
    """Mark every unread message from ``friend_id`` read. Returns the count."""
    async with mutation_boundary(uow):
        await assert_friends(uow.relationships, reader_id, friend_id)
        count = await uow.messages_w.mark_conversation_read(
            reader_id, friend_id, datetime.now(timezone.utc),
        )
        await uow.commit()
    return count


async def typing(
    sender_id: UUID,
    receiver_id: UUID,
    started: bool,
    uow: UnitOfWork,
) -> list[OutboundEvent]:
    """Typing indicators are forwarded between friends only, and never fail."""
    if not await uow.relationships.are_friends(sender_id, receiver_id):
        return []
    sender = await uow.users.get_by_id(sender_id)
    if sender is None:
        return []
    event_type = ServerEvent.USER_TYPING if started else ServerEvent.USER_STOP_TYPING
    return [
        OutboundEvent(
            recipient_id=receiver_id,
            type=event_type,
            data={"user_id": sender.id, "username": sender.username},
        )
    ]


async def soft_delete(
    owner_id: UUID,
    message_id: UUID,
    uow: UnitOfWork,
) -> Message:
    async with mutation_boundary(uow):
        message = await uow.messages.get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError("The message you are trying to delete does not exist")
        assert_message_sender(owner_id, message)
        if message.is_deleted:
            return message

        updated = await uow.messages_w.soft_delete(message.id, datetime.now(timezone.utc))
        if updated is None:
            current = await uow.messages.get_by_id(message.id)
            return current or message
        await uow.commit()

    logger.info("Message %s deleted by %s", updated.id, owner_id)
    return updated


async def get_message(
    user_id: UUID,
    message_id: UUID,
    uow: UnitOfWork,
) -> Message:
    """Lookup by id; deleted messages still resolve."""
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise MessageNotFoundError("Message not found")
    assert_message_participant(user_id, message)
    return message


async def list_conversation(
    user_id: UUID,
    friend_id: UUID,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    await assert_friends(uow.relationships, user_id, friend_id)
    return await uow.messages.list_conversation(
        user_id, friend_id, cursor=cursor, limit=limit,
    )


async def list_conversations(user_id: UUID, uow: UnitOfWork) -> list[ConversationSummary]:
    """Most recent visible message and unread count per friend, newest first."""
    friend_ids = await uow.relationships.list_friend_ids(user_id)
    if not friend_ids:
        return []
    summaries: list[ConversationSummary] = []
    for friend in await uow.users.list_by_ids(friend_ids):
        last = await uow.messages.latest_between(user_id, friend.id)
        if last is None:
            continue
        unread = await uow.messages.count_unread(user_id, sender_id=friend.id)
        summaries.append(ConversationSummary(friend=friend, last_message=last, unread_count=unread))
    summaries.sort(key=lambda s: s.last_message.created_at, reverse=True)
    return summaries


async def unread_count(user_id: UUID, uow: UnitOfWork) -> int:
    return await uow.messages.count_unread(user_id)

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from friend_chat.domain.entities.message import Message
from friend_chat.infrastructure.db.mappers import message as mapper
from friend_chat.infrastructure.db.models.message import MessageModel
from friend_chat.infrastructure.db.repositories._cursor import decode_cursor


def _between(user_id: UUID, other_id: UUID):
    return or_(
        and_(MessageModel.sender_id == user_id, MessageModel.receiver_id == other_id),
        and_(MessageModel.sender_id == other_id, MessageModel.receiver_id == user_id),
    )


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        result = await self._session.get(MessageModel, message_id, populate_existing=True)
        return mapper.model_to_entity(result) if result else None

    async def list_conversation(
        self,
        user_id: UUID,
        other_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(_between(user_id, other_id), MessageModel.is_deleted.is_(False))
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        if cursor:
            ts, mid = decode_cursor(cursor)
            stmt = stmt.where(
                (MessageModel.created_at < ts)
                | ((MessageModel.created_at == ts) & (MessageModel.id < mid))
            )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def latest_between(self, user_id: UUID, other_id: UUID) -> Message | None:
        stmt = (
            select(MessageModel)
            .where(_between(user_id, other_id), MessageModel.is_deleted.is_(False))
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def count_unread(
        self,
        receiver_id: UUID,
        *,
        sender_id: UUID | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageModel)
            .where(
                MessageModel.receiver_id == receiver_id,
                MessageModel.is_read.is_(False),
                MessageModel.is_deleted.is_(False),
            )
        )
        if sender_id is not None:
            stmt = stmt.where(MessageModel.sender_id == sender_id)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def mark_read(self, message_id: UUID, ts: datetime) -> Message | None:
        # Conditional on the flag so concurrent readers cannot move read_at.
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.is_read.is_(False))
            .values(is_read=True, read_at=ts)
            .returning(MessageModel)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def mark_conversation_read(
        self,
        receiver_id: UUID,
        sender_id: UUID,
        ts: datetime,
    ) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.receiver_id == receiver_id,
                MessageModel.sender_id == sender_id,
                MessageModel.is_read.is_(False),
                MessageModel.is_deleted.is_(False),
            )
            .values(is_read=True, read_at=ts)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def soft_delete(self, message_id: UUID, ts: datetime) -> Message | None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=ts)
            .returning(MessageModel)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

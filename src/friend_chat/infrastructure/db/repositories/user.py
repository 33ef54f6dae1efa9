from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from friend_chat.domain.entities.user import User
from friend_chat.infrastructure.db.mappers import user as mapper
from friend_chat.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        result = await self._session.get(UserModel, user_id)
        return mapper.model_to_entity(result) if result else None

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(UserModel).where(UserModel.username == username)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_by_ids(self, user_ids: list[UUID]) -> list[User]:
        stmt = (
            select(UserModel)
            .where(UserModel.id.in_(user_ids))
            .order_by(UserModel.username)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class UserWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, user: User) -> User:
        model = mapper.entity_to_model(user)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def set_presence(
        self,
        user_id: UUID,
        *,
        is_online: bool,
        last_seen: datetime,
    ) -> User | None:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(is_online=is_online, last_seen=last_seen)
            .returning(UserModel)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def update_profile(self, user_id: UUID, changes: dict[str, Any]) -> User | None:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(**changes)
            .returning(UserModel)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

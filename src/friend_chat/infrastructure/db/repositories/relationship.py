from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, delete, exists, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from friend_chat.application.exceptions import DuplicateRequestError
from friend_chat.domain.entities.friend_request import FriendRequest
from friend_chat.domain.value_objects.enums import RequestDirection, RequestStatus
from friend_chat.infrastructure.db.mappers import friend_request as mapper
from friend_chat.infrastructure.db.models.friend_request import (
    PENDING_REQUEST_INDEX,
    FriendRequestModel,
)
from friend_chat.infrastructure.db.models.friendship import FriendshipModel
from friend_chat.infrastructure.db.models.user import UserModel


def is_pending_request_conflict(exc: IntegrityError) -> bool:
    """True when ``exc`` comes from the one-pending-request unique index."""
    # asyncpg errors surface as the __cause__ of the DBAPI adapter error.
    driver_error = getattr(exc.orig, "__cause__", None)
    constraint = getattr(driver_error, "constraint_name", None)
    if constraint is not None:
        return constraint == PENDING_REQUEST_INDEX
    return PENDING_REQUEST_INDEX in str(exc.orig)


class RelationshipReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def are_friends(self, user_id: UUID, other_id: UUID) -> bool:
        stmt = select(
            exists().where(
                FriendshipModel.user_id == user_id,
                FriendshipModel.friend_id == other_id,
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def list_friend_ids(self, user_id: UUID) -> list[UUID]:
        stmt = select(FriendshipModel.friend_id).where(FriendshipModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_request(self, request_id: UUID) -> FriendRequest | None:
        # Re-read after locking must see the committed row, not the identity map.
        stmt = (
            select(FriendRequestModel)
            .where(FriendRequestModel.id == request_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def find_pending(
        self,
        owner_id: UUID,
        counterpart_id: UUID,
        direction: str,
    ) -> FriendRequest | None:
        stmt = select(FriendRequestModel).where(
            FriendRequestModel.owner_id == owner_id,
            FriendRequestModel.counterpart_id == counterpart_id,
            FriendRequestModel.direction == direction,
            FriendRequestModel.status == RequestStatus.PENDING,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def has_accepted_request(self, user_id: UUID, other_id: UUID) -> bool:
        stmt = select(
            exists().where(
                FriendRequestModel.status == RequestStatus.ACCEPTED,
                or_(
                    and_(
                        FriendRequestModel.owner_id == user_id,
                        FriendRequestModel.counterpart_id == other_id,
                    ),
                    and_(
                        FriendRequestModel.owner_id == other_id,
                        FriendRequestModel.counterpart_id == user_id,
                    ),
                ),
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def list_requests(
        self,
        owner_id: UUID,
        direction: str,
        *,
        status: str | None = None,
    ) -> list[FriendRequest]:
        stmt = select(FriendRequestModel).where(
            FriendRequestModel.owner_id == owner_id,
            FriendRequestModel.direction == direction,
        )
        if status:
            stmt = stmt.where(FriendRequestModel.status == status)
        stmt = stmt.order_by(FriendRequestModel.created_at.desc())
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_asymmetric_outgoing(
        self,
        *,
        limit: int,
    ) -> list[tuple[FriendRequest, FriendRequest | None]]:
        mirror = aliased(FriendRequestModel)
        stmt = (
            select(FriendRequestModel, mirror)
            .outerjoin(
                mirror,
                and_(
                    mirror.owner_id == FriendRequestModel.counterpart_id,
                    mirror.counterpart_id == FriendRequestModel.owner_id,
                    mirror.direction == RequestDirection.INCOMING,
                    mirror.created_at == FriendRequestModel.created_at,
                ),
            )
            .where(
                FriendRequestModel.direction == RequestDirection.OUTGOING,
                FriendRequestModel.status == RequestStatus.PENDING,
                or_(mirror.id.is_(None), mirror.status != RequestStatus.PENDING),
            )
            .order_by(FriendRequestModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [
            (mapper.model_to_entity(outgoing), mapper.model_to_entity(m) if m else None)
            for outgoing, m in result.all()
        ]

    async def find_one_sided_friendships(self, *, limit: int) -> list[tuple[UUID, UUID]]:
        reverse = aliased(FriendshipModel)
        stmt = (
            select(FriendshipModel.user_id, FriendshipModel.friend_id)
            .outerjoin(
                reverse,
                and_(
                    reverse.user_id == FriendshipModel.friend_id,
                    reverse.friend_id == FriendshipModel.user_id,
                ),
            )
            .where(reverse.user_id.is_(None))
            .order_by(FriendshipModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [(row.user_id, row.friend_id) for row in result.all()]


class RelationshipWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def lock_users(self, user_ids: list[UUID]) -> None:
        # Fixed lock order keeps two opposite transitions from deadlocking.
        stmt = (
            select(UserModel.id)
            .where(UserModel.id.in_(user_ids))
            .order_by(UserModel.id)
            .with_for_update()
        )
        await self._session.execute(stmt)

    async def add_request(self, request: FriendRequest) -> None:
        self._session.add(mapper.entity_to_model(request))
        try:
            await self._session.flush()
        except IntegrityError as exc:
            if not is_pending_request_conflict(exc):
                raise
            raise DuplicateRequestError(
                "A pending friend request already exists between these users"
            ) from exc

    async def set_request_status(self, request_id: UUID, status: str, ts: datetime) -> None:
        stmt = (
            update(FriendRequestModel)
            .where(FriendRequestModel.id == request_id)
            .values(status=status, updated_at=ts)
        )
        await self._session.execute(stmt)

    async def delete_request(self, request_id: UUID) -> None:
        await self._session.execute(
            delete(FriendRequestModel).where(FriendRequestModel.id == request_id)
        )

    async def add_friendship(self, user_id: UUID, other_id: UUID, ts: datetime) -> None:
        stmt = (
            pg_insert(FriendshipModel)
            .values([
                {"user_id": user_id, "friend_id": other_id, "created_at": ts},
                {"user_id": other_id, "friend_id": user_id, "created_at": ts},
            ])
            .on_conflict_do_nothing(index_elements=["user_id", "friend_id"])
        )
        await self._session.execute(stmt)

    async def remove_friendship(self, user_id: UUID, other_id: UUID) -> None:
        stmt = delete(FriendshipModel).where(
            or_(
                and_(FriendshipModel.user_id == user_id, FriendshipModel.friend_id == other_id),
                and_(FriendshipModel.user_id == other_id, FriendshipModel.friend_id == user_id),
            )
        )
        await self._session.execute(stmt)

    async def add_edge(self, user_id: UUID, friend_id: UUID, ts: datetime) -> None:
        stmt = (
            pg_insert(FriendshipModel)
            .values(user_id=user_id, friend_id=friend_id, created_at=ts)
            .on_conflict_do_nothing(index_elements=["user_id", "friend_id"])
        )
        await self._session.execute(stmt)

    async def remove_edge(self, user_id: UUID, friend_id: UUID) -> None:
        stmt = delete(FriendshipModel).where(
            FriendshipModel.user_id == user_id,
            FriendshipModel.friend_id == friend_id,
        )
        await self._session.execute(stmt)

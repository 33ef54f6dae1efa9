from __future__ import annotations

from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncIterator, Self

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from friend_chat.application.exceptions import DuplicateRequestError, TransientStoreError
from friend_chat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from friend_chat.infrastructure.db.repositories.relationship import (
    RelationshipReaderRepo,
    RelationshipWriterRepo,
    is_pending_request_conflict,
)
from friend_chat.infrastructure.db.repositories.user import UserReaderRepo, UserWriterRepo
from friend_chat.infrastructure.db.session import AsyncSessionLocal


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.users = UserReaderRepo(session)
        self.users_w = UserWriterRepo(session)
        self.relationships = RelationshipReaderRepo(session)
        self.relationships_w = RelationshipWriterRepo(session)
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except IntegrityError as exc:
            if not is_pending_request_conflict(exc):
                raise
            raise DuplicateRequestError(
                "A pending friend request already exists between these users"
            ) from exc
        except (OperationalError, InterfaceError) as exc:
            raise TransientStoreError("The store is unavailable, retry later") from exc

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()


@asynccontextmanager
async def open_uow() -> AsyncIterator[SqlAlchemyUoW]:
    """Session-scoped unit of work for code running outside a request."""
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow

from __future__ import annotations

from typing import Protocol

from friend_chat.application.repositories.message import MessageReader, MessageWriter
from friend_chat.application.repositories.relationship import (
    RelationshipReader,
    RelationshipWriter,
)
from friend_chat.application.repositories.user import UserReader, UserWriter


class UnitOfWork(Protocol):
    users: UserReader
    users_w: UserWriter
    relationships: RelationshipReader
    relationships_w: RelationshipWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from friend_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None:
        """Lookup by id; soft-deleted messages resolve too."""
        ...

    async def list_conversation(
        self,
        user_id: UUID,
        other_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Visible messages between the pair, newest first."""
        ...

    async def latest_between(self, user_id: UUID, other_id: UUID) -> Message | None: ...

    async def count_unread(
        self, receiver_id: UUID, *, sender_id: UUID | None = None
    ) -> int: ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def mark_read(self, message_id: UUID, ts: datetime) -> Message | None:
        """Flip the read flag. Returns None when it was already set."""
        ...

    async def mark_conversation_read(
        self, receiver_id: UUID, sender_id: UUID, ts: datetime
    ) -> int: ...

    async def soft_delete(self, message_id: UUID, ts: datetime) -> Message | None:
        """Flip the deleted flag. Returns None when it was already set."""
        ...

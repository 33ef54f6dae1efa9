from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from friend_chat.domain.entities.user import User


class UserReader(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...

    async def get_by_username(self, username: str) -> User | None: ...

    async def list_by_ids(self, user_ids: list[UUID]) -> list[User]: ...


class UserWriter(Protocol):
    async def create(self, user: User) -> User: ...

    async def set_presence(
        self, user_id: UUID, *, is_online: bool, last_seen: datetime
    ) -> User | None: ...

    async def update_profile(self, user_id: UUID, changes: dict[str, Any]) -> User | None:
        """Apply editable profile columns; None when the user is gone."""
        ...

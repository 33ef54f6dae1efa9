from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from friend_chat.domain.entities.friend_request import FriendRequest


class RelationshipReader(Protocol):
    async def are_friends(self, user_id: UUID, other_id: UUID) -> bool:
        """True when ``other_id`` is in ``user_id``'s friend set."""
        ...

    async def list_friend_ids(self, user_id: UUID) -> list[UUID]: ...

    async def get_request(self, request_id: UUID) -> FriendRequest | None: ...

    async def find_pending(
        self, owner_id: UUID, counterpart_id: UUID, direction: str
    ) -> FriendRequest | None: ...

    async def has_accepted_request(self, user_id: UUID, other_id: UUID) -> bool: ...

    async def list_requests(
        self, owner_id: UUID, direction: str, *, status: str | None = None
    ) -> list[FriendRequest]: ...

    async def list_asymmetric_outgoing(
        self, *, limit: int
    ) -> list[tuple[FriendRequest, FriendRequest | None]]:
        """Pending outgoing entries whose mirror is missing or terminal.

        Each comes with its mirrored incoming entry (same pair, same
        ``created_at``) or None, oldest first.
        """
        ...

    async def find_one_sided_friendships(
        self, *, limit: int
    ) -> list[tuple[UUID, UUID]]:
        """Edges (user, friend) whose reverse edge is missing."""
        ...


class RelationshipWriter(Protocol):
    async def lock_users(self, user_ids: list[UUID]) -> None:
        """Lock user records for a read-modify-write spanning all of them."""
        ...

    async def add_request(self, request: FriendRequest) -> None: ...

    async def set_request_status(
        self, request_id: UUID, status: str, ts: datetime
    ) -> None: ...

    async def delete_request(self, request_id: UUID) -> None: ...

    async def add_friendship(self, user_id: UUID, other_id: UUID, ts: datetime) -> None:
        """Add both directed edges."""
        ...

    async def remove_friendship(self, user_id: UUID, other_id: UUID) -> None:
        """Remove both directed edges."""
        ...

    async def add_edge(self, user_id: UUID, friend_id: UUID, ts: datetime) -> None: ...

    async def remove_edge(self, user_id: UUID, friend_id: UUID) -> None: ...

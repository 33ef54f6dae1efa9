from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from friend_chat.application.dto.events import OutboundEvent


class Connection(Protocol):
    """A live client connection able to receive server events."""

    async def send(self, event_type: str, data: dict[str, Any]) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class SessionRegistry(Protocol):
    def register(self, user_id: UUID, connection: Connection) -> Connection | None:
        """Map user to connection; return the displaced connection, if any."""
        ...

    def unregister(self, user_id: UUID, connection: Connection) -> bool:
        """Remove the entry only if it still points at ``connection``."""
        ...

    def lookup(self, user_id: UUID) -> Connection | None: ...

    def is_online(self, user_id: UUID) -> bool: ...

    async def send_to_user(
        self, user_id: UUID, event_type: str, data: dict[str, Any]
    ) -> bool: ...

    async def deliver(self, events: list[OutboundEvent]) -> None: ...

"""In-process session registry: one live connection per online user."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from friend_chat.application.dto.events import OutboundEvent
from friend_chat.application.ports.sessions import Connection
from friend_chat.domain.entities.session import Session

logger = logging.getLogger(__name__)


class InMemorySessionRegistry:
    """Maps a user id to its current Session.

    Map operations are synchronous and guarded by a lock, so callers on any
    connection lifecycle can use them without coordinating. Sends happen
    outside the lock.
    """

    def __init__(self) -> None:
        self._sessions: dict[UUID, Session] = {}
        self._lock = threading.Lock()

    def register(self, user_id: UUID, connection: Connection) -> Connection | None:
        session = Session(
            user_id=user_id,
            connection=connection,
            connected_at=datetime.now(timezone.utc),
        )
        with self._lock:
            previous = self._sessions.get(user_id)
            self._sessions[user_id] = session
            total = len(self._sessions)
        logger.debug("Session registered: %s (total=%d)", user_id, total)
        if previous is None or previous.connection is connection:
            return None
        return previous.connection

    def unregister(self, user_id: UUID, connection: Connection) -> bool:
        with self._lock:
            current = self._sessions.get(user_id)
            if current is None or current.connection is not connection:
                return False
            del self._sessions[user_id]
        logger.debug("Session unregistered: %s", user_id)
        return True

    def lookup(self, user_id: UUID) -> Connection | None:
        with self._lock:
            session = self._sessions.get(user_id)
        return session.connection if session else None

    def get_session(self, user_id: UUID) -> Session | None:
        with self._lock:
            return self._sessions.get(user_id)

    def is_online(self, user_id: UUID) -> bool:
        with self._lock:
            return user_id in self._sessions

    def online_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    async def send_to_user(
        self,
        user_id: UUID,
        event_type: str,
        data: dict[str, Any],
    ) -> bool:
        """Best-effort push to a user's live connection."""
        connection = self.lookup(user_id)
        if connection is None:
            return False
        try:
            await connection.send(event_type, data)
        except Exception:
            logger.debug("Dropping %s for %s: send failed", event_type, user_id, exc_info=True)
            return False
        return True

    async def deliver(self, events: list[OutboundEvent]) -> None:
        for event in events:
            await self.send_to_user(event.recipient_id, event.type, event.data)

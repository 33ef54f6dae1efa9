"""Online/offline broadcast to a user's friends."""
from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from uuid import UUID

from friend_chat.application.dto.events import OutboundEvent
from friend_chat.application.dto.profile import public_profile
from friend_chat.application.ports.sessions import SessionRegistry
from friend_chat.application.transaction import mutation_boundary
from friend_chat.application.uow import UnitOfWork
from friend_chat.domain.value_objects.enums import ServerEvent

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """Persists presence and pushes it to friends that are currently online.

    Transitions for one user are serialized, so a friend receives that
    user's online/offline events in the order the connects and disconnects
    happened.
    """

    def __init__(self, sessions: SessionRegistry) -> None:
        self._sessions = sessions
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, user_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def user_connected(self, user_id: UUID, uow: UnitOfWork) -> list[OutboundEvent]:
        async with self._lock_for(user_id):
            events = await self._transition(user_id, True, uow)
            await self._sessions.deliver(events)
        return events

    async def user_disconnected(self, user_id: UUID, uow: UnitOfWork) -> list[OutboundEvent]:
        async with self._lock_for(user_id):
            events = await self._transition(user_id, False, uow)
            await self._sessions.deliver(events)
        return events

    async def _transition(
        self,
        user_id: UUID,
        online: bool,
        uow: UnitOfWork,
    ) -> list[OutboundEvent]:
        now = datetime.now(timezone.utc)
        async with mutation_boundary(uow):
            user = await uow.users_w.set_presence(user_id, is_online=online, last_seen=now)
            await uow.commit()
        if user is None:
            logger.warning("Presence change for unknown user %s ignored", user_id)
            return []

        friend_ids = await uow.relationships.list_friend_ids(user_id)
        recipients = [fid for fid in friend_ids if self._sessions.is_online(fid)]

        if online:
            event_type = ServerEvent.FRIEND_ONLINE
            data = {"user_id": user.id, **public_profile(user)}
        else:
            event_type = ServerEvent.FRIEND_OFFLINE
            data = {"user_id": user.id, "username": user.username, "last_seen": now}

        return [OutboundEvent(recipient_id=fid, type=event_type, data=data) for fid in recipients]

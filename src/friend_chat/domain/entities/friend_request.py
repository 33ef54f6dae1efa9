from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from friend_chat.domain.value_objects.enums import RequestDirection, RequestStatus


@dataclass(frozen=True, slots=True)
class FriendRequest:
    """One entry of a user's incoming or outgoing request list.

    A request between two users is stored as a mirrored pair: an OUTGOING
    entry owned by the requester and an INCOMING entry owned by the target,
    each with its own id and the same ``created_at``.
    """

    id: UUID
    owner_id: UUID
    counterpart_id: UUID
    direction: str
    status: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    @property
    def is_incoming(self) -> bool:
        return self.direction == RequestDirection.INCOMING

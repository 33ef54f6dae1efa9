from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    type: str
    content: str
    file_url: str | None
    file_name: str | None
    file_size: int | None
    reply_to_id: UUID | None
    is_read: bool
    read_at: datetime | None
    is_deleted: bool
    deleted_at: datetime | None
    created_at: datetime

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

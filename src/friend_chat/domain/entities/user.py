from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    profile_picture: str | None
    bio: str
    is_online: bool
    last_seen: datetime
    is_email_verified: bool
    created_at: datetime

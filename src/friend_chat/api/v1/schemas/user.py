from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Public profile; never carries the e-mail address."""

    id: UUID
    username: str
    first_name: str
    last_name: str
    profile_picture: str | None
    bio: str
    is_online: bool
    last_seen: datetime
    is_email_verified: bool

    model_config = {"from_attributes": True}


class OwnProfile(UserProfile):
    email: str


class UpdateProfileRequest(BaseModel):
    """Omitted fields stay unchanged; an empty ``profile_picture`` clears it."""

    first_name: str | None = Field(None, max_length=150)
    last_name: str | None = Field(None, max_length=150)
    bio: str | None = Field(None, max_length=500)
    profile_picture: str | None = Field(None, max_length=500)


class ShortProfile(BaseModel):
    id: UUID
    username: str
    first_name: str
    last_name: str
    profile_picture: str | None

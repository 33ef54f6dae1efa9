"""User profile renderings and the editable-profile input."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from friend_chat.domain.entities.user import User


def public_profile(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "profile_picture": user.profile_picture,
        "bio": user.bio,
        "is_online": user.is_online,
        "last_seen": user.last_seen,
        "is_email_verified": user.is_email_verified,
    }


def own_profile(user: User) -> dict[str, Any]:
    """What a user sees of themselves: the public profile plus e-mail."""
    return {**public_profile(user), "email": user.email}


def short_profile(user: User) -> dict[str, Any]:
    """Subset embedded in message payloads."""
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "profile_picture": user.profile_picture,
    }


@dataclass(frozen=True, slots=True)
class ProfileUpdateDTO:
    """Editable profile fields; None leaves a field unchanged.

    ``profile_picture`` is a reference (URL or storage key) to an image
    uploaded elsewhere; an empty string clears it.
    """

    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    profile_picture: str | None = None

"""Profile reads and edits.

A profile other than the caller's own is visible to friends only.
"""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from friend_chat.application.dto.profile import ProfileUpdateDTO
from friend_chat.application.exceptions import UserNotFoundError, ValidationError
from friend_chat.application.policies.permissions import assert_friends
from friend_chat.application.transaction import mutation_boundary
from friend_chat.application.uow import UnitOfWork
from friend_chat.domain.entities.user import User

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 150
BIO_MAX_LENGTH = 500
PICTURE_REF_MAX_LENGTH = 500


async def get_own_profile(user_id: UUID, uow: UnitOfWork) -> User:
    user = await uow.users.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    return user


async def get_profile(viewer_id: UUID, user_id: UUID, uow: UnitOfWork) -> User:
    if viewer_id == user_id:
        return await get_own_profile(user_id, uow)
    user = await uow.users.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    await assert_friends(uow.relationships, viewer_id, user_id)
    return user


def _changes(dto: ProfileUpdateDTO) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for field, limit in (("first_name", NAME_MAX_LENGTH), ("last_name", NAME_MAX_LENGTH)):
        value = getattr(dto, field)
        if value is None:
            continue
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} cannot be blank")
        if len(value) > limit:
            raise ValidationError(f"{field} exceeds {limit} characters")
        changes[field] = value

    if dto.bio is not None:
        bio = dto.bio.strip()
        if len(bio) > BIO_MAX_LENGTH:
            raise ValidationError(f"bio exceeds {BIO_MAX_LENGTH} characters")
        changes["bio"] = bio

    if dto.profile_picture is not None:
        ref = dto.profile_picture.strip()
        if len(ref) > PICTURE_REF_MAX_LENGTH:
            raise ValidationError(
                f"profile_picture exceeds {PICTURE_REF_MAX_LENGTH} characters"
            )
        changes["profile_picture"] = ref or None
    return changes


async def update_profile(user_id: UUID, dto: ProfileUpdateDTO, uow: UnitOfWork) -> User:
    changes = _changes(dto)
    async with mutation_boundary(uow):
        if not changes:
            return await get_own_profile(user_id, uow)
        user = await uow.users_w.update_profile(user_id, changes)
        if user is None:
            raise UserNotFoundError("User not found")
        await uow.commit()
    logger.info("Profile of %s updated: %s", user_id, ", ".join(sorted(changes)))
    return user

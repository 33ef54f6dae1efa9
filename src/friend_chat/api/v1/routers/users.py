from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from friend_chat.api.deps import CurrentPrincipal, UoWDep
from friend_chat.api.v1.schemas.user import OwnProfile, UpdateProfileRequest, UserProfile
from friend_chat.application.dto.profile import ProfileUpdateDTO, own_profile, public_profile
from friend_chat.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=OwnProfile)
async def get_me(principal: CurrentPrincipal, uow: UoWDep) -> OwnProfile:
    user = await user_service.get_own_profile(principal.user_id, uow)
    return OwnProfile.model_validate(own_profile(user))


@router.patch("/me", response_model=OwnProfile)
async def update_me(
    body: UpdateProfileRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> OwnProfile:
    dto = ProfileUpdateDTO(**body.model_dump(exclude_unset=True))
    user = await user_service.update_profile(principal.user_id, dto, uow)
    return OwnProfile.model_validate(own_profile(user))


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(user_id: UUID, principal: CurrentPrincipal, uow: UoWDep) -> UserProfile:
    user = await user_service.get_profile(principal.user_id, user_id, uow)
    return UserProfile.model_validate(public_profile(user))

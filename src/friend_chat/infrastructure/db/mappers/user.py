from __future__ import annotations

from friend_chat.domain.entities.user import User
from friend_chat.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        email=model.email,
        first_name=model.first_name,
        last_name=model.last_name,
        profile_picture=model.profile_picture,
        bio=model.bio,
        is_online=model.is_online,
        last_seen=model.last_seen,
        is_email_verified=model.is_email_verified,
        created_at=model.created_at,
    )


def entity_to_model(entity: User) -> UserModel:
    return UserModel(
        id=entity.id,
        username=entity.username,
        email=entity.email,
        first_name=entity.first_name,
        last_name=entity.last_name,
        profile_picture=entity.profile_picture,
        bio=entity.bio,
        is_online=entity.is_online,
        last_seen=entity.last_seen,
        is_email_verified=entity.is_email_verified,
        created_at=entity.created_at,
    )

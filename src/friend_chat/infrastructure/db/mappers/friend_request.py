from __future__ import annotations

from friend_chat.domain.entities.friend_request import FriendRequest
from friend_chat.infrastructure.db.models.friend_request import FriendRequestModel


def model_to_entity(model: FriendRequestModel) -> FriendRequest:
    return FriendRequest(
        id=model.id,
        owner_id=model.owner_id,
        counterpart_id=model.counterpart_id,
        direction=model.direction,
        status=model.status,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: FriendRequest) -> FriendRequestModel:
    return FriendRequestModel(
        id=entity.id,
        owner_id=entity.owner_id,
        counterpart_id=entity.counterpart_id,
        direction=entity.direction,
        status=entity.status,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from friend_chat.api.v1.schemas.user import UserProfile
from friend_chat.domain.value_objects.enums import RequestDirection, RequestStatus


class SendFriendRequest(BaseModel):
    username: str = Field(min_length=1, max_length=150)


class FriendRequestResponse(BaseModel):
    id: UUID
    counterpart_id: UUID
    direction: RequestDirection
    status: RequestStatus
    created_at: datetime
    counterpart: UserProfile | None = None


class PendingRequestsResponse(BaseModel):
    incoming: list[FriendRequestResponse]
    sent: list[FriendRequestResponse]


class RequestProcessedResponse(BaseModel):
    request_id: UUID
    status: RequestStatus
    user: UserProfile

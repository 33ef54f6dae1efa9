from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response, status

from friend_chat.api.deps import CurrentPrincipal, EventSinkDep, UoWDep
from friend_chat.api.v1.schemas.friend import (
    FriendRequestResponse,
    PendingRequestsResponse,
    RequestProcessedResponse,
    SendFriendRequest,
)
from friend_chat.api.v1.schemas.user import UserProfile
from friend_chat.application.dto.profile import public_profile
from friend_chat.application.dto.relationship import RequestView
from friend_chat.domain.value_objects.enums import RequestStatus
from friend_chat.services import relationship_service

router = APIRouter(prefix="/api/v1/friends", tags=["friends"])


def _request_response(view: RequestView) -> FriendRequestResponse:
    return FriendRequestResponse(
        id=view.request.id,
        counterpart_id=view.request.counterpart_id,
        direction=view.request.direction,
        status=view.request.status,
        created_at=view.request.created_at,
        counterpart=UserProfile.model_validate(public_profile(view.counterpart)),
    )


@router.get("", response_model=list[UserProfile])
async def list_friends(principal: CurrentPrincipal, uow: UoWDep) -> list[UserProfile]:
    friends = await relationship_service.list_friends(principal.user_id, uow)
    return [UserProfile.model_validate(public_profile(f)) for f in friends]


@router.get("/requests", response_model=PendingRequestsResponse)
async def list_requests(principal: CurrentPrincipal, uow: UoWDep) -> PendingRequestsResponse:
    pending = await relationship_service.list_pending_requests(principal.user_id, uow)
    return PendingRequestsResponse(
        incoming=[_request_response(v) for v in pending.incoming],
        sent=[_request_response(v) for v in pending.sent],
    )


@router.post("/requests", response_model=FriendRequestResponse, status_code=201)
async def send_request(
    body: SendFriendRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    sink: EventSinkDep,
) -> FriendRequestResponse:
    request, events = await relationship_service.send_request(
        principal.user_id, body.username, uow,
    )
    await sink.deliver(events)
    return FriendRequestResponse(
        id=request.id,
        counterpart_id=request.counterpart_id,
        direction=request.direction,
        status=request.status,
        created_at=request.created_at,
    )


@router.post("/requests/{request_id}/accept", response_model=RequestProcessedResponse)
async def accept_request(
    request_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    sink: EventSinkDep,
) -> RequestProcessedResponse:
    friend, events = await relationship_service.accept_request(
        principal.user_id, request_id, uow,
    )
    await sink.deliver(events)
    return RequestProcessedResponse(
        request_id=request_id,
        status=RequestStatus.ACCEPTED,
        user=UserProfile.model_validate(public_profile(friend)),
    )


@router.post("/requests/{request_id}/reject", response_model=RequestProcessedResponse)
async def reject_request(
    request_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    sink: EventSinkDep,
) -> RequestProcessedResponse:
    requester, events = await relationship_service.reject_request(
        principal.user_id, request_id, uow,
    )
    await sink.deliver(events)
    return RequestProcessedResponse(
        request_id=request_id,
        status=RequestStatus.REJECTED,
        user=UserProfile.model_validate(public_profile(requester)),
    )


@router.delete("/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_request(
    request_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Response:
    await relationship_service.cancel_request(principal.user_id, request_id, uow)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfriend(
    friend_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Response:
    await relationship_service.unfriend(principal.user_id, friend_id, uow)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Friend relationship state machine.

Every transition that touches two users runs in one unit of work: both user
records are locked, the guards are evaluated under the lock, and both sides
are written before a single commit.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from uuid import UUID

from friend_chat.application.dto.events import OutboundEvent
from friend_chat.application.dto.profile import public_profile
from friend_chat.application.dto.relationship import (
    PendingRequests,
    ReconcileReport,
    RequestView,
)
from friend_chat.application.exceptions import (
    AlreadyFriendsError,
    DuplicateRequestError,
    RequestAlreadyProcessedError,
    RequestNotFoundError,
    SelfRequestError,
    UserNotFoundError,
)
from friend_chat.application.policies.permissions import assert_friends
from friend_chat.application.transaction import mutation_boundary
from friend_chat.application.uow import UnitOfWork
from friend_chat.domain.entities.friend_request import FriendRequest
from friend_chat.domain.entities.user import User
from friend_chat.domain.value_objects.enums import (
    RequestAction,
    RequestDirection,
    RequestStatus,
    ServerEvent,
)

logger = logging.getLogger(__name__)


async def send_request(
    requester_id: UUID,
    username: str,
    uow: UnitOfWork,
) -> tuple[FriendRequest, list[OutboundEvent]]:
    """Open a pending request from the caller to ``username``.

    Returns the caller's outgoing entry.
    """
    async with mutation_boundary(uow):
        requester = await _require_user(uow, requester_id)
        target = await uow.users.get_by_username(username)
        if target is None:
            raise UserNotFoundError("No user found with this username")
        if target.id == requester.id:
            raise SelfRequestError("You cannot send a friend request to yourself")

        await uow.relationships_w.lock_users([requester.id, target.id])

        if await uow.relationships.are_friends(requester.id, target.id):
            raise AlreadyFriendsError("You are already friends with this user")
        if await uow.relationships.find_pending(
            requester.id, target.id, RequestDirection.OUTGOING,
        ):
            raise DuplicateRequestError("You have already sent a friend request to this user")
        if await uow.relationships.find_pending(
            requester.id, target.id, RequestDirection.INCOMING,
        ):
            raise DuplicateRequestError("This user has already sent you a friend request")

        now = datetime.now(timezone.utc)
        outgoing = FriendRequest(
            id=uuid.uuid4(),
            owner_id=requester.id,
            counterpart_id=target.id,
            direction=RequestDirection.OUTGOING,
            status=RequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        incoming = FriendRequest(
            id=uuid.uuid4(),
            owner_id=target.id,
            counterpart_id=requester.id,
            direction=RequestDirection.INCOMING,
            status=RequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        await uow.relationships_w.add_request(outgoing)
        await uow.relationships_w.add_request(incoming)
        await uow.commit()

    logger.info("Friend request %s: %s -> %s", outgoing.id, requester.id, target.id)
    events = [
        OutboundEvent(
            recipient_id=target.id,
            type=ServerEvent.FRIEND_REQUEST_RECEIVED,
            data={
                "request_id": incoming.id,
                "from": public_profile(requester),
                "created_at": now,
            },
        ),
        OutboundEvent(
            recipient_id=requester.id,
            type=ServerEvent.FRIEND_REQUEST_SENT,
            data={
                "request_id": outgoing.id,
                "message": "Friend request sent successfully",
                "target_user": public_profile(target),
            },
        ),
    ]
    return outgoing, events


async def accept_request(
    user_id: UUID,
    request_id: UUID,
    uow: UnitOfWork,
) -> tuple[User, list[OutboundEvent]]:
    """Accept an incoming request. Returns the new friend."""
    return await _resolve(user_id, request_id, RequestStatus.ACCEPTED, uow)


async def reject_request(
    user_id: UUID,
    request_id: UUID,
    uow: UnitOfWork,
) -> tuple[User, list[OutboundEvent]]:
    """Reject an incoming request. Returns the requester."""
    return await _resolve(user_id, request_id, RequestStatus.REJECTED, uow)


async def respond_to_request(
    user_id: UUID,
    request_id: UUID,
    action: RequestAction,
    uow: UnitOfWork,
) -> tuple[User, list[OutboundEvent]]:
    if action == RequestAction.ACCEPT:
        return await accept_request(user_id, request_id, uow)
    return await reject_request(user_id, request_id, uow)


async def _resolve(
    user_id: UUID,
    request_id: UUID,
    status: RequestStatus,
    uow: UnitOfWork,
) -> tuple[User, list[OutboundEvent]]:
    async with mutation_boundary(uow):
        request = await uow.relationships.get_request(request_id)
        if request is None or request.owner_id != user_id or not request.is_incoming:
            raise RequestNotFoundError("Friend request not found")

        await uow.relationships_w.lock_users([user_id, request.counterpart_id])

        request = await uow.relationships.get_request(request_id)
        if request is None:
            raise RequestNotFoundError("Friend request not found")
        if not request.is_pending:
            raise RequestAlreadyProcessedError("This friend request has already been processed")

        responder = await _require_user(uow, user_id)
        requester = await uow.users.get_by_id(request.counterpart_id)
        if requester is None:
            raise UserNotFoundError("The user who sent this request no longer exists")

        now = datetime.now(timezone.utc)
        mirror = await uow.relationships.find_pending(
            requester.id, user_id, RequestDirection.OUTGOING,
        )
        await uow.relationships_w.set_request_status(request.id, status, now)
        if mirror is not None:
            await uow.relationships_w.set_request_status(mirror.id, status, now)
        else:
            logger.warning(
                "Outgoing mirror of request %s missing for %s; left for reconciliation",
                request.id, requester.id,
            )
        if status == RequestStatus.ACCEPTED:
            await uow.relationships_w.add_friendship(user_id, requester.id, now)
        await uow.commit()

    logger.info("Friend request %s %s by %s", request.id, status, user_id)
    if status == RequestStatus.ACCEPTED:
        events = [
            OutboundEvent(
                recipient_id=requester.id,
                type=ServerEvent.FRIEND_REQUEST_ACCEPTED,
                data={
                    "request_id": mirror.id if mirror else None,
                    "by": public_profile(responder),
                },
            ),
            OutboundEvent(
                recipient_id=user_id,
                type=ServerEvent.FRIEND_REQUEST_PROCESSED,
                data={
                    "request_id": request.id,
                    "action": RequestStatus.ACCEPTED,
                    "new_friend": public_profile(requester),
                },
            ),
        ]
    else:
        events = [
            OutboundEvent(
                recipient_id=requester.id,
                type=ServerEvent.FRIEND_REQUEST_REJECTED,
                data={
                    "request_id": mirror.id if mirror else None,
                    "by": public_profile(responder),
                },
            ),
            OutboundEvent(
                recipient_id=user_id,
                type=ServerEvent.FRIEND_REQUEST_PROCESSED,
                data={
                    "request_id": request.id,
                    "action": RequestStatus.REJECTED,
                    "requester": public_profile(requester),
                },
            ),
        ]
    return requester, events


async def cancel_request(
    user_id: UUID,
    request_id: UUID,
    uow: UnitOfWork,
) -> FriendRequest:
    """Withdraw the caller's own pending outgoing request.

    Both mirrored entries are removed rather than marked terminal.
    """
    async with mutation_boundary(uow):
        request = await uow.relationships.get_request(request_id)
        if request is None or request.owner_id != user_id or request.is_incoming:
            raise RequestNotFoundError("Sent friend request not found")

        await uow.relationships_w.lock_users([user_id, request.counterpart_id])

        request = await uow.relationships.get_request(request_id)
        if request is None:
            raise RequestNotFoundError("Sent friend request not found")
        if not request.is_pending:
            raise RequestAlreadyProcessedError("This friend request has already been processed")

        mirror = await uow.relationships.find_pending(
            request.counterpart_id, user_id, RequestDirection.INCOMING,
        )
        if mirror is not None:
            await uow.relationships_w.delete_request(mirror.id)
        await uow.relationships_w.delete_request(request.id)
        await uow.commit()

    logger.info("Friend request %s cancelled by %s", request.id, user_id)
    return request


async def unfriend(
    user_id: UUID,
    friend_id: UUID,
    uow: UnitOfWork,
) -> User:
    """Remove the friendship on both sides. Returns the former friend."""
    async with mutation_boundary(uow):
        await uow.relationships_w.lock_users([user_id, friend_id])
        await assert_friends(uow.relationships, user_id, friend_id)
        friend = await uow.users.get_by_id(friend_id)
        if friend is None:
            raise UserNotFoundError("The user you are trying to remove no longer exists")
        await uow.relationships_w.remove_friendship(user_id, friend_id)
        await uow.commit()

    logger.info("Friendship %s <-> %s removed", user_id, friend_id)
    return friend


async def list_friends(user_id: UUID, uow: UnitOfWork) -> list[User]:
    friend_ids = await uow.relationships.list_friend_ids(user_id)
    if not friend_ids:
        return []
    return await uow.users.list_by_ids(friend_ids)


async def list_pending_requests(user_id: UUID, uow: UnitOfWork) -> PendingRequests:
    incoming = await uow.relationships.list_requests(
        user_id, RequestDirection.INCOMING, status=RequestStatus.PENDING,
    )
    sent = await uow.relationships.list_requests(
        user_id, RequestDirection.OUTGOING, status=RequestStatus.PENDING,
    )
    counterpart_ids = list({r.counterpart_id for r in [*incoming, *sent]})
    users = {u.id: u for u in await uow.users.list_by_ids(counterpart_ids)} if counterpart_ids else {}
    return PendingRequests(
        incoming=[RequestView(r, users[r.counterpart_id]) for r in incoming if r.counterpart_id in users],
        sent=[RequestView(r, users[r.counterpart_id]) for r in sent if r.counterpart_id in users],
    )


async def reconcile(uow: UnitOfWork, *, limit: int = 100) -> ReconcileReport:
    """Repair asymmetric relationship state.

    * a pending outgoing entry whose mirrored incoming entry is terminal takes
      over the terminal status; one with no mirror at all is removed;
    * a one-sided friendship edge is completed when an accepted request
      exists between the pair, and dropped otherwise.
    """
    mirrors_repaired = orphans_removed = edges_restored = edges_removed = 0
    now = datetime.now(timezone.utc)

    async with mutation_boundary(uow):
        for outgoing, mirror in await uow.relationships.list_asymmetric_outgoing(limit=limit):
            if mirror is None:
                await uow.relationships_w.delete_request(outgoing.id)
                orphans_removed += 1
                logger.warning("Removed orphaned outgoing request %s", outgoing.id)
            else:
                await uow.relationships_w.set_request_status(outgoing.id, mirror.status, now)
                mirrors_repaired += 1
                logger.warning(
                    "Outgoing request %s set to %s from its mirror %s",
                    outgoing.id, mirror.status, mirror.id,
                )

        for user_id, friend_id in await uow.relationships.find_one_sided_friendships(limit=limit):
            await uow.relationships_w.lock_users([user_id, friend_id])
            if await uow.relationships.has_accepted_request(user_id, friend_id):
                await uow.relationships_w.add_edge(friend_id, user_id, now)
                edges_restored += 1
                logger.warning("Restored friendship edge %s -> %s", friend_id, user_id)
            else:
                await uow.relationships_w.remove_edge(user_id, friend_id)
                edges_removed += 1
                logger.warning("Dropped dangling friendship edge %s -> %s", user_id, friend_id)

        await uow.commit()

    return ReconcileReport(
        mirrors_repaired=mirrors_repaired,
        orphans_removed=orphans_removed,
        edges_restored=edges_restored,
        edges_removed=edges_removed,
    )


async def _require_user(uow: UnitOfWork, user_id: UUID) -> User:
    user = await uow.users.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    return user

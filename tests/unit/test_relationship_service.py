from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace

import pytest

from friend_chat.application.dto.relationship import ReconcileReport
from friend_chat.application.exceptions import (
    AlreadyFriendsError,
    DuplicateRequestError,
    NotFriendsError,
    RequestAlreadyProcessedError,
    RequestNotFoundError,
    SelfRequestError,
    TransientStoreError,
    UserNotFoundError,
)
from friend_chat.config import settings
from friend_chat.domain.value_objects.enums import (
    RequestAction,
    RequestDirection,
    RequestStatus,
    ServerEvent,
)
from friend_chat.services import relationship_service

INCOMING = RequestDirection.INCOMING
OUTGOING = RequestDirection.OUTGOING


async def _incoming_id(uow, owner) -> uuid.UUID:
    [entry] = uow.relationships.entries(owner.id, INCOMING)
    return entry.id


# ---------------------------------------------------------------- send


@pytest.mark.asyncio
async def test_send_request_creates_mirrored_pending_entries(uow, alice, bob):
    outgoing, events = await relationship_service.send_request(alice.id, "bob", uow)

    [sent] = uow.relationships.entries(alice.id, OUTGOING)
    [received] = uow.relationships.entries(bob.id, INCOMING)
    assert sent == outgoing
    assert sent.counterpart_id == bob.id and received.counterpart_id == alice.id
    assert sent.status == received.status == RequestStatus.PENDING
    assert sent.created_at == received.created_at
    assert sent.id != received.id
    assert uow._committed
    assert uow.relationships_w.locked == [sorted([alice.id, bob.id])]

    by_type = {e.type: e for e in events}
    assert by_type[ServerEvent.FRIEND_REQUEST_RECEIVED].recipient_id == bob.id
    assert by_type[ServerEvent.FRIEND_REQUEST_RECEIVED].data["request_id"] == received.id
    assert by_type[ServerEvent.FRIEND_REQUEST_RECEIVED].data["from"]["username"] == "alice"
    assert by_type[ServerEvent.FRIEND_REQUEST_SENT].recipient_id == alice.id
    assert by_type[ServerEvent.FRIEND_REQUEST_SENT].data["target_user"]["id"] == bob.id


@pytest.mark.asyncio
async def test_repeated_request_is_duplicate(uow, alice, bob):
    await relationship_service.send_request(alice.id, "bob", uow)

    with pytest.raises(DuplicateRequestError):
        await relationship_service.send_request(alice.id, "bob", uow)
    assert len(uow.relationships.entries(alice.id, OUTGOING)) == 1
    assert uow._rolled_back


@pytest.mark.asyncio
async def test_request_against_pending_incoming_is_duplicate(uow, alice, bob):
    await relationship_service.send_request(alice.id, "bob", uow)

    with pytest.raises(DuplicateRequestError):
        await relationship_service.send_request(bob.id, "alice", uow)


@pytest.mark.asyncio
async def test_self_request_rejected(uow, alice):
    with pytest.raises(SelfRequestError):
        await relationship_service.send_request(alice.id, "alice", uow)


@pytest.mark.asyncio
async def test_unknown_username(uow, alice):
    with pytest.raises(UserNotFoundError):
        await relationship_service.send_request(alice.id, "nobody", uow)


@pytest.mark.asyncio
async def test_request_to_friend_rejected(friends_uow, alice):
    with pytest.raises(AlreadyFriendsError):
        await relationship_service.send_request(alice.id, "bob", friends_uow)
    assert friends_uow.relationships._requests == {}


# -------------------------------------------------------------- accept


@pytest.mark.asyncio
async def test_accept_makes_friendship_symmetric(uow, alice, bob):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)

    friend, events = await relationship_service.accept_request(bob.id, request_id, uow)

    assert friend.id == alice.id
    assert await uow.relationships.are_friends(alice.id, bob.id)
    assert await uow.relationships.are_friends(bob.id, alice.id)
    assert uow.relationships._requests[request_id].status == RequestStatus.ACCEPTED
    assert uow.relationships._requests[outgoing.id].status == RequestStatus.ACCEPTED

    accepted, processed = events
    assert accepted.type == ServerEvent.FRIEND_REQUEST_ACCEPTED
    assert accepted.recipient_id == alice.id
    assert accepted.data["request_id"] == outgoing.id
    assert accepted.data["by"]["username"] == "bob"
    assert processed.type == ServerEvent.FRIEND_REQUEST_PROCESSED
    assert processed.recipient_id == bob.id
    assert processed.data["action"] == RequestStatus.ACCEPTED
    assert processed.data["new_friend"]["id"] == alice.id


@pytest.mark.asyncio
async def test_accept_twice_is_already_processed(uow, alice, bob):
    await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)
    await relationship_service.accept_request(bob.id, request_id, uow)

    with pytest.raises(RequestAlreadyProcessedError):
        await relationship_service.accept_request(bob.id, request_id, uow)


@pytest.mark.asyncio
async def test_only_the_receiver_can_accept(uow, alice, bob, carol):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)

    with pytest.raises(RequestNotFoundError):
        await relationship_service.accept_request(carol.id, request_id, uow)
    # The requester's own outgoing entry is not acceptable either.
    with pytest.raises(RequestNotFoundError):
        await relationship_service.accept_request(alice.id, outgoing.id, uow)


@pytest.mark.asyncio
async def test_accept_unknown_request(uow, bob):
    with pytest.raises(RequestNotFoundError):
        await relationship_service.accept_request(bob.id, uuid.uuid4(), uow)


@pytest.mark.asyncio
async def test_accept_when_requester_is_gone(uow, alice, bob):
    await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)
    del uow.users._store[alice.id]

    with pytest.raises(UserNotFoundError):
        await relationship_service.accept_request(bob.id, request_id, uow)
    assert uow.relationships._requests[request_id].is_pending


@pytest.mark.asyncio
async def test_accept_with_missing_mirror_still_befriends(uow, alice, bob, caplog):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)
    del uow.relationships._requests[outgoing.id]

    with caplog.at_level(logging.WARNING):
        _, events = await relationship_service.accept_request(bob.id, request_id, uow)

    assert await uow.relationships.are_friends(alice.id, bob.id)
    assert events[0].data["request_id"] is None
    assert "left for reconciliation" in caplog.text


# -------------------------------------------------------------- reject


@pytest.mark.asyncio
async def test_reject_marks_both_sides(uow, alice, bob):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)

    requester, events = await relationship_service.respond_to_request(
        bob.id, request_id, RequestAction.REJECT, uow,
    )

    assert requester.id == alice.id
    assert uow.relationships._requests[request_id].status == RequestStatus.REJECTED
    assert uow.relationships._requests[outgoing.id].status == RequestStatus.REJECTED
    assert not await uow.relationships.are_friends(alice.id, bob.id)
    assert [e.type for e in events] == [
        ServerEvent.FRIEND_REQUEST_REJECTED,
        ServerEvent.FRIEND_REQUEST_PROCESSED,
    ]
    assert events[1].data["requester"]["id"] == alice.id


@pytest.mark.asyncio
async def test_rejected_history_is_retained_and_new_request_allowed(uow, alice, bob):
    await relationship_service.send_request(alice.id, "bob", uow)
    await relationship_service.reject_request(bob.id, await _incoming_id(uow, bob), uow)

    await relationship_service.send_request(alice.id, "bob", uow)

    statuses = sorted(r.status for r in uow.relationships.entries(alice.id, OUTGOING))
    assert statuses == [RequestStatus.PENDING, RequestStatus.REJECTED]


# -------------------------------------------------------------- cancel


@pytest.mark.asyncio
async def test_cancel_removes_both_entries(uow, alice, bob):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)

    cancelled = await relationship_service.cancel_request(alice.id, outgoing.id, uow)

    assert cancelled.id == outgoing.id
    assert uow.relationships.entries(alice.id, OUTGOING) == []
    assert uow.relationships.entries(bob.id, INCOMING) == []


@pytest.mark.asyncio
async def test_cancel_after_accept_is_already_processed(uow, alice, bob):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    await relationship_service.accept_request(bob.id, await _incoming_id(uow, bob), uow)

    with pytest.raises(RequestAlreadyProcessedError):
        await relationship_service.cancel_request(alice.id, outgoing.id, uow)

    [sent] = uow.relationships.entries(alice.id, OUTGOING)
    [received] = uow.relationships.entries(bob.id, INCOMING)
    assert sent.status == received.status == RequestStatus.ACCEPTED
    assert await uow.relationships.are_friends(alice.id, bob.id)
    assert await uow.relationships.are_friends(bob.id, alice.id)


@pytest.mark.asyncio
async def test_cancel_someone_elses_request(uow, alice, bob):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)

    with pytest.raises(RequestNotFoundError):
        await relationship_service.cancel_request(bob.id, outgoing.id, uow)


# ------------------------------------------------------------ unfriend


@pytest.mark.asyncio
async def test_unfriend_then_request_again(friends_uow, alice, bob):
    former = await relationship_service.unfriend(alice.id, bob.id, friends_uow)

    assert former.id == bob.id
    assert not await friends_uow.relationships.are_friends(alice.id, bob.id)
    assert not await friends_uow.relationships.are_friends(bob.id, alice.id)

    outgoing, _ = await relationship_service.send_request(alice.id, "bob", friends_uow)
    assert outgoing.is_pending


@pytest.mark.asyncio
async def test_unfriend_stranger(uow, alice, carol):
    with pytest.raises(NotFriendsError):
        await relationship_service.unfriend(alice.id, carol.id, uow)


# ------------------------------------------------------------- listing


@pytest.mark.asyncio
async def test_list_friends_and_pending(friends_uow, alice, bob, carol):
    await relationship_service.send_request(carol.id, "alice", friends_uow)

    friends = await relationship_service.list_friends(alice.id, friends_uow)
    pending = await relationship_service.list_pending_requests(alice.id, friends_uow)
    carol_pending = await relationship_service.list_pending_requests(carol.id, friends_uow)

    assert [f.id for f in friends] == [bob.id]
    assert [v.counterpart.id for v in pending.incoming] == [carol.id]
    assert pending.sent == []
    assert [v.counterpart.id for v in carol_pending.sent] == [alice.id]


# ------------------------------------------------------------ failures


@pytest.mark.asyncio
async def test_store_timeout_is_retryable_and_rolled_back(uow, alice, bob, monkeypatch):
    async def _stalled(user_ids):
        await asyncio.sleep(1)

    monkeypatch.setattr(settings, "STORE_TIMEOUT_SECONDS", 0.01)
    monkeypatch.setattr(uow.relationships_w, "lock_users", _stalled)

    with pytest.raises(TransientStoreError) as exc_info:
        await relationship_service.send_request(alice.id, "bob", uow)

    assert exc_info.value.retryable is True
    assert uow._rolled_back
    assert uow.relationships._requests == {}


def _fail_on_call(monkeypatch, writer, name: str, call_no: int) -> None:
    real = getattr(writer, name)
    calls = 0

    async def _wrapped(*args, **kwargs):
        nonlocal calls
        calls += 1
        if calls == call_no:
            raise TransientStoreError("The store connection dropped")
        return await real(*args, **kwargs)

    monkeypatch.setattr(writer, name, _wrapped)


@pytest.mark.asyncio
async def test_send_failing_between_mirrored_writes_leaves_neither_entry(
    uow, alice, bob, monkeypatch,
):
    _fail_on_call(monkeypatch, uow.relationships_w, "add_request", 2)

    with pytest.raises(TransientStoreError):
        await relationship_service.send_request(alice.id, "bob", uow)

    assert uow.relationships.entries(alice.id, OUTGOING) == []
    assert uow.relationships.entries(bob.id, INCOMING) == []
    assert not uow._committed


@pytest.mark.asyncio
@pytest.mark.parametrize("action", [RequestAction.ACCEPT, RequestAction.REJECT])
async def test_resolve_failing_between_mirrored_writes_keeps_both_pending(
    uow, alice, bob, monkeypatch, action,
):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)
    _fail_on_call(monkeypatch, uow.relationships_w, "set_request_status", 2)

    with pytest.raises(TransientStoreError):
        await relationship_service.respond_to_request(bob.id, request_id, action, uow)

    assert uow.relationships._requests[request_id].status == RequestStatus.PENDING
    assert uow.relationships._requests[outgoing.id].status == RequestStatus.PENDING
    assert not await uow.relationships.are_friends(alice.id, bob.id)
    assert not await uow.relationships.are_friends(bob.id, alice.id)


@pytest.mark.asyncio
async def test_accept_failing_after_status_writes_adds_no_friendship(
    uow, alice, bob, monkeypatch,
):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    request_id = await _incoming_id(uow, bob)
    _fail_on_call(monkeypatch, uow.relationships_w, "add_friendship", 1)

    with pytest.raises(TransientStoreError):
        await relationship_service.accept_request(bob.id, request_id, uow)

    assert uow.relationships._requests[request_id].status == RequestStatus.PENDING
    assert uow.relationships._requests[outgoing.id].status == RequestStatus.PENDING
    assert uow.relationships._edges == set()


# ----------------------------------------------------------- reconcile


@pytest.mark.asyncio
async def test_reconcile_copies_terminal_status_to_outgoing(uow, alice, bob):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    incoming_id = await _incoming_id(uow, bob)
    incoming = uow.relationships._requests[incoming_id]
    uow.relationships._requests[incoming_id] = replace(incoming, status=RequestStatus.REJECTED)

    report = await relationship_service.reconcile(uow)

    assert report.mirrors_repaired == 1
    assert uow.relationships._requests[outgoing.id].status == RequestStatus.REJECTED


@pytest.mark.asyncio
async def test_reconcile_removes_orphaned_outgoing(uow, alice, bob):
    outgoing, _ = await relationship_service.send_request(alice.id, "bob", uow)
    del uow.relationships._requests[await _incoming_id(uow, bob)]

    report = await relationship_service.reconcile(uow)

    assert report.orphans_removed == 1
    assert outgoing.id not in uow.relationships._requests


@pytest.mark.asyncio
async def test_reconcile_reaches_orphans_behind_healthy_pending_requests(uow, alice, bob, carol):
    healthy, _ = await relationship_service.send_request(alice.id, "bob", uow)
    await relationship_service.send_request(carol.id, "bob", uow)
    orphan, _ = await relationship_service.send_request(alice.id, "carol", uow)
    del uow.relationships._requests[await _incoming_id(uow, carol)]

    report = await relationship_service.reconcile(uow, limit=1)

    assert report.orphans_removed == 1
    assert orphan.id not in uow.relationships._requests
    assert uow.relationships._requests[healthy.id].status == RequestStatus.PENDING
    assert len(uow.relationships.entries(bob.id, INCOMING)) == 2


@pytest.mark.asyncio
async def test_reconcile_ignores_older_terminal_history_of_the_pair(uow, alice, bob):
    await relationship_service.send_request(alice.id, "bob", uow)
    await relationship_service.reject_request(bob.id, await _incoming_id(uow, bob), uow)
    again, _ = await relationship_service.send_request(alice.id, "bob", uow)

    report = await relationship_service.reconcile(uow)

    assert report.total == 0
    assert uow.relationships._requests[again.id].status == RequestStatus.PENDING


@pytest.mark.asyncio
async def test_reconcile_completes_accepted_one_sided_edge(uow, alice, bob):
    await relationship_service.send_request(alice.id, "bob", uow)
    await relationship_service.accept_request(bob.id, await _incoming_id(uow, bob), uow)
    uow.relationships._edges.discard((bob.id, alice.id))

    report = await relationship_service.reconcile(uow)

    assert report.edges_restored == 1
    assert await uow.relationships.are_friends(bob.id, alice.id)


@pytest.mark.asyncio
async def test_reconcile_drops_dangling_edge(uow, alice, carol):
    uow.relationships._edges.add((alice.id, carol.id))

    report = await relationship_service.reconcile(uow)

    assert report.edges_removed == 1
    assert not await uow.relationships.are_friends(alice.id, carol.id)


@pytest.mark.asyncio
async def test_reconcile_leaves_consistent_state_alone(friends_uow, alice, carol):
    await relationship_service.send_request(carol.id, "alice", friends_uow)
    before = dict(friends_uow.relationships._requests)

    report = await relationship_service.reconcile(friends_uow)

    assert report.total == 0
    assert friends_uow.relationships._requests == before


def test_report_total():
    assert ReconcileReport(mirrors_repaired=1, edges_removed=2).total == 3
    assert ReconcileReport().total == 0

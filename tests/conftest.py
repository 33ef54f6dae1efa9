"""Shared test fixtures and in-memory fakes of the repository ports."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import UUID

import pytest

from friend_chat.application.dto.principal import Principal
from friend_chat.application.exceptions import DuplicateRequestError
from friend_chat.domain.entities.friend_request import FriendRequest
from friend_chat.domain.entities.message import Message
from friend_chat.domain.entities.user import User
from friend_chat.domain.value_objects.enums import (
    MessageType,
    RequestDirection,
    RequestStatus,
)
from friend_chat.infrastructure.db.repositories._cursor import decode_cursor
from friend_chat.infrastructure.ws.registry import InMemorySessionRegistry


def make_user(
    username: str = "alice",
    *,
    user_id: UUID | None = None,
    is_online: bool = False,
) -> User:
    now = datetime.now(timezone.utc)
    return User(
        id=user_id or uuid.uuid4(),
        username=username,
        email=f"{username}@example.com",
        first_name=username.capitalize(),
        last_name="Tester",
        profile_picture=None,
        bio="",
        is_online=is_online,
        last_seen=now - timedelta(hours=1),
        is_email_verified=True,
        created_at=now - timedelta(days=1),
    )


def make_message(
    sender: User,
    receiver: User,
    content: str = "hello",
    *,
    created_at: datetime | None = None,
    is_read: bool = False,
    is_deleted: bool = False,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        sender_id=sender.id,
        receiver_id=receiver.id,
        type=MessageType.TEXT,
        content=content,
        file_url=None,
        file_name=None,
        file_size=None,
        reply_to_id=None,
        is_read=is_read,
        read_at=datetime.now(timezone.utc) if is_read else None,
        is_deleted=is_deleted,
        deleted_at=datetime.now(timezone.utc) if is_deleted else None,
        created_at=created_at or datetime.now(timezone.utc),
    )


# ---------------------------------------------------------------- users


@dataclass
class FakeUserReader:
    _store: dict[UUID, User] = field(default_factory=dict)

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._store.get(user_id)

    async def get_by_username(self, username: str) -> User | None:
        for u in self._store.values():
            if u.username == username:
                return u
        return None

    async def list_by_ids(self, user_ids: list[UUID]) -> list[User]:
        found = [self._store[uid] for uid in user_ids if uid in self._store]
        return sorted(found, key=lambda u: u.username)


def _no_staging() -> None:
    pass


@dataclass
class FakeUserWriter:
    _reader: FakeUserReader
    _on_write: Callable[[], None] = _no_staging

    async def create(self, user: User) -> User:
        self._on_write()
        self._reader._store[user.id] = user
        return user

    async def set_presence(
        self, user_id: UUID, *, is_online: bool, last_seen: datetime
    ) -> User | None:
        user = self._reader._store.get(user_id)
        if user is None:
            return None
        self._on_write()
        updated = replace(user, is_online=is_online, last_seen=last_seen)
        self._reader._store[user_id] = updated
        return updated

    async def update_profile(self, user_id: UUID, changes: dict[str, Any]) -> User | None:
        user = self._reader._store.get(user_id)
        if user is None:
            return None
        self._on_write()
        updated = replace(user, **changes)
        self._reader._store[user_id] = updated
        return updated


# -------------------------------------------------------- relationships


@dataclass
class FakeRelationshipReader:
    _edges: set[tuple[UUID, UUID]] = field(default_factory=set)
    _requests: dict[UUID, FriendRequest] = field(default_factory=dict)

    async def are_friends(self, user_id: UUID, other_id: UUID) -> bool:
        return (user_id, other_id) in self._edges

    async def list_friend_ids(self, user_id: UUID) -> list[UUID]:
        return [f for (u, f) in self._edges if u == user_id]

    async def get_request(self, request_id: UUID) -> FriendRequest | None:
        return self._requests.get(request_id)

    async def find_pending(
        self, owner_id: UUID, counterpart_id: UUID, direction: str
    ) -> FriendRequest | None:
        for r in self._requests.values():
            if (
                r.owner_id == owner_id
                and r.counterpart_id == counterpart_id
                and r.direction == direction
                and r.is_pending
            ):
                return r
        return None

    async def has_accepted_request(self, user_id: UUID, other_id: UUID) -> bool:
        return any(
            r.status == RequestStatus.ACCEPTED
            and {r.owner_id, r.counterpart_id} == {user_id, other_id}
            for r in self._requests.values()
        )

    async def list_requests(
        self, owner_id: UUID, direction: str, *, status: str | None = None
    ) -> list[FriendRequest]:
        found = [
            r for r in self._requests.values()
            if r.owner_id == owner_id
            and r.direction == direction
            and (status is None or r.status == status)
        ]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    def _mirror_of(self, outgoing: FriendRequest) -> FriendRequest | None:
        for r in self._requests.values():
            if (
                r.owner_id == outgoing.counterpart_id
                and r.counterpart_id == outgoing.owner_id
                and r.direction == RequestDirection.INCOMING
                and r.created_at == outgoing.created_at
            ):
                return r
        return None

    async def list_asymmetric_outgoing(
        self, *, limit: int
    ) -> list[tuple[FriendRequest, FriendRequest | None]]:
        pending = sorted(
            (
                r for r in self._requests.values()
                if r.direction == RequestDirection.OUTGOING and r.is_pending
            ),
            key=lambda r: r.created_at,
        )
        found = []
        for outgoing in pending:
            mirror = self._mirror_of(outgoing)
            if mirror is None or not mirror.is_pending:
                found.append((outgoing, mirror))
        return found[:limit]

    async def find_one_sided_friendships(self, *, limit: int) -> list[tuple[UUID, UUID]]:
        return [(u, f) for (u, f) in self._edges if (f, u) not in self._edges][:limit]

    def entries(self, owner_id: UUID, direction: str) -> list[FriendRequest]:
        """Test helper: every entry of a user's incoming or outgoing list."""
        return [
            r for r in self._requests.values()
            if r.owner_id == owner_id and r.direction == direction
        ]


@dataclass
class FakeRelationshipWriter:
    _reader: FakeRelationshipReader
    locked: list[list[UUID]] = field(default_factory=list)
    _on_write: Callable[[], None] = _no_staging

    async def lock_users(self, user_ids: list[UUID]) -> None:
        self.locked.append(sorted(user_ids))

    async def add_request(self, request: FriendRequest) -> None:
        self._on_write()
        if request.is_pending and await self._reader.find_pending(
            request.owner_id, request.counterpart_id, request.direction,
        ):
            raise DuplicateRequestError("pending request exists")
        self._reader._requests[request.id] = request

    async def set_request_status(self, request_id: UUID, status: str, ts: datetime) -> None:
        self._on_write()
        request = self._reader._requests.get(request_id)
        if request is not None:
            self._reader._requests[request_id] = replace(request, status=status, updated_at=ts)

    async def delete_request(self, request_id: UUID) -> None:
        self._on_write()
        self._reader._requests.pop(request_id, None)

    async def add_friendship(self, user_id: UUID, other_id: UUID, ts: datetime) -> None:
        self._on_write()
        self._reader._edges.add((user_id, other_id))
        self._reader._edges.add((other_id, user_id))

    async def remove_friendship(self, user_id: UUID, other_id: UUID) -> None:
        self._on_write()
        self._reader._edges.discard((user_id, other_id))
        self._reader._edges.discard((other_id, user_id))

    async def add_edge(self, user_id: UUID, friend_id: UUID, ts: datetime) -> None:
        self._on_write()
        self._reader._edges.add((user_id, friend_id))

    async def remove_edge(self, user_id: UUID, friend_id: UUID) -> None:
        self._on_write()
        self._reader._edges.discard((user_id, friend_id))


# ------------------------------------------------------------- messages


def _between(m: Message, user_id: UUID, other_id: UUID) -> bool:
    return {m.sender_id, m.receiver_id} == {user_id, other_id}


@dataclass
class FakeMessageReader:
    _store: dict[UUID, Message] = field(default_factory=dict)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return self._store.get(message_id)

    async def list_conversation(
        self,
        user_id: UUID,
        other_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        found = [
            m for m in self._store.values()
            if _between(m, user_id, other_id) and not m.is_deleted
        ]
        found.sort(key=lambda m: (m.created_at, m.id), reverse=True)
        if cursor:
            ts, mid = decode_cursor(cursor)
            found = [m for m in found if (m.created_at, m.id) < (ts, mid)]
        return found[:limit]

    async def latest_between(self, user_id: UUID, other_id: UUID) -> Message | None:
        page = await self.list_conversation(user_id, other_id, limit=1)
        return page[0] if page else None

    async def count_unread(self, receiver_id: UUID, *, sender_id: UUID | None = None) -> int:
        return sum(
            1 for m in self._store.values()
            if m.receiver_id == receiver_id
            and not m.is_read
            and not m.is_deleted
            and (sender_id is None or m.sender_id == sender_id)
        )


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    _on_write: Callable[[], None] = _no_staging

    async def create(self, message: Message) -> Message:
        self._on_write()
        self._reader._store[message.id] = message
        return message

    async def mark_read(self, message_id: UUID, ts: datetime) -> Message | None:
        message = self._reader._store.get(message_id)
        if message is None or message.is_read:
            return None
        self._on_write()
        updated = replace(message, is_read=True, read_at=ts)
        self._reader._store[message_id] = updated
        return updated

    async def mark_conversation_read(
        self, receiver_id: UUID, sender_id: UUID, ts: datetime
    ) -> int:
        count = 0
        for m in list(self._reader._store.values()):
            if (
                m.receiver_id == receiver_id
                and m.sender_id == sender_id
                and not m.is_read
                and not m.is_deleted
            ):
                self._on_write()
                self._reader._store[m.id] = replace(m, is_read=True, read_at=ts)
                count += 1
        return count

    async def soft_delete(self, message_id: UUID, ts: datetime) -> Message | None:
        message = self._reader._store.get(message_id)
        if message is None or message.is_deleted:
            return None
        self._on_write()
        updated = replace(message, is_deleted=True, deleted_at=ts)
        self._reader._store[message_id] = updated
        return updated


# ------------------------------------------------------------------ uow


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests.

    The first write after a commit or rollback snapshots every store;
    rollback restores that snapshot, so uncommitted writes disappear.
    """
    users: FakeUserReader = field(default_factory=FakeUserReader)
    users_w: FakeUserWriter | None = None
    relationships: FakeRelationshipReader = field(default_factory=FakeRelationshipReader)
    relationships_w: FakeRelationshipWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False
    _rolled_back: bool = False
    _snapshot: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.users_w is None:
            self.users_w = FakeUserWriter(self.users, self._stage)
        if self.relationships_w is None:
            self.relationships_w = FakeRelationshipWriter(self.relationships, _on_write=self._stage)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages, self._stage)

    def _stage(self) -> None:
        if self._snapshot is None:
            self._snapshot = {
                "users": dict(self.users._store),
                "edges": set(self.relationships._edges),
                "requests": dict(self.relationships._requests),
                "messages": dict(self.messages._store),
            }

    def _restore(self) -> None:
        snapshot, self._snapshot = self._snapshot, None
        if snapshot is None:
            return
        for current, saved in (
            (self.users._store, snapshot["users"]),
            (self.relationships._edges, snapshot["edges"]),
            (self.relationships._requests, snapshot["requests"]),
            (self.messages._store, snapshot["messages"]),
        ):
            current.clear()
            current.update(saved)

    def add_users(self, *users: User) -> None:
        for u in users:
            self.users._store[u.id] = u

    def befriend(self, a: User, b: User) -> None:
        self.relationships._edges.add((a.id, b.id))
        self.relationships._edges.add((b.id, a.id))

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._snapshot = None
        self._committed = True

    async def rollback(self) -> None:
        self._restore()
        self._rolled_back = True

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if exc_info[0] is not None:
            await self.rollback()


def uow_factory_for(uow: FakeUoW):
    """A ``get_uow_factory`` replacement that always hands out ``uow``."""

    @asynccontextmanager
    async def _factory():
        yield uow

    return _factory


# ------------------------------------------------------------- sessions


@dataclass
class FakeConnection:
    sent: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed_code: int | None = None
    fail: bool = False

    async def send(self, event_type: str, data: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("socket gone")
        self.sent.append((str(event_type), data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_code = code

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [data for t, data in self.sent if t == event_type]


# ------------------------------------------------------------- fixtures


@pytest.fixture
def alice() -> User:
    return make_user("alice")


@pytest.fixture
def bob() -> User:
    return make_user("bob")


@pytest.fixture
def carol() -> User:
    return make_user("carol")


@pytest.fixture
def uow(alice, bob, carol) -> FakeUoW:
    uow = FakeUoW()
    uow.add_users(alice, bob, carol)
    return uow


@pytest.fixture
def friends_uow(uow, alice, bob) -> FakeUoW:
    """Alice and Bob are friends; Carol is a stranger to both."""
    uow.befriend(alice, bob)
    return uow


@pytest.fixture
def sessions() -> InMemorySessionRegistry:
    return InMemorySessionRegistry()


@pytest.fixture
def alice_principal(alice) -> Principal:
    return Principal(user_id=alice.id)


@pytest.fixture
def bob_principal(bob) -> Principal:
    return Principal(user_id=bob.id)

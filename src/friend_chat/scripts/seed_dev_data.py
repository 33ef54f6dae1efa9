"""Seed development data: two befriended users and a short conversation."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from friend_chat.domain.entities.message import Message
from friend_chat.domain.entities.user import User
from friend_chat.domain.value_objects.enums import MessageType
from friend_chat.infrastructure.db.uow import open_uow

logger = logging.getLogger(__name__)


def _user(username: str, first_name: str, now: datetime) -> User:
    return User(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@example.com",
        first_name=first_name,
        last_name="Dev",
        profile_picture=None,
        bio="",
        is_online=False,
        last_seen=now,
        is_email_verified=True,
        created_at=now,
    )


async def seed() -> None:
    async with open_uow() as uow:
        now = datetime.now(timezone.utc)
        alice = await uow.users_w.create(_user("alice", "Alice", now))
        bob = await uow.users_w.create(_user("bob", "Bob", now))
        await uow.relationships_w.add_friendship(alice.id, bob.id, now)

        conversation = [
            (alice, bob, "Hey Bob!"),
            (bob, alice, "Hi Alice, how are you?"),
            (alice, bob, "Great, testing the new chat."),
        ]
        for offset, (sender, receiver, content) in enumerate(conversation):
            await uow.messages_w.create(
                Message(
                    id=uuid.uuid4(),
                    sender_id=sender.id,
                    receiver_id=receiver.id,
                    type=MessageType.TEXT,
                    content=content,
                    file_url=None,
                    file_name=None,
                    file_size=None,
                    reply_to_id=None,
                    is_read=False,
                    read_at=None,
                    is_deleted=False,
                    deleted_at=None,
                    created_at=now + timedelta(seconds=offset),
                )
            )

        await uow.commit()
        logger.info("Seeded users %s, %s with %d messages", alice.id, bob.id, len(conversation))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()

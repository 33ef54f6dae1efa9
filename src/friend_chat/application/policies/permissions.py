from __future__ import annotations

from uuid import UUID

from friend_chat.application.exceptions import ForbiddenError, NotFriendsError
from friend_chat.application.repositories.relationship import RelationshipReader
from friend_chat.domain.entities.message import Message


async def assert_friends(
    relationships: RelationshipReader,
    user_id: UUID,
    other_id: UUID,
) -> None:
    """Raise unless ``other_id`` is in ``user_id``'s friend set.

    Every surface that gates on friendship goes through this check.
    """
    if not await relationships.are_friends(user_id, other_id):
        raise NotFriendsError("You can only interact with your friends")


def assert_message_receiver(user_id: UUID, message: Message) -> None:
    if message.receiver_id != user_id:
        raise ForbiddenError("Only the receiver can mark a message as read")


def assert_message_sender(user_id: UUID, message: Message) -> None:
    if message.sender_id != user_id:
        raise ForbiddenError("Only the sender can delete a message")


def assert_message_participant(user_id: UUID, message: Message) -> None:
    if not message.involves(user_id):
        raise ForbiddenError("Not a participant of this message")

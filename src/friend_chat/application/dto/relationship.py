from __future__ import annotations

from dataclasses import dataclass

from friend_chat.domain.entities.friend_request import FriendRequest
from friend_chat.domain.entities.user import User


@dataclass(frozen=True, slots=True)
class RequestView:
    request: FriendRequest
    counterpart: User


@dataclass(frozen=True, slots=True)
class PendingRequests:
    incoming: list[RequestView]
    sent: list[RequestView]


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    mirrors_repaired: int = 0
    orphans_removed: int = 0
    edges_restored: int = 0
    edges_removed: int = 0

    @property
    def total(self) -> int:
        return (
            self.mirrors_repaired
            + self.orphans_removed
            + self.edges_restored
            + self.edges_removed
        )

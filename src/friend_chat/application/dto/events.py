from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class OutboundEvent:
    """A server→client event addressed to one user's live session."""

    recipient_id: UUID
    type: str
    data: dict[str, Any]

    def to_payload(self) -> dict[str, Any]:
        return {
            "recipient_id": str(self.recipient_id),
            "type": self.type,
            "data": self.data,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> OutboundEvent:
        return cls(
            recipient_id=UUID(payload["recipient_id"]),
            type=payload["type"],
            data=payload.get("data", {}),
        )

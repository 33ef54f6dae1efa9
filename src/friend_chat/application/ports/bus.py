from __future__ import annotations

from typing import Any, Protocol

from friend_chat.application.dto.events import OutboundEvent


class EventPublisher(Protocol):
    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...


class EventSink(Protocol):
    """Where services' outbound events are handed for live delivery."""

    async def deliver(self, events: list[OutboundEvent]) -> None: ...

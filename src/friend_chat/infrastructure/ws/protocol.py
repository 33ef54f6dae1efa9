"""Socket frame envelopes: ``{"type": ..., "data": {...}}`` both ways."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from friend_chat.application.exceptions import AppError
from friend_chat.domain.value_objects.enums import ServerEvent


class WsInbound(BaseModel):
    """Client frame.

    ``type`` stays a free string: unknown names are rejected by the dispatch
    table as a validation error, not as a malformed envelope.
    """

    model_config = ConfigDict(extra="ignore")

    type: str = Field(min_length=1, max_length=64)
    data: dict[str, Any] = Field(default_factory=dict)


class WsOutbound(BaseModel):
    """Server frame."""

    type: ServerEvent
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def error(cls, message: str, code: str, *, retryable: bool = False) -> WsOutbound:
        return cls(
            type=ServerEvent.ERROR,
            data={"message": message, "code": code, "retryable": retryable},
        )

    @classmethod
    def from_app_error(cls, exc: AppError) -> WsOutbound:
        return cls.error(exc.detail, exc.code, retryable=exc.retryable)


MALFORMED_ENVELOPE = WsOutbound.error("Malformed event envelope", "invalid_payload")
INTERNAL_ERROR = WsOutbound.error("Internal error", "internal_error", retryable=True)

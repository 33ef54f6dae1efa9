"""Keyset cursors for newest-first message history.

A cursor is the unpadded urlsafe base64 of ``"<iso created_at>|<message id>"``
of the last message on the previous page.
"""
from __future__ import annotations

import base64
import binascii
from datetime import datetime
from uuid import UUID

from friend_chat.application.exceptions import ValidationError


def encode_cursor(created_at: datetime, message_id: UUID) -> str:
    raw = f"{created_at.isoformat()}|{message_id}".encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode()).decode()
        created_at, message_id = raw.split("|", 1)
        return datetime.fromisoformat(created_at), UUID(message_id)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise ValidationError("Invalid pagination cursor") from exc

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Session:
    """Process-local pairing of a user to its live connection."""

    user_id: UUID
    connection: Any
    connected_at: datetime

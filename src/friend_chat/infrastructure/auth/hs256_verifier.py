from __future__ import annotations

from uuid import UUID

import jwt

from friend_chat.application.dto.principal import Principal
from friend_chat.application.exceptions import AuthenticationError


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret.

    The ``sub`` claim carries the user's UUID.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
            user_id = UUID(str(payload["sub"]))
        except (jwt.InvalidTokenError, ValueError) as exc:
            raise AuthenticationError(f"Invalid token: {exc}") from exc
        return Principal(user_id=user_id, roles=payload.get("roles", []))

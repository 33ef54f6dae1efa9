from __future__ import annotations

import logging
from uuid import UUID

import jwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientError

from friend_chat.application.dto.principal import Principal
from friend_chat.application.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> Principal:
        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256", "ES256"],
                options={"require": ["sub", "exp"]},
            )
            user_id = UUID(str(payload["sub"]))
        except PyJWKClientError as exc:
            logger.warning("JWKS lookup against %s failed: %s", self._jwks_url, exc)
            raise AuthenticationError("Signing key unavailable") from exc
        except (jwt.InvalidTokenError, ValueError) as exc:
            raise AuthenticationError(f"Invalid token: {exc}") from exc
        return Principal(user_id=user_id, roles=payload.get("roles", []))

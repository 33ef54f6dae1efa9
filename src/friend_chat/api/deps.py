"""FastAPI dependency injection helpers."""
from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Annotated, AsyncIterator, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from friend_chat.application.dto.principal import Principal
from friend_chat.application.exceptions import AuthenticationError
from friend_chat.application.ports.auth import TokenVerifier
from friend_chat.application.ports.bus import EventSink
from friend_chat.application.ports.sessions import SessionRegistry
from friend_chat.application.uow import UnitOfWork
from friend_chat.config import settings
from friend_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from friend_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from friend_chat.infrastructure.db.session import AsyncSessionLocal
from friend_chat.infrastructure.db.uow import SqlAlchemyUoW, open_uow
from friend_chat.services.presence_service import PresenceBroadcaster

_bearer_scheme = HTTPBearer()

UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def get_uow_factory() -> UoWFactory:
    """Socket handlers open one unit of work per event instead of per connection."""
    return open_uow


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> Principal:
    try:
        return await verifier.verify(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_sessions(conn: HTTPConnection) -> SessionRegistry:
    return conn.app.state.sessions


def get_presence(conn: HTTPConnection) -> PresenceBroadcaster:
    return conn.app.state.presence


def get_event_sink(conn: HTTPConnection) -> EventSink:
    return conn.app.state.event_sink


EventSinkDep = Annotated[EventSink, Depends(get_event_sink)]

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from friend_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from friend_chat.api.middleware.metrics import RequestTimingMiddleware
from friend_chat.api.v1.routers import friends, health, messages, users, ws
from friend_chat.application.dto.events import OutboundEvent
from friend_chat.application.exceptions import (
    AppError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from friend_chat.config import settings
from friend_chat.infrastructure.bus.redis_pubsub import (
    RedisEventSink,
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from friend_chat.infrastructure.db.session import dispose_engine
from friend_chat.infrastructure.ws.registry import InMemorySessionRegistry
from friend_chat.services.presence_service import PresenceBroadcaster

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle.

    While running, REST and socket events travel through Redis Pub/Sub and
    come back to this process's sessions via the subscriber.
    """
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    sessions: InMemorySessionRegistry = app.state.sessions

    async def _on_pubsub_event(event_type: str, data: dict[str, Any]) -> None:
        await sessions.deliver([OutboundEvent.from_payload(data)])

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        _on_pubsub_event,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber
    app.state.event_sink = RedisEventSink(
        RedisPubSubPublisher(app.state.redis),
        settings.REDIS_PUBSUB_CHANNEL,
    )

    yield

    app.state.event_sink = sessions
    await subscriber.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Friend Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    sessions = InMemorySessionRegistry()
    app.state.sessions = sessions
    app.state.presence = PresenceBroadcaster(sessions)
    app.state.event_sink = sessions

    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(friends.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _error(status_code: int, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthenticationError)
    async def _unauthenticated(_req: Request, exc: AuthenticationError) -> JSONResponse:
        return _error(401, exc)

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return _error(403, exc)

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return _error(409, exc)

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return _error(422, exc)

    @app.exception_handler(TransientStoreError)
    async def _transient(_req: Request, exc: TransientStoreError) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"detail": exc.detail, "code": exc.code, "retryable": True},
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    async def _store_unavailable(_req: Request, exc: Exception) -> JSONResponse:
        logger.warning("Store unavailable: %s", exc)
        return _error(503, TransientStoreError("The store is unavailable, retry later"))

"""Request correlation ids for log lines.

HTTP requests take the id from ``X-Request-ID`` (echoed back); socket
sessions take it from the upgrade request and keep it for their lifetime.
"""
from __future__ import annotations

import logging
import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")

HEADER = "X-Request-ID"
MAX_LENGTH = 128
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]+$")


def resolve_correlation_id(raw: str | None) -> str:
    """The caller's id when it is short and log-safe, otherwise a fresh one."""
    if raw and len(raw) <= MAX_LENGTH and _SAFE_ID.match(raw):
        return raw
    return uuid.uuid4().hex


@contextmanager
def bound_correlation_id(raw: str | None) -> Iterator[str]:
    token = correlation_id_ctx.set(resolve_correlation_id(raw))
    try:
        yield correlation_id_ctx.get()
    finally:
        correlation_id_ctx.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamps ``record.correlation_id`` so formatters can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_ctx.get() or "-"
        return True


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        with bound_correlation_id(request.headers.get(HEADER)) as cid:
            response = await call_next(request)
        response.headers[HEADER] = cid
        return response

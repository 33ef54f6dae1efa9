"""Deadline and rollback handling around store mutations."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from friend_chat.application.exceptions import TransientStoreError
from friend_chat.application.uow import UnitOfWork
from friend_chat.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def mutation_boundary(
    uow: UnitOfWork,
    *,
    timeout: float | None = None,
) -> AsyncIterator[None]:
    """Run the enclosed store work under a deadline.

    Any failure rolls the unit of work back before propagating, so a
    mutation touching two user records is either fully committed or not
    at all. A missed deadline surfaces as a retryable TransientStoreError.
    """
    deadline = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        async with asyncio.timeout(deadline):
            yield
    except TimeoutError as exc:
        await _rollback(uow)
        raise TransientStoreError("The store did not respond in time, retry later") from exc
    except BaseException:
        await _rollback(uow)
        raise


async def _rollback(uow: UnitOfWork) -> None:
    try:
        await uow.rollback()
    except Exception:
        logger.warning("Rollback failed", exc_info=True)

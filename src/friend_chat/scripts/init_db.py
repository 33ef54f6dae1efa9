"""Create every table known to Base.metadata (development and tests)."""
from __future__ import annotations

import asyncio
import logging

from friend_chat.infrastructure.db import models  # noqa: F401
from friend_chat.infrastructure.db.base import Base
from friend_chat.infrastructure.db.session import dispose_engine, engine

logger = logging.getLogger(__name__)


async def init_db(*, drop: bool = False) -> None:
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await dispose_engine()
    logger.info("Schema ready: %s", ", ".join(sorted(Base.metadata.tables)))


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(init_db())


if __name__ == "__main__":
    main()

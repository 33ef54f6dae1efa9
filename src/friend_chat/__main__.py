"""Entrypoint: python -m friend_chat"""
from __future__ import annotations

import logging

import uvicorn

from friend_chat.api.middleware.correlation_id import CorrelationIdFilter
from friend_chat.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s]: %(message)s"


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=settings.LOG_LEVEL, handlers=[handler], force=True)


def main() -> None:
    configure_logging()
    uvicorn.run(
        "friend_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        # Uvicorn's loggers propagate to the root handler configured above.
        log_config=None,
    )


if __name__ == "__main__":
    main()

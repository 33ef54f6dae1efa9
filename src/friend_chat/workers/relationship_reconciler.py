"""Relationship reconciler: repairs asymmetric friend-request and friendship state."""
from __future__ import annotations

import asyncio
import logging

from friend_chat.application.dto.relationship import ReconcileReport
from friend_chat.config import settings
from friend_chat.infrastructure.db.uow import open_uow
from friend_chat.services import relationship_service

logger = logging.getLogger(__name__)


async def run_reconciler() -> None:
    logger.info(
        "Relationship reconciler started (interval=%.1fs, batch=%d)",
        settings.RECONCILE_INTERVAL,
        settings.RECONCILE_BATCH_SIZE,
    )
    while True:
        try:
            await reconcile_once()
        except Exception:
            logger.exception("Reconciler loop error")
        await asyncio.sleep(settings.RECONCILE_INTERVAL)


async def reconcile_once() -> ReconcileReport:
    async with open_uow() as uow:
        report = await relationship_service.reconcile(uow, limit=settings.RECONCILE_BATCH_SIZE)
    if report.total:
        logger.info(
            "Reconciled %d entries (mirrors=%d orphans=%d edges_restored=%d edges_removed=%d)",
            report.total,
            report.mirrors_repaired,
            report.orphans_removed,
            report.edges_restored,
            report.edges_removed,
        )
    return report


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_reconciler())


if __name__ == "__main__":
    main()

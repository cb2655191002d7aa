"""
Escrow release worker.

Runs hourly via celery-beat (see migration 0002) and releases every
active escrow hold whose release_scheduled_date has passed.
"""

from __future__ import annotations

import logging

from celery import shared_task

from billing.services import build_payout_engine

logger = logging.getLogger(__name__)

RELEASED_BY = "system"


@shared_task(bind=True, acks_late=True)
def release_due_escrow_holds(self) -> dict:
    """
    Release due escrow holds.

    Returns:
        Dict with released_count
    """
    released_count = build_payout_engine().release_due_escrow_holds(released_by=RELEASED_BY)

    logger.info(
        f"Escrow release sweep complete: released {released_count} holds",
        extra={"released_count": released_count, "task_id": self.request.id},
    )
    return {"released_count": released_count}

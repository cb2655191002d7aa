"""
Scheduled payout worker.

Runs daily via celery-beat (see migration 0002). Safe to run
concurrently: each PayoutSchedule is claimed with a conditional update
before its payouts are processed.
"""

from __future__ import annotations

import logging

from celery import shared_task

from billing.services import build_payout_scheduler

logger = logging.getLogger(__name__)


@shared_task(bind=True, acks_late=True)
def process_scheduled_payouts(self) -> dict:
    """
    Process the payouts of every due PayoutSchedule.

    Returns:
        Dict with schedules_triggered, schedules_skipped,
        schedules_failed, payouts_processed, payouts_failed and errors
    """
    logger.info("Starting scheduled payout task", extra={"task_id": self.request.id})
    result = build_payout_scheduler().process_due_schedules()
    return result.to_dict()

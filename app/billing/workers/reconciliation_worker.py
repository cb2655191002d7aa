"""
Payout reconciliation worker.

Runs every 30 minutes via celery-beat (see migration 0002). Findings are
logged at WARNING for an operator to resolve against the Stripe
dashboard; nothing is changed automatically.
"""

from __future__ import annotations

import logging

from celery import shared_task

from billing.services import build_payout_reconciler

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def run_payout_reconciliation(self) -> dict:
    """
    Run the reconciliation checks.

    Returns:
        Dict with stuck_payout_ids and unstamped_hold_ids
    """
    logger.info("Starting payout reconciliation", extra={"task_id": self.request.id})
    return build_payout_reconciler().run()

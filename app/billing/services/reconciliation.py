"""
Reconciliation of payout records.

Finds records that the normal flow cannot repair on its own:

- Payouts stuck in PROCESSING: the process died between claiming the
  payout and recording the Stripe outcome. Whether money moved is unknown
  until someone checks Stripe, so these are reported, never retried
  automatically.
- Released escrow holds whose payout was never stamped with
  holdback_released_at.

Usage:
    from billing.services import build_payout_reconciler

    report = build_payout_reconciler().run()
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone

from billing.models import EscrowHold, Payout
from billing.repository import PayoutRepository
from core.services import BaseService


class PayoutReconciler(BaseService):
    """Read-only sweep reporting payouts and holds that need attention."""

    def __init__(
        self,
        repository: PayoutRepository,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.repository = repository
        self.clock = clock

    def find_stuck_payouts(self, older_than: timedelta | None = None) -> list[Payout]:
        if older_than is None:
            older_than = timedelta(minutes=settings.PAYOUT_STUCK_PROCESSING_MINUTES)
        return self.repository.list_stuck_payouts(self.clock() - older_than)

    def find_unstamped_holdback_releases(self) -> list[EscrowHold]:
        return self.repository.list_unstamped_holdback_releases()

    def run(self) -> dict:
        """
        Run every check and log what was found.

        Returns:
            Dict with stuck_payout_ids and unstamped_hold_ids
        """
        logger = self.get_logger()

        stuck = self.find_stuck_payouts()
        for payout in stuck:
            logger.warning(
                "Payout stuck in processing",
                extra={
                    "payout_id": str(payout.id),
                    "processing_started_at": payout.processing_started_at.isoformat()
                    if payout.processing_started_at
                    else None,
                    "idempotency_attempt": payout.idempotency_attempt,
                },
            )

        unstamped = self.find_unstamped_holdback_releases()
        for hold in unstamped:
            logger.warning(
                "Released escrow hold not stamped on payout",
                extra={"hold_id": str(hold.id), "payout_id": str(hold.payout_id)},
            )

        report = {
            "stuck_payout_ids": [str(p.id) for p in stuck],
            "unstamped_hold_ids": [str(h.id) for h in unstamped],
        }
        logger.info(
            "Payout reconciliation complete",
            extra={
                "stuck_count": len(stuck),
                "unstamped_count": len(unstamped),
            },
        )
        return report

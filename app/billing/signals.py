"""
Django signals for billing events.

Notification delivery lives outside this service; receivers connected to
these signals (e-mail, webhooks to the dashboard) are the sink. Signals
are sent with send_robust after the state change is committed, so a
failing receiver never affects the payout.

Signals:
    payout_completed(payout)
    payout_failed(payout, error)
    holdback_released(hold, payout)

Usage:
    from django.dispatch import receiver
    from billing.signals import payout_completed

    @receiver(payout_completed)
    def notify_recruiter(sender, payout, **kwargs):
        ...
"""

from __future__ import annotations

import logging

from django.dispatch import Signal

logger = logging.getLogger(__name__)

payout_completed = Signal()
payout_failed = Signal()
holdback_released = Signal()


def send_billing_signal(signal: Signal, sender, **kwargs) -> None:
    """Send a signal to all receivers, logging receivers that raise."""
    for receiver, response in signal.send_robust(sender=sender, **kwargs):
        if isinstance(response, Exception):
            logger.error(
                "Billing signal receiver failed",
                extra={"receiver": repr(receiver), "error": str(response)},
                exc_info=response,
            )

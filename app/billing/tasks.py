"""
Celery task registry for the billing app.

The tasks are defined in billing.workers and re-exported here so Celery
autodiscover finds them.

Usage:
    from billing.tasks import process_scheduled_payouts

    process_scheduled_payouts.delay()
"""

from billing.workers import (  # noqa: F401
    process_scheduled_payouts,
    release_due_escrow_holds,
    run_payout_reconciliation,
)

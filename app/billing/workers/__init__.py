"""
Celery tasks for the periodic billing sweeps.

- process_scheduled_payouts: Processes payouts of due PayoutSchedules
- release_due_escrow_holds: Releases escrow holds past their release date
- run_payout_reconciliation: Reports stuck payouts and unstamped releases

Usage:
    from billing.workers import process_scheduled_payouts

    process_scheduled_payouts.delay()
"""

from billing.workers.escrow_release import release_due_escrow_holds
from billing.workers.payout_scheduler import process_scheduled_payouts
from billing.workers.reconciliation_worker import run_payout_reconciliation

__all__ = [
    "process_scheduled_payouts",
    "release_due_escrow_holds",
    "run_payout_reconciliation",
]

"""
Billing services.

Factories wire the production record store and the Stripe adapter; tests
construct the services directly with their own collaborators.
"""

from billing.adapters import StripeAdapter
from billing.repository import PayoutRepository
from billing.services.connected_accounts import ConnectedAccountService
from billing.services.payout_engine import PayoutEngine, build_payout_engine
from billing.services.payout_scheduler import PayoutScheduler, ScheduleSweepResult
from billing.services.reconciliation import PayoutReconciler


def build_payout_scheduler() -> PayoutScheduler:
    repository = PayoutRepository()
    return PayoutScheduler(
        engine=PayoutEngine(repository=repository, gateway=StripeAdapter),
        repository=repository,
    )


def build_payout_reconciler() -> PayoutReconciler:
    return PayoutReconciler(repository=PayoutRepository())


def build_connected_account_service() -> ConnectedAccountService:
    return ConnectedAccountService(repository=PayoutRepository(), gateway=StripeAdapter)


__all__ = [
    "ConnectedAccountService",
    "PayoutEngine",
    "PayoutReconciler",
    "PayoutScheduler",
    "ScheduleSweepResult",
    "build_connected_account_service",
    "build_payout_engine",
    "build_payout_reconciler",
    "build_payout_scheduler",
]

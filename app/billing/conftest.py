"""
Pytest fixtures shared by all billing test packages.

The payment gateway is always a MagicMock injected into the services, so
no test talks to Stripe. Fixtures provide payouts in each starting status
and a recruiter with a connected account.

Usage:
    def test_process(engine, gateway, payout, connected_account):
        engine.process_payout(payout.id)
        gateway.create_transfer.assert_called_once()
"""

import itertools
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from django.utils import timezone

from billing.adapters import AccountLinkResult, ConnectedAccountResult
from billing.repository import PayoutRepository
from billing.services import (
    ConnectedAccountService,
    PayoutEngine,
    PayoutReconciler,
    PayoutScheduler,
)
from billing.state_machines import PayoutStatus
from billing.tests.factories import (
    ConnectedAccountFactory,
    EscrowHoldFactory,
    PayoutFactory,
    transfer_result,
)

# =============================================================================
# Gateway & Service Fixtures
# =============================================================================


@pytest.fixture
def gateway():
    """
    Mock payment gateway with successful defaults.

    Each transfer gets its own id (tr_test000001, tr_test000002, ...) since
    stripe_transfer_id is unique across payouts.
    """
    mock = MagicMock()
    transfer_ids = itertools.count(1)
    mock.create_transfer.side_effect = lambda **kwargs: transfer_result(
        f"tr_test{next(transfer_ids):06d}", **kwargs
    )
    mock.create_connected_account.return_value = ConnectedAccountResult(id="acct_new123")
    mock.create_account_link.return_value = AccountLinkResult(
        url="https://connect.stripe.com/setup/e/acct_new123/abc",
        expires_at=1760000000,
    )
    mock.retrieve_account.return_value = ConnectedAccountResult(
        id="acct_new123",
        charges_enabled=True,
        payouts_enabled=True,
        details_submitted=True,
        requirements={"currently_due": []},
    )
    return mock


@pytest.fixture
def repository():
    return PayoutRepository()


@pytest.fixture
def engine(repository, gateway):
    return PayoutEngine(repository=repository, gateway=gateway)


@pytest.fixture
def scheduler(engine, repository):
    return PayoutScheduler(engine=engine, repository=repository)


@pytest.fixture
def reconciler(repository):
    return PayoutReconciler(repository=repository)


@pytest.fixture
def account_service(repository, gateway):
    return ConnectedAccountService(repository=repository, gateway=gateway)


# =============================================================================
# Payout Fixtures
# =============================================================================


@pytest.fixture
def payout(db):
    """Pending payout of 10,000.00."""
    return PayoutFactory()


@pytest.fixture
def connected_account(db, payout):
    """Connected account for the payout's recruiter."""
    return ConnectedAccountFactory(recruiter_id=payout.recruiter_id)


@pytest.fixture
def failed_payout(db):
    payout = PayoutFactory(
        status=PayoutStatus.FAILED,
        failure_reason="Transfer was declined",
        failed_at=timezone.now(),
        idempotency_attempt=2,
    )
    ConnectedAccountFactory(recruiter_id=payout.recruiter_id)
    return payout


@pytest.fixture
def completed_payout(db):
    return PayoutFactory(
        status=PayoutStatus.COMPLETED,
        stripe_transfer_id="tr_done123",
        completed_at=timezone.now(),
    )


@pytest.fixture
def processing_payout(db):
    return PayoutFactory(
        status=PayoutStatus.PROCESSING,
        processing_started_at=timezone.now() - timedelta(hours=2),
    )


# =============================================================================
# Escrow Fixtures
# =============================================================================


@pytest.fixture
def escrow_hold(db, payout):
    """Active hold linked to the payout."""
    return EscrowHoldFactory(placement_id=payout.placement_id, payout=payout)


@pytest.fixture
def due_escrow_hold(db, payout):
    """Active hold whose release date has passed."""
    return EscrowHoldFactory(
        placement_id=payout.placement_id,
        payout=payout,
        release_scheduled_date=timezone.now() - timedelta(hours=1),
    )

"""
Tests for PayoutEngine.

Tests cover:
- Payout creation and its validation rules
- Three-phase payout execution (claim, transfer, record)
- Failure recording and idempotency attempt policy
- Concurrent and stale callers
- Collaborator splits
- Escrow holds and the release sweep
- Queries and the audit trail
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.utils import timezone

from billing.adapters import IdempotencyKeyGenerator
from billing.exceptions import (
    EscrowHoldNotFoundError,
    InvalidStateError,
    MissingPayoutAccountError,
    PayoutNotFoundError,
    PayoutValidationError,
    StaleRecordError,
    StripeCardDeclinedError,
    StripeTimeoutError,
)
from billing.models import EscrowHold, Payout, PayoutAuditLog, PayoutSplit
from billing.services import PayoutEngine
from billing.signals import holdback_released, payout_completed, payout_failed
from billing.state_machines import (
    AuditEventType,
    EscrowHoldStatus,
    PayoutScheduleStatus,
    PayoutSplitStatus,
    PayoutStatus,
)
from billing.tests.factories import (
    ConnectedAccountFactory,
    EscrowHoldFactory,
    PayoutFactory,
    PayoutSplitFactory,
    transfer_result,
)
from core.exceptions import ValidationError


def _events(payout):
    return list(
        PayoutAuditLog.objects.filter(payout=payout)
        .order_by("created_at", "id")
        .values_list("event_type", "old_status", "new_status")
    )


@pytest.fixture
def signal_receiver():
    """Connect a mock receiver to a billing signal for the test."""
    connected = []

    def _connect(signal):
        mock = MagicMock()

        def receiver(sender, **kwargs):
            return mock(sender=sender, **kwargs)

        signal.connect(receiver, weak=False)
        connected.append((signal, receiver))
        return mock

    yield _connect

    for signal, receiver in connected:
        signal.disconnect(receiver)


# =============================================================================
# create_payout Tests
# =============================================================================


@pytest.mark.django_db
class TestCreatePayout:
    def _create(self, engine, **overrides):
        params = {
            "placement_id": uuid.uuid4(),
            "recruiter_id": uuid.uuid4(),
            "placement_fee": Decimal("20000.00"),
            "recruiter_share_percentage": Decimal("50"),
            "payout_amount": Decimal("10000.00"),
        }
        params.update(overrides)
        return engine.create_payout(**params)

    def test_creates_pending_payout(self, engine):
        payout = self._create(engine, created_by="ops@example.com")

        payout.refresh_from_db()
        assert payout.status == PayoutStatus.PENDING
        assert payout.payout_amount == Decimal("10000.00")
        assert payout.holdback_amount == Decimal("0.00")
        assert payout.currency == "usd"
        assert payout.stripe_transfer_id is None
        assert payout.idempotency_attempt == 1
        assert payout.created_by == "ops@example.com"

    def test_appends_created_audit_row(self, engine):
        payout = self._create(engine)

        entries = list(PayoutAuditLog.objects.filter(payout=payout))
        assert len(entries) == 1
        assert entries[0].event_type == AuditEventType.CREATED
        assert entries[0].old_status is None
        assert entries[0].new_status == PayoutStatus.PENDING
        assert entries[0].created_by == "system"

    def test_accepts_string_amounts(self, engine):
        payout = self._create(
            engine,
            placement_fee="15000",
            recruiter_share_percentage="40",
            payout_amount="6000.00",
            holdback_amount="500",
        )

        assert payout.payout_amount == Decimal("6000.00")
        assert payout.holdback_amount == Decimal("500")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10.00")])
    def test_rejects_non_positive_amount(self, engine, amount):
        with pytest.raises(PayoutValidationError) as exc_info:
            self._create(engine, payout_amount=amount)

        assert exc_info.value.status_code == 400
        assert Payout.objects.count() == 0

    @pytest.mark.parametrize("field", ["payout_amount", "placement_fee", "holdback_amount"])
    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
    def test_rejects_non_finite_amount(self, engine, field, value):
        with pytest.raises(PayoutValidationError) as exc_info:
            self._create(engine, **{field: value})

        assert exc_info.value.details == {field: value}
        assert Payout.objects.count() == 0

    @pytest.mark.parametrize("share", [Decimal("-1"), Decimal("100.01")])
    def test_rejects_share_outside_range(self, engine, share):
        with pytest.raises(PayoutValidationError):
            self._create(engine, recruiter_share_percentage=share)

        assert Payout.objects.count() == 0

    def test_rejects_negative_holdback(self, engine):
        with pytest.raises(PayoutValidationError):
            self._create(engine, holdback_amount=Decimal("-1"))

    def test_rejects_missing_ids(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            self._create(engine, recruiter_id=None)

        assert "recruiter_id" in exc_info.value.details

    def test_rejects_non_numeric_amount(self, engine):
        with pytest.raises(PayoutValidationError):
            self._create(engine, payout_amount="ten thousand")

    def test_share_boundaries_allowed(self, engine):
        assert self._create(engine, recruiter_share_percentage=Decimal("0")).pk
        assert self._create(engine, recruiter_share_percentage=Decimal("100")).pk

    def test_keeps_supplied_amount_when_it_disagrees_with_share(self, engine, mocker):
        logger = mocker.patch.object(PayoutEngine, "get_logger").return_value

        payout = self._create(engine, payout_amount=Decimal("9000.00"))

        payout.refresh_from_db()
        assert payout.payout_amount == Decimal("9000.00")
        assert payout.metadata["expected_amount"] == "10000.00"
        logger.warning.assert_called_once()

    def test_no_expected_amount_when_consistent(self, engine):
        payout = self._create(engine)

        assert "expected_amount" not in payout.metadata


# =============================================================================
# process_payout Tests
# =============================================================================


@pytest.mark.django_db
class TestProcessPayout:
    def test_successful_transfer(self, engine, gateway, payout, connected_account):
        result = engine.process_payout(payout.id)

        payout.refresh_from_db()
        assert result.status == PayoutStatus.COMPLETED
        assert payout.status == PayoutStatus.COMPLETED
        assert payout.stripe_transfer_id == "tr_test000001"
        assert payout.destination_account_id == connected_account.stripe_account_id
        assert payout.processing_started_at is not None
        assert payout.completed_at is not None
        assert payout.failure_reason is None

    def test_calls_gateway_with_amount_in_cents_and_key(self, engine, gateway, payout, connected_account):
        engine.process_payout(payout.id)

        gateway.create_transfer.assert_called_once()
        kwargs = gateway.create_transfer.call_args.kwargs
        assert kwargs["amount_cents"] == 1000000
        assert kwargs["destination_account"] == connected_account.stripe_account_id
        assert kwargs["currency"] == "usd"
        assert kwargs["idempotency_key"] == IdempotencyKeyGenerator.generate(
            "create_transfer", payout.id, 1
        )
        assert kwargs["metadata"]["payout_id"] == str(payout.id)

    def test_amount_cents_rounds_half_up(self, engine, gateway, connected_account, payout):
        Payout.objects.filter(pk=payout.pk).update(payout_amount=Decimal("1234.57"))

        engine.process_payout(payout.id)

        assert gateway.create_transfer.call_args.kwargs["amount_cents"] == 123457

    def test_audit_trail_of_success(self, engine, payout, connected_account):
        engine.process_payout(payout.id, actor="ops@example.com")

        assert _events(payout) == [
            (AuditEventType.STATUS_CHANGED, PayoutStatus.PENDING, PayoutStatus.PROCESSING),
            (
                AuditEventType.STRIPE_TRANSFER_CREATED,
                PayoutStatus.PROCESSING,
                PayoutStatus.COMPLETED,
            ),
        ]
        last = PayoutAuditLog.objects.filter(payout=payout).order_by("-id").first()
        assert last.metadata["stripe_transfer_id"] == "tr_test000001"
        assert last.created_by == "ops@example.com"

    def test_version_increases(self, engine, payout, connected_account):
        start_version = payout.version

        engine.process_payout(payout.id)

        payout.refresh_from_db()
        assert payout.version == start_version + 2

    def test_settles_splits_on_completion(self, engine, payout, connected_account):
        split = PayoutSplitFactory(payout=payout)

        engine.process_payout(payout.id)

        split.refresh_from_db()
        assert split.status == PayoutSplitStatus.SETTLED
        assert split.settled_at is not None

    def test_sends_completed_signal(self, engine, payout, connected_account, signal_receiver):
        receiver = signal_receiver(payout_completed)

        engine.process_payout(payout.id)

        receiver.assert_called_once()
        assert receiver.call_args.kwargs["payout"].pk == payout.pk

    def test_failing_signal_receiver_does_not_fail_payout(self, engine, payout, connected_account, signal_receiver):
        receiver = signal_receiver(payout_completed)
        receiver.side_effect = RuntimeError("mailer down")

        result = engine.process_payout(payout.id)

        assert result.status == PayoutStatus.COMPLETED

    def test_not_found(self, engine, gateway, db):
        with pytest.raises(PayoutNotFoundError) as exc_info:
            engine.process_payout(uuid.uuid4())

        assert exc_info.value.status_code == 404
        gateway.create_transfer.assert_not_called()

    def test_completed_payout_rejected(self, engine, gateway, completed_payout):
        with pytest.raises(InvalidStateError) as exc_info:
            engine.process_payout(completed_payout.id)

        assert exc_info.value.status_code == 409
        gateway.create_transfer.assert_not_called()
        assert _events(completed_payout) == []

    def test_processing_payout_rejected(self, engine, gateway, processing_payout):
        with pytest.raises(InvalidStateError):
            engine.process_payout(processing_payout.id)

        gateway.create_transfer.assert_not_called()

    def test_second_process_of_completed_payout_rejected(self, engine, gateway, payout, connected_account):
        engine.process_payout(payout.id)

        with pytest.raises(InvalidStateError):
            engine.process_payout(payout.id)

        assert gateway.create_transfer.call_count == 1

    def test_missing_connected_account(self, engine, gateway, payout):
        with pytest.raises(MissingPayoutAccountError):
            engine.process_payout(payout.id)

        payout.refresh_from_db()
        assert payout.status == PayoutStatus.FAILED
        assert payout.failure_reason
        assert payout.failed_at is not None
        assert payout.idempotency_attempt == 1
        gateway.create_transfer.assert_not_called()
        assert _events(payout)[-1] == (
            AuditEventType.FAILED,
            PayoutStatus.PROCESSING,
            PayoutStatus.FAILED,
        )

    def test_declined_transfer_records_failure(self, engine, gateway, payout, connected_account):
        gateway.create_transfer.side_effect = StripeCardDeclinedError("Transfer was declined")

        with pytest.raises(StripeCardDeclinedError):
            engine.process_payout(payout.id)

        payout.refresh_from_db()
        assert payout.status == PayoutStatus.FAILED
        assert payout.failure_reason == "Transfer was declined"
        assert payout.stripe_transfer_id is None
        failed = PayoutAuditLog.objects.filter(payout=payout, event_type=AuditEventType.FAILED).get()
        assert failed.metadata["error"] == "Transfer was declined"
        assert failed.metadata["error_code"] == "TRANSFER_DECLINED"

    def test_declined_transfer_moves_to_new_idempotency_attempt(self, engine, gateway, payout, connected_account):
        gateway.create_transfer.side_effect = StripeCardDeclinedError("Transfer was declined")

        with pytest.raises(StripeCardDeclinedError):
            engine.process_payout(payout.id)

        payout.refresh_from_db()
        assert payout.idempotency_attempt == 2

    def test_timeout_keeps_idempotency_attempt(self, engine, gateway, payout, connected_account):
        gateway.create_transfer.side_effect = StripeTimeoutError("Stripe request timed out. Please retry.")

        with pytest.raises(StripeTimeoutError):
            engine.process_payout(payout.id)

        payout.refresh_from_db()
        assert payout.status == PayoutStatus.FAILED
        assert payout.idempotency_attempt == 1

    def test_retry_after_timeout_reuses_key(self, engine, gateway, payout, connected_account):
        gateway.create_transfer.side_effect = [
            StripeTimeoutError("Stripe request timed out. Please retry."),
            transfer_result("tr_after_timeout"),
        ]

        with pytest.raises(StripeTimeoutError):
            engine.process_payout(payout.id)
        engine.process_payout(payout.id)

        keys = [c.kwargs["idempotency_key"] for c in gateway.create_transfer.call_args_list]
        assert keys[0] == keys[1]

    def test_unexpected_gateway_exception_records_failure(self, engine, gateway, payout, connected_account):
        gateway.create_transfer.side_effect = RuntimeError("socket closed")

        with pytest.raises(RuntimeError):
            engine.process_payout(payout.id)

        payout.refresh_from_db()
        assert payout.status == PayoutStatus.FAILED
        assert payout.failure_reason == "socket closed"
        assert payout.idempotency_attempt == 1

    def test_sends_failed_signal(self, engine, gateway, payout, connected_account, signal_receiver):
        receiver = signal_receiver(payout_failed)
        error = StripeCardDeclinedError("Transfer was declined")
        gateway.create_transfer.side_effect = error

        with pytest.raises(StripeCardDeclinedError):
            engine.process_payout(payout.id)

        receiver.assert_called_once()
        assert receiver.call_args.kwargs["error"] is error

    def test_retry_of_failed_payout(self, engine, gateway, failed_payout):
        result = engine.process_payout(failed_payout.id)

        failed_payout.refresh_from_db()
        assert result.status == PayoutStatus.COMPLETED
        assert failed_payout.failure_reason is None
        assert failed_payout.failed_at is None
        assert gateway.create_transfer.call_args.kwargs["idempotency_key"] == (
            IdempotencyKeyGenerator.generate("create_transfer", failed_payout.id, 2)
        )
        assert _events(failed_payout)[0] == (
            AuditEventType.STATUS_CHANGED,
            PayoutStatus.FAILED,
            PayoutStatus.PROCESSING,
        )

    def test_full_failure_and_retry_trail(self, engine, gateway, payout, connected_account):
        gateway.create_transfer.side_effect = [
            StripeCardDeclinedError("Transfer was declined"),
            transfer_result("tr_after_decline"),
        ]

        with pytest.raises(StripeCardDeclinedError):
            engine.process_payout(payout.id)
        engine.process_payout(payout.id)

        assert [event for event, _, _ in _events(payout)] == [
            AuditEventType.STATUS_CHANGED,
            AuditEventType.FAILED,
            AuditEventType.STATUS_CHANGED,
            AuditEventType.STRIPE_TRANSFER_CREATED,
        ]

    def test_stale_reader_never_calls_gateway(self, engine, repository, gateway, payout, connected_account, mocker):
        """A caller that read the payout as pending loses to the one that claimed it."""
        stale = Payout.objects.get(pk=payout.pk)
        Payout.objects.filter(pk=payout.pk).update(
            status=PayoutStatus.PROCESSING,
            processing_started_at=timezone.now(),
        )
        mocker.patch.object(repository, "get_payout", return_value=stale)

        with pytest.raises(StaleRecordError) as exc_info:
            engine.process_payout(payout.id)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["current_status"] == PayoutStatus.PROCESSING
        gateway.create_transfer.assert_not_called()
        assert _events(payout) == []

    def test_second_of_two_pending_readers_rejected(self, engine, repository, gateway, payout, connected_account, mocker):
        """
        Simulates two overlapping callers without threads.

        Both reads are taken while the payout is pending and replayed in
        sequence; the second claim finds the row already moved and never
        reaches the gateway.
        """
        first_read = Payout.objects.get(pk=payout.pk)
        second_read = Payout.objects.get(pk=payout.pk)
        mocker.patch.object(repository, "get_payout", side_effect=[first_read, second_read])

        engine.process_payout(payout.id)
        with pytest.raises(StaleRecordError):
            engine.process_payout(payout.id)

        assert gateway.create_transfer.call_count == 1
        payout.refresh_from_db()
        assert payout.status == PayoutStatus.COMPLETED


# =============================================================================
# add_payout_splits Tests
# =============================================================================


@pytest.mark.django_db
class TestAddPayoutSplits:
    def test_creates_splits_with_computed_amounts(self, engine, payout):
        splits = engine.add_payout_splits(
            payout.id,
            [
                {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("30")},
                {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": "20"},
            ],
        )

        assert len(splits) == 2
        assert [s.split_amount for s in splits] == [Decimal("3000.00"), Decimal("2000.00")]
        assert all(s.status == PayoutSplitStatus.PENDING for s in splits)

    def test_keeps_supplied_split_amount(self, engine, payout):
        (split,) = engine.add_payout_splits(
            payout.id,
            [
                {
                    "collaborator_recruiter_id": uuid.uuid4(),
                    "split_percentage": Decimal("10"),
                    "split_amount": Decimal("999.99"),
                }
            ],
        )

        assert split.split_amount == Decimal("999.99")

    def test_appends_one_audit_row_per_batch(self, engine, payout):
        engine.add_payout_splits(
            payout.id,
            [
                {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("30")},
                {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("20")},
            ],
            actor="ops@example.com",
        )

        entry = PayoutAuditLog.objects.get(payout=payout)
        assert entry.event_type == AuditEventType.SPLITS_ADDED
        assert entry.metadata["split_count"] == 2
        assert entry.created_by == "ops@example.com"

    def test_rejects_batch_over_100_percent(self, engine, payout):
        with pytest.raises(PayoutValidationError) as exc_info:
            engine.add_payout_splits(
                payout.id,
                [
                    {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("60")},
                    {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("50")},
                ],
            )

        assert "110" in exc_info.value.message
        assert PayoutSplit.objects.count() == 0
        assert PayoutAuditLog.objects.count() == 0

    def test_batch_of_exactly_100_percent_allowed(self, engine, payout):
        splits = engine.add_payout_splits(
            payout.id,
            [
                {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("60")},
                {"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("40")},
            ],
        )

        assert len(splits) == 2

    def test_cumulative_over_100_accepted_with_warning(self, engine, payout, mocker):
        PayoutSplitFactory(payout=payout, split_percentage=Decimal("80"))
        logger = mocker.patch.object(PayoutEngine, "get_logger").return_value

        engine.add_payout_splits(
            payout.id,
            [{"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("30")}],
        )

        assert PayoutSplit.objects.filter(payout=payout).count() == 2
        logger.warning.assert_called_once()

    def test_rejects_empty_batch(self, engine, payout):
        with pytest.raises(PayoutValidationError):
            engine.add_payout_splits(payout.id, [])

    @pytest.mark.parametrize("percentage", [Decimal("0"), Decimal("-5"), Decimal("101")])
    def test_rejects_bad_percentage(self, engine, payout, percentage):
        with pytest.raises(PayoutValidationError):
            engine.add_payout_splits(
                payout.id,
                [{"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": percentage}],
            )

    @pytest.mark.parametrize("percentage", ["NaN", "Infinity"])
    def test_rejects_non_finite_percentage(self, engine, payout, percentage):
        with pytest.raises(PayoutValidationError):
            engine.add_payout_splits(
                payout.id,
                [{"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": percentage}],
            )

        assert not PayoutSplit.objects.exists()

    def test_unknown_payout(self, engine, db):
        with pytest.raises(PayoutNotFoundError):
            engine.add_payout_splits(
                uuid.uuid4(),
                [{"collaborator_recruiter_id": uuid.uuid4(), "split_percentage": Decimal("10")}],
            )


# =============================================================================
# Escrow Tests
# =============================================================================


@pytest.mark.django_db
class TestCreateEscrowHold:
    def test_creates_active_hold(self, engine, payout):
        release_date = timezone.now() + timedelta(days=90)

        hold = engine.create_escrow_hold(
            placement_id=payout.placement_id,
            hold_amount=Decimal("2000.00"),
            hold_reason="90-day guarantee",
            release_date=release_date,
            payout_id=payout.id,
        )

        hold.refresh_from_db()
        assert hold.status == EscrowHoldStatus.ACTIVE
        assert hold.payout_id == payout.id
        assert hold.release_scheduled_date == release_date
        assert hold.held_at is not None

    def test_hold_without_payout(self, engine, db):
        hold = engine.create_escrow_hold(placement_id=uuid.uuid4(), hold_amount="500")

        assert hold.payout is None
        assert hold.release_scheduled_date is None

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_rejects_non_positive_amount(self, engine, db, amount):
        with pytest.raises(PayoutValidationError):
            engine.create_escrow_hold(placement_id=uuid.uuid4(), hold_amount=amount)

        assert EscrowHold.objects.count() == 0

    @pytest.mark.parametrize("amount", ["NaN", "Infinity"])
    def test_rejects_non_finite_amount(self, engine, db, amount):
        with pytest.raises(PayoutValidationError):
            engine.create_escrow_hold(placement_id=uuid.uuid4(), hold_amount=amount)

        assert EscrowHold.objects.count() == 0

    def test_unknown_payout(self, engine, db):
        with pytest.raises(PayoutNotFoundError):
            engine.create_escrow_hold(
                placement_id=uuid.uuid4(),
                hold_amount=Decimal("100"),
                payout_id=uuid.uuid4(),
            )


@pytest.mark.django_db
class TestReleaseEscrowHold:
    def test_releases_hold_and_stamps_payout(self, engine, escrow_hold, payout):
        hold = engine.release_escrow_hold(escrow_hold.id, released_by="ops@example.com")

        escrow_hold.refresh_from_db()
        payout.refresh_from_db()
        assert hold.status == EscrowHoldStatus.RELEASED
        assert escrow_hold.status == EscrowHoldStatus.RELEASED
        assert escrow_hold.released_by == "ops@example.com"
        assert escrow_hold.released_at is not None
        assert payout.holdback_released_at == escrow_hold.released_at

    def test_appends_holdback_released_audit(self, engine, escrow_hold, payout):
        engine.release_escrow_hold(escrow_hold.id, released_by="ops@example.com")

        entry = PayoutAuditLog.objects.get(payout=payout)
        assert entry.event_type == AuditEventType.HOLDBACK_RELEASED
        assert entry.metadata["hold_id"] == str(escrow_hold.id)
        assert entry.created_by == "ops@example.com"

    def test_release_without_payout(self, engine, db):
        hold = EscrowHoldFactory()

        engine.release_escrow_hold(hold.id, released_by="system")

        hold.refresh_from_db()
        assert hold.status == EscrowHoldStatus.RELEASED
        assert PayoutAuditLog.objects.count() == 0

    def test_second_release_rejected(self, engine, escrow_hold):
        engine.release_escrow_hold(escrow_hold.id, released_by="ops@example.com")

        with pytest.raises(InvalidStateError):
            engine.release_escrow_hold(escrow_hold.id, released_by="ops@example.com")

        assert PayoutAuditLog.objects.filter(event_type=AuditEventType.HOLDBACK_RELEASED).count() == 1

    def test_unknown_hold(self, engine, db):
        with pytest.raises(EscrowHoldNotFoundError) as exc_info:
            engine.release_escrow_hold(uuid.uuid4(), released_by="ops@example.com")

        assert exc_info.value.status_code == 404

    def test_sends_signal(self, engine, escrow_hold, signal_receiver):
        receiver = signal_receiver(holdback_released)

        engine.release_escrow_hold(escrow_hold.id, released_by="ops@example.com")

        receiver.assert_called_once()
        assert receiver.call_args.kwargs["hold"].pk == escrow_hold.pk


@pytest.mark.django_db
class TestReleaseDueEscrowHolds:
    def test_releases_only_due_holds(self, engine, due_escrow_hold, escrow_hold):
        released = engine.release_due_escrow_holds()

        due_escrow_hold.refresh_from_db()
        escrow_hold.refresh_from_db()
        assert released == 1
        assert due_escrow_hold.status == EscrowHoldStatus.RELEASED
        assert due_escrow_hold.released_by == "system"
        assert escrow_hold.status == EscrowHoldStatus.ACTIVE

    def test_holds_without_release_date_are_skipped(self, engine, db):
        EscrowHoldFactory(release_scheduled_date=None)

        assert engine.release_due_escrow_holds() == 0

    def test_continues_after_error(self, engine, db, mocker):
        first = EscrowHoldFactory(release_scheduled_date=timezone.now() - timedelta(days=2))
        second = EscrowHoldFactory(release_scheduled_date=timezone.now() - timedelta(days=1))
        original = engine.release_escrow_hold

        def release(hold_id, released_by):
            if hold_id == first.id:
                raise RuntimeError("database hiccup")
            return original(hold_id, released_by)

        mocker.patch.object(engine, "release_escrow_hold", side_effect=release)

        assert engine.release_due_escrow_holds() == 1
        second.refresh_from_db()
        assert second.status == EscrowHoldStatus.RELEASED


# =============================================================================
# Schedules & Queries
# =============================================================================


@pytest.mark.django_db
class TestSchedulePayout:
    def test_creates_scheduled_row(self, engine):
        placement_id = uuid.uuid4()
        when = timezone.now() + timedelta(days=90)

        schedule = engine.schedule_payout(placement_id, when, "guarantee_expired")

        assert schedule.status == PayoutScheduleStatus.SCHEDULED
        assert schedule.placement_id == placement_id
        assert schedule.scheduled_date == when
        assert schedule.trigger_event == "guarantee_expired"

    def test_requires_trigger_event(self, engine):
        with pytest.raises(ValidationError):
            engine.schedule_payout(uuid.uuid4(), timezone.now(), "")


@pytest.mark.django_db
class TestQueries:
    def test_get_payout(self, engine, payout):
        assert engine.get_payout(payout.id).pk == payout.pk

    def test_get_payout_not_found(self, engine):
        with pytest.raises(PayoutNotFoundError):
            engine.get_payout(uuid.uuid4())

    def test_recruiter_payouts_newest_first(self, engine):
        recruiter_id = uuid.uuid4()
        older = PayoutFactory(recruiter_id=recruiter_id)
        newer = PayoutFactory(recruiter_id=recruiter_id)
        Payout.objects.filter(pk=older.pk).update(created_at=timezone.now() - timedelta(days=1))
        PayoutFactory()

        payouts = engine.get_recruiter_payouts(recruiter_id)

        assert [p.pk for p in payouts] == [newer.pk, older.pk]

    def test_placement_payouts(self, engine):
        placement_id = uuid.uuid4()
        PayoutFactory(placement_id=placement_id)
        PayoutFactory(placement_id=placement_id)
        PayoutFactory()

        assert len(engine.get_placement_payouts(placement_id)) == 2

    def test_unknown_recruiter_returns_empty(self, engine):
        assert engine.get_recruiter_payouts(uuid.uuid4()) == []

    def test_payout_splits(self, engine, payout):
        PayoutSplitFactory(payout=payout)
        PayoutSplitFactory()

        assert len(engine.get_payout_splits(payout.id)) == 1

    def test_audit_log_oldest_first(self, engine, payout, connected_account):
        engine.process_payout(payout.id)

        entries = engine.get_payout_audit_log(payout.id)

        assert [e.event_type for e in entries] == [
            AuditEventType.STATUS_CHANGED,
            AuditEventType.STRIPE_TRANSFER_CREATED,
        ]

    def test_audit_log_unknown_payout(self, engine):
        with pytest.raises(PayoutNotFoundError):
            engine.get_payout_audit_log(uuid.uuid4())

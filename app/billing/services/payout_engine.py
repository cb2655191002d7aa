"""
Payout engine: the state machine behind recruiter payouts.

This module provides the PayoutEngine class which owns every write to
payouts, splits, escrow holds and the payout audit log.

Payout execution follows a three-phase pattern:
1. Phase 1: Claim the payout (PENDING/FAILED -> PROCESSING) with a
   conditional update and an audit row, committed together
2. Phase 2: Call Stripe create_transfer outside any transaction
3. Phase 3: Record COMPLETED or FAILED with an audit row

Each phase is committed before the next begins, so the stored status
always tells how far a payout got. Only one of several concurrent callers
can win phase 1; the others get StaleRecordError and never reach Stripe.
A payout left in PROCESSING by a crash is reported by the reconciliation
sweep.

Usage:
    from billing.services import build_payout_engine

    engine = build_payout_engine()
    payout = engine.create_payout(
        placement_id=placement_id,
        recruiter_id=recruiter_id,
        placement_fee=Decimal("20000.00"),
        recruiter_share_percentage=Decimal("50"),
        payout_amount=Decimal("10000.00"),
    )
    payout = engine.process_payout(payout.id)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from django.conf import settings
from django.utils import timezone
from django_fsm import can_proceed

from billing.adapters import IdempotencyKeyGenerator, StripeAdapter, is_retryable_gateway_error
from billing.exceptions import (
    EscrowHoldNotFoundError,
    GatewayError,
    InvalidStateError,
    MissingPayoutAccountError,
    PayoutNotFoundError,
    PayoutValidationError,
    StaleRecordError,
)
from billing.models import EscrowHold, Payout, PayoutAuditLog, PayoutSchedule, PayoutSplit
from billing.repository import PayoutRepository
from billing.signals import (
    holdback_released,
    payout_completed,
    payout_failed,
    send_billing_signal,
)
from billing.state_machines import AuditEventType, PayoutStatus
from core.exceptions import BaseApplicationError
from core.services import BaseService

# =============================================================================
# Constants
# =============================================================================

TRANSFER_OPERATION = "create_transfer"

DEFAULT_ACTOR = "system"

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def _to_decimal(value: Any, field_name: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise PayoutValidationError(
            f"{field_name} must be a number",
            details={field_name: str(value)},
        ) from e
    # NaN and Infinity parse but break quantize and comparisons
    if not number.is_finite():
        raise PayoutValidationError(
            f"{field_name} must be a number",
            details={field_name: str(value)},
        )
    return number


# =============================================================================
# Payout Engine
# =============================================================================


class PayoutEngine(BaseService):
    """
    Service for creating, executing and auditing recruiter payouts.

    Dependencies are injected: the record store, the payment gateway and a
    clock. build_payout_engine() wires the production ones.

    Safety Guarantees:
        - At most one gateway call per process_payout invocation
        - Conditional updates ensure concurrent callers cannot both transfer
        - The gateway call never runs inside a transaction
        - A deterministic idempotency key per (payout, attempt) prevents
          duplicate transfers when a call is retried after a crash or timeout
        - Every status change appends exactly one audit row

    Usage:
        engine = PayoutEngine(repository=PayoutRepository(), gateway=StripeAdapter)
        engine.process_payout(payout_id)
    """

    def __init__(
        self,
        repository: PayoutRepository,
        gateway: Any,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.repository = repository
        self.gateway = gateway
        self.clock = clock

    # =========================================================================
    # Payout Creation & Scheduling
    # =========================================================================

    def create_payout(
        self,
        placement_id: uuid.UUID | str,
        recruiter_id: uuid.UUID | str,
        placement_fee: Decimal | str | int,
        recruiter_share_percentage: Decimal | str | int,
        payout_amount: Decimal | str | int,
        holdback_amount: Decimal | str | int = 0,
        created_by: str | None = None,
    ) -> Payout:
        """
        Create a PENDING payout and its 'created' audit row.

        The payout amount is taken as supplied. When it disagrees with
        placement_fee x share, a warning is logged and the expected amount
        is kept in metadata for review.

        Raises:
            PayoutValidationError: Non-positive amount, share outside 0-100,
                or negative holdback. Nothing is written.
        """
        self.validate_required(placement_id=placement_id, recruiter_id=recruiter_id)

        placement_fee = _to_decimal(placement_fee, "placement_fee")
        share = _to_decimal(recruiter_share_percentage, "recruiter_share_percentage")
        payout_amount = _to_decimal(payout_amount, "payout_amount")
        holdback_amount = _to_decimal(holdback_amount, "holdback_amount")

        if payout_amount <= 0:
            raise PayoutValidationError(
                "Payout amount must be greater than 0",
                error_code="INVALID_PAYOUT_AMOUNT",
                details={"payout_amount": str(payout_amount)},
            )
        if not Decimal("0") <= share <= HUNDRED:
            raise PayoutValidationError(
                "Recruiter share percentage must be between 0 and 100",
                error_code="INVALID_SHARE_PERCENTAGE",
                details={"recruiter_share_percentage": str(share)},
            )
        if holdback_amount < 0:
            raise PayoutValidationError(
                "Holdback amount cannot be negative",
                error_code="INVALID_HOLDBACK_AMOUNT",
                details={"holdback_amount": str(holdback_amount)},
            )

        actor = created_by or DEFAULT_ACTOR
        metadata: dict[str, Any] = {}

        expected_amount = (placement_fee * share / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
        if expected_amount != payout_amount.quantize(CENT, rounding=ROUND_HALF_UP):
            metadata["expected_amount"] = str(expected_amount)
            self.get_logger().warning(
                "Payout amount differs from placement fee x share",
                extra={
                    "placement_id": str(placement_id),
                    "recruiter_id": str(recruiter_id),
                    "payout_amount": str(payout_amount),
                    "expected_amount": str(expected_amount),
                },
            )

        with self.atomic():
            payout = self.repository.create_payout(
                placement_id=placement_id,
                recruiter_id=recruiter_id,
                placement_fee=placement_fee,
                recruiter_share_percentage=share,
                payout_amount=payout_amount,
                holdback_amount=holdback_amount,
                currency=settings.PAYOUT_CURRENCY,
                created_by=actor,
                metadata=metadata,
            )
            self.repository.append_audit(
                payout,
                AuditEventType.CREATED,
                old_status=None,
                new_status=PayoutStatus.PENDING,
                created_by=actor,
            )

        self.get_logger().info(
            "Created payout",
            extra={
                "payout_id": str(payout.id),
                "placement_id": str(placement_id),
                "recruiter_id": str(recruiter_id),
                "payout_amount": str(payout_amount),
            },
        )
        return payout

    def schedule_payout(
        self,
        placement_id: uuid.UUID | str,
        scheduled_date: datetime,
        trigger_event: str,
    ) -> PayoutSchedule:
        """Persist a SCHEDULED row; the scheduler sweep picks it up once due."""
        self.validate_required(
            placement_id=placement_id,
            scheduled_date=scheduled_date,
            trigger_event=trigger_event,
        )

        schedule = self.repository.create_schedule(
            placement_id=placement_id,
            scheduled_date=scheduled_date,
            trigger_event=trigger_event,
        )

        self.get_logger().info(
            "Scheduled payouts for placement",
            extra={
                "schedule_id": str(schedule.id),
                "placement_id": str(placement_id),
                "scheduled_date": scheduled_date.isoformat(),
                "trigger_event": trigger_event,
            },
        )
        return schedule

    # =========================================================================
    # Payout Execution
    # =========================================================================

    def process_payout(self, payout_id: uuid.UUID | str, actor: str = DEFAULT_ACTOR) -> Payout:
        """
        Execute the transfer for a PENDING or FAILED payout.

        Args:
            payout_id: UUID of the payout
            actor: Identity recorded on the audit rows

        Returns:
            The COMPLETED payout

        Raises:
            PayoutNotFoundError: No such payout
            InvalidStateError: Payout is PROCESSING or COMPLETED
            StaleRecordError: Another caller claimed the payout first
            MissingPayoutAccountError: Recruiter has no Stripe account
                (payout recorded as FAILED first)
            GatewayError: Stripe rejected or did not answer
                (payout recorded as FAILED first)
        """
        logger = self.get_logger()
        payout = self._get_payout_or_raise(payout_id)

        logger.info(
            "Starting payout execution",
            extra={
                "payout_id": str(payout.id),
                "status": payout.status,
                "attempt": payout.idempotency_attempt,
            },
        )

        if not can_proceed(payout.start_processing):
            raise InvalidStateError(
                f"Payout cannot be processed from '{payout.status}'",
                details={"payout_id": str(payout.id), "current_status": payout.status},
            )

        # Phase 1: claim
        old_status = payout.status
        payout.start_processing(started_at=self.clock())
        with self.atomic():
            self.repository.update_payout_status(
                payout,
                expected_status=old_status,
                fields=["status", "processing_started_at", "failed_at", "failure_reason"],
            )
            self.repository.append_audit(
                payout,
                AuditEventType.STATUS_CHANGED,
                old_status=old_status,
                new_status=PayoutStatus.PROCESSING,
                created_by=actor,
            )

        account = self.repository.get_connected_account(payout.recruiter_id)
        if account is None:
            error = MissingPayoutAccountError(
                "Recruiter has not completed Stripe Connect onboarding",
                details={"payout_id": str(payout.id), "recruiter_id": str(payout.recruiter_id)},
            )
            self._record_failure(payout, error, actor)
            raise error

        # Phase 2: transfer
        idempotency_key = IdempotencyKeyGenerator.generate(
            TRANSFER_OPERATION,
            payout.id,
            payout.idempotency_attempt,
        )
        logger.info(
            "Calling Stripe create_transfer",
            extra={
                "payout_id": str(payout.id),
                "destination_account": account.stripe_account_id,
                "amount_cents": payout.amount_cents,
            },
        )

        try:
            transfer = self.gateway.create_transfer(
                amount_cents=payout.amount_cents,
                destination_account=account.stripe_account_id,
                idempotency_key=idempotency_key,
                currency=payout.currency,
                metadata={
                    "payout_id": str(payout.id),
                    "placement_id": str(payout.placement_id),
                    "recruiter_id": str(payout.recruiter_id),
                },
            )
        except Exception as e:
            self._record_failure(payout, e, actor)
            raise

        # Phase 3: record success
        completed_at = self.clock()
        payout.complete(
            transfer_id=transfer.id,
            destination_account_id=account.stripe_account_id,
            completed_at=completed_at,
        )
        with self.atomic():
            self.repository.update_payout_status(
                payout,
                expected_status=PayoutStatus.PROCESSING,
                fields=["status", "stripe_transfer_id", "destination_account_id", "completed_at"],
            )
            self.repository.settle_splits(payout.id, completed_at)
            self.repository.append_audit(
                payout,
                AuditEventType.STRIPE_TRANSFER_CREATED,
                old_status=PayoutStatus.PROCESSING,
                new_status=PayoutStatus.COMPLETED,
                metadata={"stripe_transfer_id": transfer.id},
                created_by=actor,
            )

        logger.info(
            "Payout completed",
            extra={"payout_id": str(payout.id), "stripe_transfer_id": transfer.id},
        )
        send_billing_signal(payout_completed, sender=self.__class__, payout=payout)
        return payout

    def _record_failure(self, payout: Payout, error: Exception, actor: str) -> None:
        """
        Record a PROCESSING payout as FAILED with a 'failed' audit row.

        A definitive gateway rejection moves the payout to a new
        idempotency attempt; an ambiguous failure keeps the current key so a
        retry replays whatever Stripe already did.
        """
        logger = self.get_logger()
        if isinstance(error, BaseApplicationError):
            reason = error.message
            error_code = error.error_code
        else:
            reason = str(error) or type(error).__name__
            error_code = type(error).__name__

        payout.fail(reason=reason, failed_at=self.clock())
        try:
            with self.atomic():
                self.repository.update_payout_status(
                    payout,
                    expected_status=PayoutStatus.PROCESSING,
                    fields=["status", "failure_reason", "failed_at"],
                )
                self.repository.append_audit(
                    payout,
                    AuditEventType.FAILED,
                    old_status=PayoutStatus.PROCESSING,
                    new_status=PayoutStatus.FAILED,
                    metadata={"error": reason, "error_code": error_code},
                    created_by=actor,
                )
        except StaleRecordError:
            logger.error(
                "Could not record payout failure, payout left PROCESSING",
                extra={"payout_id": str(payout.id), "error": reason},
                exc_info=True,
            )
            return

        if isinstance(error, GatewayError) and not is_retryable_gateway_error(error):
            self.repository.bump_idempotency_attempt(payout)

        logger.error(
            "Payout failed",
            extra={
                "payout_id": str(payout.id),
                "error": reason,
                "error_code": error_code,
                "is_retryable": is_retryable_gateway_error(error),
            },
        )
        send_billing_signal(payout_failed, sender=self.__class__, payout=payout, error=error)

    # =========================================================================
    # Splits
    # =========================================================================

    def add_payout_splits(
        self,
        payout_id: uuid.UUID | str,
        splits: Sequence[dict[str, Any]],
        actor: str = DEFAULT_ACTOR,
    ) -> list[PayoutSplit]:
        """
        Attach a batch of collaborator splits to a payout.

        Each split needs collaborator_recruiter_id and split_percentage;
        split_amount defaults to payout_amount x percentage.

        Only the incoming batch is checked against 100 percent. A batch that
        pushes the payout's cumulative total past 100 is accepted and logged
        as a warning.

        Raises:
            PayoutNotFoundError: No such payout
            PayoutValidationError: Empty batch, bad percentage, or batch
                total above 100
        """
        payout = self._get_payout_or_raise(payout_id)

        if not splits:
            raise PayoutValidationError(
                "At least one split is required",
                details={"payout_id": str(payout.id)},
            )

        normalized = []
        for split in splits:
            self.validate_required(
                collaborator_recruiter_id=split.get("collaborator_recruiter_id"),
                split_percentage=split.get("split_percentage"),
            )
            percentage = _to_decimal(split["split_percentage"], "split_percentage")
            if not Decimal("0") < percentage <= HUNDRED:
                raise PayoutValidationError(
                    "Split percentage must be greater than 0 and at most 100",
                    details={"split_percentage": str(percentage)},
                )
            if split.get("split_amount") is not None:
                amount = _to_decimal(split["split_amount"], "split_amount")
            else:
                amount = (payout.payout_amount * percentage / HUNDRED).quantize(
                    CENT, rounding=ROUND_HALF_UP
                )
            normalized.append(
                {
                    "collaborator_recruiter_id": split["collaborator_recruiter_id"],
                    "split_percentage": percentage,
                    "split_amount": amount,
                }
            )

        total = sum((s["split_percentage"] for s in normalized), Decimal("0"))
        if total > HUNDRED:
            raise PayoutValidationError(
                f"Split percentages total {total}, which exceeds 100",
                error_code="SPLIT_TOTAL_EXCEEDED",
                details={"payout_id": str(payout.id), "total_percentage": str(total)},
            )

        existing_total = sum(
            (s.split_percentage for s in self.repository.list_splits(payout.id)),
            Decimal("0"),
        )
        if existing_total + total > HUNDRED:
            self.get_logger().warning(
                "Cumulative split percentage exceeds 100",
                extra={
                    "payout_id": str(payout.id),
                    "existing_percentage": str(existing_total),
                    "batch_percentage": str(total),
                },
            )

        with self.atomic():
            created = self.repository.create_splits(payout, normalized)
            self.repository.append_audit(
                payout,
                AuditEventType.SPLITS_ADDED,
                old_status=payout.status,
                new_status=payout.status,
                metadata={"split_count": len(created), "total_percentage": str(total)},
                created_by=actor,
            )

        self.get_logger().info(
            "Added payout splits",
            extra={"payout_id": str(payout.id), "split_count": len(created)},
        )
        return created

    # =========================================================================
    # Escrow
    # =========================================================================

    def create_escrow_hold(
        self,
        placement_id: uuid.UUID | str,
        hold_amount: Decimal | str | int,
        hold_reason: str = "",
        release_date: datetime | None = None,
        payout_id: uuid.UUID | str | None = None,
    ) -> EscrowHold:
        """
        Create an ACTIVE escrow hold.

        Raises:
            PayoutValidationError: Non-positive hold amount
            PayoutNotFoundError: payout_id given but no such payout
        """
        self.validate_required(placement_id=placement_id)
        hold_amount = _to_decimal(hold_amount, "hold_amount")
        if hold_amount <= 0:
            raise PayoutValidationError(
                "Hold amount must be greater than 0",
                error_code="INVALID_HOLD_AMOUNT",
                details={"hold_amount": str(hold_amount)},
            )

        payout = self._get_payout_or_raise(payout_id) if payout_id else None

        hold = self.repository.create_escrow_hold(
            placement_id=placement_id,
            payout=payout,
            hold_amount=hold_amount,
            currency=payout.currency if payout else settings.PAYOUT_CURRENCY,
            hold_reason=hold_reason or "",
            held_at=self.clock(),
            release_scheduled_date=release_date,
        )

        self.get_logger().info(
            "Created escrow hold",
            extra={
                "hold_id": str(hold.id),
                "placement_id": str(placement_id),
                "payout_id": str(payout_id) if payout_id else None,
                "hold_amount": str(hold_amount),
            },
        )
        return hold

    def release_escrow_hold(self, hold_id: uuid.UUID | str, released_by: str) -> EscrowHold:
        """
        Release an ACTIVE hold.

        When the hold is linked to a payout, the payout's
        holdback_released_at is stamped and a 'holdback_released' audit row
        is appended, in the same transaction as the release.

        Raises:
            EscrowHoldNotFoundError: No such hold
            InvalidStateError: Hold already released (StaleRecordError if a
                concurrent release won)
        """
        hold = self.repository.get_escrow_hold(hold_id)
        if hold is None:
            raise EscrowHoldNotFoundError(
                f"Escrow hold {hold_id} not found",
                details={"hold_id": str(hold_id)},
            )
        if not hold.is_active:
            raise InvalidStateError(
                f"Escrow hold cannot be released from '{hold.status}'",
                details={"hold_id": str(hold.id), "current_status": hold.status},
            )

        released_at = self.clock()
        payout = None
        with self.atomic():
            self.repository.release_escrow_hold(hold, released_at, released_by)
            if hold.payout_id:
                payout = self._get_payout_or_raise(hold.payout_id)
                self.repository.mark_holdback_released(payout.id, released_at)
                payout.holdback_released_at = released_at
                self.repository.append_audit(
                    payout,
                    AuditEventType.HOLDBACK_RELEASED,
                    old_status=payout.status,
                    new_status=payout.status,
                    metadata={"hold_id": str(hold.id), "hold_amount": str(hold.hold_amount)},
                    created_by=released_by,
                )

        self.get_logger().info(
            "Released escrow hold",
            extra={
                "hold_id": str(hold.id),
                "payout_id": str(hold.payout_id) if hold.payout_id else None,
                "released_by": released_by,
            },
        )
        send_billing_signal(holdback_released, sender=self.__class__, hold=hold, payout=payout)
        return hold

    def release_due_escrow_holds(self, released_by: str = DEFAULT_ACTOR) -> int:
        """
        Release every ACTIVE hold whose release date has passed.

        Per-hold errors are logged and skipped.

        Returns:
            Number of holds released
        """
        logger = self.get_logger()
        released = 0

        for hold in self.repository.list_active_holds_due(self.clock()):
            try:
                self.release_escrow_hold(hold.id, released_by)
                released += 1
            except InvalidStateError:
                logger.info(
                    "Escrow hold released concurrently, skipping",
                    extra={"hold_id": str(hold.id)},
                )
            except Exception:
                logger.exception(
                    "Failed to release due escrow hold",
                    extra={"hold_id": str(hold.id)},
                )

        return released

    # =========================================================================
    # Queries
    # =========================================================================

    def get_payout(self, payout_id: uuid.UUID | str) -> Payout:
        return self._get_payout_or_raise(payout_id)

    def get_recruiter_payouts(self, recruiter_id: uuid.UUID | str) -> list[Payout]:
        return self.repository.list_payouts_for_recruiter(recruiter_id)

    def get_placement_payouts(self, placement_id: uuid.UUID | str) -> list[Payout]:
        return self.repository.list_payouts_for_placement(placement_id)

    def get_payout_splits(self, payout_id: uuid.UUID | str) -> list[PayoutSplit]:
        payout = self._get_payout_or_raise(payout_id)
        return self.repository.list_splits(payout.id)

    def get_payout_audit_log(self, payout_id: uuid.UUID | str) -> list[PayoutAuditLog]:
        """Audit rows for a payout, oldest first."""
        payout = self._get_payout_or_raise(payout_id)
        return self.repository.list_audit_log(payout.id)

    def _get_payout_or_raise(self, payout_id: uuid.UUID | str) -> Payout:
        payout = self.repository.get_payout(payout_id)
        if payout is None:
            raise PayoutNotFoundError(
                f"Payout {payout_id} not found",
                details={"payout_id": str(payout_id)},
            )
        return payout


def build_payout_engine() -> PayoutEngine:
    """Wire a PayoutEngine with the production record store and Stripe."""
    return PayoutEngine(repository=PayoutRepository(), gateway=StripeAdapter)

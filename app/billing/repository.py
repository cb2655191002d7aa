"""
Record store for billing data.

PayoutRepository is the only place that reads and writes billing rows.
Services depend on it instead of the ORM so tests can substitute reads
(e.g. to simulate a stale reader) and so every status change goes
through a conditional update.

Usage:
    from billing.repository import PayoutRepository

    repository = PayoutRepository()
    payout = repository.get_payout(payout_id)
    repository.update_payout_status(
        payout,
        expected_status=PayoutStatus.PENDING,
        fields=["status", "processing_started_at"],
    )
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from django.db.models import F
from django.utils import timezone

from billing.locks import conditional_update
from billing.models import (
    ConnectedAccount,
    EscrowHold,
    Payout,
    PayoutAuditLog,
    PayoutSchedule,
    PayoutSplit,
)
from billing.state_machines import (
    EscrowHoldStatus,
    PayoutScheduleStatus,
    PayoutSplitStatus,
    PayoutStatus,
)


class PayoutRepository:
    """
    ORM-backed record store for payouts, splits, holds, schedules and
    the audit log.

    Status-changing writes use conditional_update and raise
    StaleRecordError when the row is no longer in the expected status.
    """

    # =========================================================================
    # Payouts
    # =========================================================================

    def create_payout(self, **fields: Any) -> Payout:
        return Payout.objects.create(**fields)

    def get_payout(self, payout_id: uuid.UUID | str) -> Payout | None:
        return Payout.objects.filter(pk=payout_id).first()

    def update_payout_status(
        self,
        payout: Payout,
        expected_status: str | Iterable[str],
        fields: Sequence[str],
    ) -> Payout:
        """
        Persist in-memory field values of a payout if its stored status
        still matches expected_status.

        Args:
            payout: Instance carrying the new values (status included)
            expected_status: Status the stored row must have
            fields: Names of the fields to write

        Raises:
            StaleRecordError: Another writer moved the payout first
        """
        changes = {name: getattr(payout, name) for name in fields}
        payout.version = conditional_update(Payout, payout.pk, expected_status, **changes)
        return payout

    def bump_idempotency_attempt(self, payout: Payout) -> None:
        Payout.objects.filter(pk=payout.pk).update(
            idempotency_attempt=F("idempotency_attempt") + 1,
            updated_at=timezone.now(),
        )
        payout.refresh_from_db(fields=["idempotency_attempt"])

    def mark_holdback_released(self, payout_id: uuid.UUID | str, released_at: datetime) -> int:
        return Payout.objects.filter(pk=payout_id).update(
            holdback_released_at=released_at,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )

    def list_payouts_for_recruiter(self, recruiter_id: uuid.UUID | str) -> list[Payout]:
        return list(Payout.objects.filter(recruiter_id=recruiter_id).order_by("-created_at"))

    def list_payouts_for_placement(self, placement_id: uuid.UUID | str) -> list[Payout]:
        return list(Payout.objects.filter(placement_id=placement_id).order_by("-created_at"))

    def list_stuck_payouts(self, started_before: datetime) -> list[Payout]:
        return list(
            Payout.objects.filter(
                status=PayoutStatus.PROCESSING,
                processing_started_at__lt=started_before,
            ).order_by("processing_started_at")
        )

    # =========================================================================
    # Splits
    # =========================================================================

    def create_splits(self, payout: Payout, splits: Sequence[dict[str, Any]]) -> list[PayoutSplit]:
        return [
            PayoutSplit.objects.create(
                payout=payout,
                collaborator_recruiter_id=split["collaborator_recruiter_id"],
                split_percentage=split["split_percentage"],
                split_amount=split["split_amount"],
            )
            for split in splits
        ]

    def list_splits(self, payout_id: uuid.UUID | str) -> list[PayoutSplit]:
        return list(PayoutSplit.objects.filter(payout_id=payout_id).order_by("created_at"))

    def settle_splits(self, payout_id: uuid.UUID | str, settled_at: datetime) -> int:
        return PayoutSplit.objects.filter(
            payout_id=payout_id,
            status=PayoutSplitStatus.PENDING,
        ).update(
            status=PayoutSplitStatus.SETTLED,
            settled_at=settled_at,
            updated_at=timezone.now(),
        )

    # =========================================================================
    # Escrow Holds
    # =========================================================================

    def create_escrow_hold(self, **fields: Any) -> EscrowHold:
        return EscrowHold.objects.create(**fields)

    def get_escrow_hold(self, hold_id: uuid.UUID | str) -> EscrowHold | None:
        return EscrowHold.objects.filter(pk=hold_id).first()

    def release_escrow_hold(self, hold: EscrowHold, released_at: datetime, released_by: str) -> EscrowHold:
        """
        Conditionally move a hold from ACTIVE to RELEASED.

        Raises:
            StaleRecordError: The hold is no longer active
        """
        hold.version = conditional_update(
            EscrowHold,
            hold.pk,
            EscrowHoldStatus.ACTIVE,
            status=EscrowHoldStatus.RELEASED,
            released_at=released_at,
            released_by=released_by,
        )
        hold.status = EscrowHoldStatus.RELEASED
        hold.released_at = released_at
        hold.released_by = released_by
        return hold

    def list_active_holds_due(self, now: datetime) -> list[EscrowHold]:
        return list(
            EscrowHold.objects.filter(
                status=EscrowHoldStatus.ACTIVE,
                release_scheduled_date__lte=now,
            ).order_by("release_scheduled_date")
        )

    def list_unstamped_holdback_releases(self) -> list[EscrowHold]:
        return list(
            EscrowHold.objects.filter(
                status=EscrowHoldStatus.RELEASED,
                payout__isnull=False,
                payout__holdback_released_at__isnull=True,
            ).order_by("released_at")
        )

    # =========================================================================
    # Schedules
    # =========================================================================

    def create_schedule(self, **fields: Any) -> PayoutSchedule:
        return PayoutSchedule.objects.create(**fields)

    def list_due_schedules(self, now: datetime) -> list[PayoutSchedule]:
        return list(
            PayoutSchedule.objects.filter(
                status=PayoutScheduleStatus.SCHEDULED,
                scheduled_date__lte=now,
            ).order_by("scheduled_date")
        )

    def claim_schedule(self, schedule: PayoutSchedule, triggered_at: datetime) -> PayoutSchedule:
        """
        Conditionally move a schedule from SCHEDULED to TRIGGERED.

        Raises:
            StaleRecordError: Another sweep claimed it first
        """
        schedule.version = conditional_update(
            PayoutSchedule,
            schedule.pk,
            PayoutScheduleStatus.SCHEDULED,
            status=PayoutScheduleStatus.TRIGGERED,
            triggered_at=triggered_at,
        )
        schedule.status = PayoutScheduleStatus.TRIGGERED
        schedule.triggered_at = triggered_at
        return schedule

    def record_schedule_result(
        self,
        schedule: PayoutSchedule,
        processed_count: int,
        last_error: str | None,
    ) -> None:
        PayoutSchedule.objects.filter(pk=schedule.pk).update(
            processed_count=processed_count,
            last_error=last_error,
            updated_at=timezone.now(),
        )
        schedule.processed_count = processed_count
        schedule.last_error = last_error

    # =========================================================================
    # Audit Log
    # =========================================================================

    def append_audit(
        self,
        payout: Payout,
        event_type: str,
        old_status: str | None = None,
        new_status: str | None = None,
        metadata: dict[str, Any] | None = None,
        created_by: str = "system",
        reason: str | None = None,
    ) -> PayoutAuditLog:
        return PayoutAuditLog.objects.create(
            payout=payout,
            event_type=event_type,
            old_status=old_status,
            new_status=new_status,
            metadata=metadata or {},
            created_by=created_by,
            reason=reason,
        )

    def list_audit_log(self, payout_id: uuid.UUID | str) -> list[PayoutAuditLog]:
        return list(PayoutAuditLog.objects.filter(payout_id=payout_id).order_by("created_at", "id"))

    # =========================================================================
    # Connected Accounts
    # =========================================================================

    def get_connected_account(self, recruiter_id: uuid.UUID | str) -> ConnectedAccount | None:
        return ConnectedAccount.objects.filter(recruiter_id=recruiter_id).first()

    def get_connected_account_by_stripe_id(self, stripe_account_id: str) -> ConnectedAccount | None:
        return ConnectedAccount.objects.filter(stripe_account_id=stripe_account_id).first()

    def create_connected_account(self, **fields: Any) -> ConnectedAccount:
        return ConnectedAccount.objects.create(**fields)

    def save_connected_account(self, account: ConnectedAccount, fields: Sequence[str]) -> None:
        account.save(update_fields=[*fields, "updated_at"])

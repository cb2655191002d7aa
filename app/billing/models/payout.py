"""
Payout model for tracking money transfers to recruiters.

A Payout is one obligation to send part of a placement fee to a
recruiter's Stripe Connect account. A placement can have several payouts
(e.g. sourcing recruiter and closing recruiter).

Usage:
    from billing.models import Payout
    from billing.state_machines import PayoutStatus

    payout = Payout.objects.create(
        placement_id=placement_id,
        recruiter_id=recruiter_id,
        placement_fee=Decimal("20000.00"),
        recruiter_share_percentage=Decimal("50.00"),
        payout_amount=Decimal("10000.00"),
    )

    # State transitions are applied in memory and persisted by the engine
    # with a conditional update (see billing.locks.conditional_update)
    payout.start_processing(started_at=timezone.now())
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django_fsm import FSMField, transition

from billing.state_machines import PayoutStatus
from billing.state_machines.states import PROCESSABLE_PAYOUT_STATUSES
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

CENT = Decimal("0.01")


class Payout(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Represents one transfer obligation to a recruiter.

    State Flow:
        PENDING -> PROCESSING -> COMPLETED
        PENDING -> PROCESSING -> FAILED -> PROCESSING (retry)

    Fields:
        placement_id: Placement the fee was earned on
        recruiter_id: Recruiter receiving the payout
        placement_fee: Total fee for the placement
        recruiter_share_percentage: Recruiter's share of the fee (0-100)
        payout_amount: Amount to transfer, supplied by the caller
        holdback_amount: Portion held in escrow (informational)
        status: Current FSM status
        stripe_transfer_id: Stripe Transfer ID (tr_xxx), set on success
        destination_account_id: Connect account the transfer was sent to
        idempotency_attempt: Suffix of the gateway idempotency key
        processing_started_at / completed_at / failed_at: Status timestamps
        failure_reason: Error text of the last failed attempt
        holdback_released_at: When the linked escrow hold was released
        version: Incremented on every status change
        metadata: Flexible JSON storage
    """

    # ==========================================================================
    # Placement & Recruiter
    # ==========================================================================

    placement_id = models.UUIDField(
        db_index=True,
        help_text="Placement this payout is tied to",
    )

    recruiter_id = models.UUIDField(
        db_index=True,
        help_text="Recruiter receiving the payout",
    )

    created_by = models.CharField(
        max_length=255,
        default="system",
        help_text="Actor that created the payout",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    placement_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Total placement fee",
    )

    recruiter_share_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text="Recruiter's share of the placement fee, 0-100",
    )

    payout_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount to transfer",
    )

    holdback_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Amount withheld in escrow",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PayoutStatus.PENDING,
        choices=PayoutStatus.choices,
        db_index=True,
        help_text="Current status of the payout (managed by FSM)",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_transfer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Transfer ID (tr_xxx)",
    )

    destination_account_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Connect account the transfer was sent to",
    )

    idempotency_attempt = models.PositiveIntegerField(
        default=1,
        help_text="Bumped only after a definitive gateway rejection",
    )

    # ==========================================================================
    # Timestamps & Error Info
    # ==========================================================================

    processing_started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Error text of the last failed attempt",
    )

    holdback_released_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the linked escrow hold was released",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata for extensibility",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["placement_id", "status"], name="billing_pay_placeme_5b7c1e_idx"),
            models.Index(fields=["recruiter_id", "status"], name="billing_pay_recruit_9d2f4a_idx"),
            models.Index(fields=["status", "processing_started_at"], name="billing_pay_status_3e8a61_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(payout_amount__gt=0),
                name="payout_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(recruiter_share_percentage__gte=0)
                & models.Q(recruiter_share_percentage__lte=100),
                name="payout_share_percentage_range",
            ),
            models.CheckConstraint(
                condition=models.Q(holdback_amount__gte=0),
                name="payout_holdback_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.status}, {self.payout_amount} {self.currency.upper()})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=list(PROCESSABLE_PAYOUT_STATUSES),
        target=PayoutStatus.PROCESSING,
    )
    def start_processing(self, started_at):
        """
        Transition: PENDING/FAILED -> PROCESSING

        Clears the outcome of any previous failed attempt.
        """
        self.processing_started_at = started_at
        self.failed_at = None
        self.failure_reason = None

    @transition(
        field=status,
        source=PayoutStatus.PROCESSING,
        target=PayoutStatus.COMPLETED,
    )
    def complete(self, transfer_id: str, destination_account_id: str, completed_at):
        """
        Transition: PROCESSING -> COMPLETED
        """
        self.stripe_transfer_id = transfer_id
        self.destination_account_id = destination_account_id
        self.completed_at = completed_at

    @transition(
        field=status,
        source=PayoutStatus.PROCESSING,
        target=PayoutStatus.FAILED,
    )
    def fail(self, reason: str, failed_at):
        """
        Transition: PROCESSING -> FAILED
        """
        self.failure_reason = reason
        self.failed_at = failed_at

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def amount_cents(self) -> int:
        """Payout amount in minor units, rounded half-up."""
        return int((self.payout_amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def expected_amount(self) -> Decimal:
        """placement_fee x share, the amount the caller is expected to send."""
        return (self.placement_fee * self.recruiter_share_percentage / 100).quantize(
            CENT, rounding=ROUND_HALF_UP
        )

    @property
    def is_processable(self) -> bool:
        return self.status in PROCESSABLE_PAYOUT_STATUSES

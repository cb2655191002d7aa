"""
EscrowHold model for holdbacks on placement fees.

Part of a placement fee can be withheld (e.g. for the candidate's
guarantee period) and released later, either manually or when the
release date passes.

Usage:
    from billing.models import EscrowHold

    hold = EscrowHold.objects.create(
        placement_id=placement_id,
        hold_amount=Decimal("2000.00"),
        hold_reason="90-day guarantee",
        held_at=timezone.now(),
        release_scheduled_date=timezone.now() + timedelta(days=90),
    )
"""

from __future__ import annotations

from django.db import models

from billing.state_machines import EscrowHoldStatus
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel


class EscrowHold(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Temporary withholding of funds tied to a placement.

    Lifecycle:
        1. Hold created ACTIVE with an optional release date
        2. Released manually, or by the release sweep once the date passes
        3. If linked to a payout, the payout's holdback_released_at is
           stamped in the same transaction as the release

    Fields:
        placement_id: Placement the funds belong to
        payout: Optional payout whose holdback this hold represents
        hold_amount: Amount withheld
        hold_reason: Free-text reason
        held_at: When the hold started
        release_scheduled_date: When the sweep may release the hold
        status: ACTIVE or RELEASED
        released_at / released_by: Release stamp
    """

    placement_id = models.UUIDField(
        db_index=True,
        help_text="Placement the held funds belong to",
    )

    payout = models.ForeignKey(
        "billing.Payout",
        on_delete=models.PROTECT,
        related_name="escrow_holds",
        null=True,
        blank=True,
        help_text="Payout whose holdback this hold represents",
    )

    hold_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount withheld",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    hold_reason = models.CharField(
        max_length=255,
        blank=True,
        default="",
    )

    held_at = models.DateTimeField(
        help_text="When the hold started",
    )

    release_scheduled_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the release sweep may release this hold",
    )

    status = models.CharField(
        max_length=20,
        choices=EscrowHoldStatus.choices,
        default=EscrowHoldStatus.ACTIVE,
        db_index=True,
    )

    released_at = models.DateTimeField(null=True, blank=True)

    released_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
    )

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Escrow Hold"
        verbose_name_plural = "Escrow Holds"
        indexes = [
            models.Index(fields=["status", "release_scheduled_date"], name="billing_esc_status_8f0b22_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(hold_amount__gt=0),
                name="escrow_hold_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"EscrowHold({self.id}, {self.hold_amount} {self.currency.upper()}, {self.status})"

    @property
    def is_active(self) -> bool:
        return self.status == EscrowHoldStatus.ACTIVE

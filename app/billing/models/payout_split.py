"""
PayoutSplit model for collaborator shares of a payout.

When several recruiters collaborate on a placement, the payout's owner
records what share each collaborator is owed. Splits are added in batches
and settle together with the parent payout.
"""

from __future__ import annotations

from django.db import models

from billing.state_machines import PayoutSplitStatus
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class PayoutSplit(UUIDPrimaryKeyMixin, BaseModel):
    """
    A collaborator's share of one payout.

    Fields:
        payout: Parent payout
        collaborator_recruiter_id: Recruiter owed this share
        split_percentage: Share of the payout, 0-100
        split_amount: Amount owed
        status: PENDING until the parent payout completes, then SETTLED
    """

    payout = models.ForeignKey(
        "billing.Payout",
        on_delete=models.PROTECT,
        related_name="splits",
        help_text="Payout this split belongs to",
    )

    collaborator_recruiter_id = models.UUIDField(
        db_index=True,
        help_text="Recruiter receiving this share",
    )

    split_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text="Share of the payout, 0-100",
    )

    split_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount owed to the collaborator",
    )

    status = models.CharField(
        max_length=20,
        choices=PayoutSplitStatus.choices,
        default=PayoutSplitStatus.PENDING,
        db_index=True,
    )

    settled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Payout Split"
        verbose_name_plural = "Payout Splits"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(split_percentage__gt=0)
                & models.Q(split_percentage__lte=100),
                name="payout_split_percentage_range",
            ),
        ]

    def __str__(self) -> str:
        return f"PayoutSplit({self.id}, {self.split_percentage}%, {self.status})"

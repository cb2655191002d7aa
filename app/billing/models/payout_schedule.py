"""
PayoutSchedule model for deferred payout execution.

A schedule says "process this placement's payouts on or after this date".
The periodic scheduler task claims due schedules and hands their pending
payouts to the payout engine.
"""

from __future__ import annotations

from django.db import models

from billing.state_machines import PayoutScheduleStatus
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel


class PayoutSchedule(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Deferred trigger to process a placement's payouts.

    Fields:
        placement_id: Placement whose pending payouts should be processed
        scheduled_date: Earliest time the schedule may fire
        trigger_event: What caused the schedule (e.g. guarantee_expired)
        status: SCHEDULED until claimed, then TRIGGERED
        triggered_at: When the scheduler claimed it
        processed_count: Payouts successfully processed on trigger
        last_error: Error text of the last payout that failed on trigger
    """

    placement_id = models.UUIDField(db_index=True)

    scheduled_date = models.DateTimeField()

    trigger_event = models.CharField(max_length=100)

    status = models.CharField(
        max_length=20,
        choices=PayoutScheduleStatus.choices,
        default=PayoutScheduleStatus.SCHEDULED,
        db_index=True,
    )

    triggered_at = models.DateTimeField(null=True, blank=True)

    processed_count = models.PositiveIntegerField(default=0)

    last_error = models.TextField(null=True, blank=True)

    class Meta:
        ordering = ["scheduled_date"]
        verbose_name = "Payout Schedule"
        verbose_name_plural = "Payout Schedules"
        indexes = [
            models.Index(fields=["status", "scheduled_date"], name="billing_pay_status_c41d07_idx"),
        ]

    def __str__(self) -> str:
        return f"PayoutSchedule({self.id}, {self.trigger_event}, {self.status})"

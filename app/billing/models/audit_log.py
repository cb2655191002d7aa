"""
PayoutAuditLog model: the append-only trail of payout events.

Every status change of a payout, and every side event (splits added,
holdback released), is recorded as one row. Rows are never updated or
deleted; both are refused at the model and queryset level, and the admin
is read-only.

Usage:
    PayoutAuditLog.objects.create(
        payout=payout,
        event_type=AuditEventType.STATUS_CHANGED,
        old_status=PayoutStatus.PENDING,
        new_status=PayoutStatus.PROCESSING,
        created_by="system",
    )
"""

from __future__ import annotations

from django.db import models

from billing.exceptions import ImmutableRecordError
from billing.state_machines import AuditEventType


class PayoutAuditLogQuerySet(models.QuerySet):
    """QuerySet that refuses bulk changes to audit rows."""

    def update(self, **kwargs):
        raise ImmutableRecordError("Payout audit log rows cannot be updated")

    def delete(self):
        raise ImmutableRecordError("Payout audit log rows cannot be deleted")


class PayoutAuditLog(models.Model):
    """
    One immutable event in a payout's history.

    Uses an auto-increment primary key so rows written within the same
    instant still sort in insertion order.

    Fields:
        payout: Payout the event belongs to
        event_type: What happened (see AuditEventType)
        old_status / new_status: Status before and after, if it changed
        reason: Optional free text
        metadata: Event data (transfer id, error text, split count, hold id)
        created_by: Actor responsible for the event
        created_at: When the event was recorded
    """

    payout = models.ForeignKey(
        "billing.Payout",
        on_delete=models.PROTECT,
        related_name="audit_log",
    )

    event_type = models.CharField(
        max_length=50,
        choices=AuditEventType.choices,
        db_index=True,
    )

    old_status = models.CharField(max_length=20, null=True, blank=True)
    new_status = models.CharField(max_length=20, null=True, blank=True)

    reason = models.TextField(null=True, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    created_by = models.CharField(max_length=255, default="system")

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = PayoutAuditLogQuerySet.as_manager()

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Payout Audit Log Entry"
        verbose_name_plural = "Payout Audit Log"

    def __str__(self) -> str:
        return f"PayoutAuditLog({self.payout_id}, {self.event_type}, {self.old_status}->{self.new_status})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError(
                "Payout audit log rows cannot be updated",
                details={"audit_log_id": self.pk},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(
            "Payout audit log rows cannot be deleted",
            details={"audit_log_id": self.pk},
        )

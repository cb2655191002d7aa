"""
State enums for billing models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payout States:
    pending → processing → completed
    pending → processing → failed → processing (retry)

PayoutSplit States:
    pending → settled (together with the parent payout completing)

EscrowHold States:
    active → released

PayoutSchedule States:
    scheduled → triggered
"""

from django.db import models


class PayoutStatus(models.TextChoices):
    """
    States for the Payout model lifecycle.

    Terminal state: COMPLETED. FAILED is retryable.

    State Flow:
        PENDING → PROCESSING → COMPLETED
        PENDING → PROCESSING → FAILED
        FAILED → PROCESSING (retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


# Statuses from which process_payout may start a transfer
PROCESSABLE_PAYOUT_STATUSES = (PayoutStatus.PENDING, PayoutStatus.FAILED)


class PayoutSplitStatus(models.TextChoices):
    """States for a collaborator's share of a payout."""

    PENDING = "pending", "Pending"
    SETTLED = "settled", "Settled"


class EscrowHoldStatus(models.TextChoices):
    """
    States for the EscrowHold model.

    State Flow:
        ACTIVE → RELEASED (manual release or scheduled sweep)
    """

    ACTIVE = "active", "Active"
    RELEASED = "released", "Released"


class PayoutScheduleStatus(models.TextChoices):
    """
    States for the PayoutSchedule model.

    A schedule is claimed as TRIGGERED before any of its payouts are
    processed, so it is picked up at most once.
    """

    SCHEDULED = "scheduled", "Scheduled"
    TRIGGERED = "triggered", "Triggered"


class OnboardingStatus(models.TextChoices):
    """Stripe Connect onboarding progress of a recruiter's account."""

    NOT_STARTED = "not_started", "Not Started"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETE = "complete", "Complete"


class AuditEventType(models.TextChoices):
    """Event types recorded in the payout audit log."""

    CREATED = "created", "Created"
    STATUS_CHANGED = "status_changed", "Status Changed"
    STRIPE_TRANSFER_CREATED = "stripe_transfer_created", "Stripe Transfer Created"
    FAILED = "failed", "Failed"
    SPLITS_ADDED = "splits_added", "Splits Added"
    HOLDBACK_RELEASED = "holdback_released", "Holdback Released"


__all__ = [
    "AuditEventType",
    "EscrowHoldStatus",
    "OnboardingStatus",
    "PROCESSABLE_PAYOUT_STATUSES",
    "PayoutScheduleStatus",
    "PayoutSplitStatus",
    "PayoutStatus",
]

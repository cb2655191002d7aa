"""
ConnectedAccount model for Stripe Connect integration.

Each recruiter who can receive payouts has one Stripe Express account.
The payout engine only needs the account id; the onboarding flags are
kept for the status endpoint and the admin.

Usage:
    from billing.models import ConnectedAccount

    account = ConnectedAccount.objects.filter(recruiter_id=recruiter_id).first()
    if account is None:
        ...  # recruiter has not started onboarding
"""

from __future__ import annotations

from django.db import models

from billing.state_machines import OnboardingStatus
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ConnectedAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    A recruiter's Stripe Connected Account.

    Fields:
        recruiter_id: Recruiter who owns the account
        stripe_account_id: Stripe Account ID (acct_xxx)
        onboarding_status: Stripe Connect onboarding progress
        payouts_enabled / charges_enabled / details_submitted: Stripe flags
        metadata: Last requirements payload and other Stripe data
    """

    recruiter_id = models.UUIDField(
        unique=True,
        help_text="Recruiter this connected account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.NOT_STARTED,
        db_index=True,
    )

    payouts_enabled = models.BooleanField(default=False)
    charges_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        return f"ConnectedAccount({self.stripe_account_id}, {self.onboarding_status})"

"""
Stripe Connect onboarding for recruiters.

Payouts can only be sent to a recruiter with a ConnectedAccount. This
service creates the Stripe Express account, hands out the hosted
onboarding link and mirrors the account's capability flags locally.
"""

from __future__ import annotations

import uuid
from typing import Any

from django.db import IntegrityError

from billing.adapters import ConnectedAccountResult
from billing.models import ConnectedAccount
from billing.repository import PayoutRepository
from billing.state_machines import OnboardingStatus
from core.services import BaseService


def _onboarding_status_for(result: ConnectedAccountResult) -> str:
    if result.details_submitted and result.payouts_enabled:
        return OnboardingStatus.COMPLETE
    return OnboardingStatus.IN_PROGRESS


class ConnectedAccountService(BaseService):
    """Creates and refreshes recruiters' Stripe Connect accounts."""

    def __init__(self, repository: PayoutRepository, gateway: Any):
        self.repository = repository
        self.gateway = gateway

    def onboard(
        self,
        recruiter_id: uuid.UUID | str,
        refresh_url: str,
        return_url: str,
    ) -> dict[str, str]:
        """
        Start or resume onboarding for a recruiter.

        An existing account is reused; only the link is new.

        Returns:
            Dict with account_id (acct_xxx) and onboarding_url
        """
        self.validate_required(
            recruiter_id=recruiter_id,
            refresh_url=refresh_url,
            return_url=return_url,
        )
        logger = self.get_logger()

        account = self.repository.get_connected_account(recruiter_id)
        if account is None:
            account = self._create_account(recruiter_id, logger)

        link = self.gateway.create_account_link(
            account.stripe_account_id,
            refresh_url=refresh_url,
            return_url=return_url,
        )
        return {"account_id": account.stripe_account_id, "onboarding_url": link.url}

    def _create_account(self, recruiter_id: uuid.UUID | str, logger) -> ConnectedAccount:
        result = self.gateway.create_connected_account(recruiter_id)
        try:
            with self.atomic():
                account = self.repository.create_connected_account(
                    recruiter_id=recruiter_id,
                    stripe_account_id=result.id,
                    onboarding_status=OnboardingStatus.IN_PROGRESS,
                    payouts_enabled=result.payouts_enabled,
                    charges_enabled=result.charges_enabled,
                    details_submitted=result.details_submitted,
                )
        except IntegrityError:
            # A concurrent onboard stored its account first; the Stripe
            # account created here stays unused.
            account = self.repository.get_connected_account(recruiter_id)
            if account is None:
                raise
            logger.warning(
                "Connected account created concurrently, reusing stored account",
                extra={
                    "recruiter_id": str(recruiter_id),
                    "stripe_account_id": account.stripe_account_id,
                    "unused_stripe_account_id": result.id,
                },
            )
            return account

        logger.info(
            "Created connected account",
            extra={
                "recruiter_id": str(recruiter_id),
                "stripe_account_id": account.stripe_account_id,
            },
        )
        return account

    def refresh_status(self, account_id: str) -> dict[str, Any]:
        """
        Fetch an account's flags from Stripe and store them locally.

        Accounts created outside this service have no local record; their
        status is returned without being stored.
        """
        self.validate_required(account_id=account_id)
        result = self.gateway.retrieve_account(account_id)

        account: ConnectedAccount | None = self.repository.get_connected_account_by_stripe_id(
            account_id
        )
        if account is not None:
            account.payouts_enabled = result.payouts_enabled
            account.charges_enabled = result.charges_enabled
            account.details_submitted = result.details_submitted
            account.onboarding_status = _onboarding_status_for(result)
            account.metadata = {**account.metadata, "requirements": result.requirements}
            self.repository.save_connected_account(
                account,
                fields=[
                    "payouts_enabled",
                    "charges_enabled",
                    "details_submitted",
                    "onboarding_status",
                    "metadata",
                ],
            )
            self.get_logger().info(
                "Refreshed connected account status",
                extra={
                    "stripe_account_id": account_id,
                    "onboarding_status": account.onboarding_status,
                },
            )

        return {
            "id": result.id,
            "charges_enabled": result.charges_enabled,
            "payouts_enabled": result.payouts_enabled,
            "details_submitted": result.details_submitted,
            "requirements": result.requirements,
        }

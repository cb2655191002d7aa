"""
Stripe Connect gateway for recruiter payouts.

Every outbound Stripe call made by the billing service lives here: the
transfer that pays a recruiter, and the Connect account calls used during
onboarding. Callers never touch the ``stripe`` module directly, so timeouts,
idempotency keys, timing logs and the mapping of Stripe errors onto
billing exceptions stay in one place.

Settings read:
- STRIPE_SECRET_KEY: platform secret key
- STRIPE_API_TIMEOUT_SECONDS: per-request timeout, 10 seconds when unset
- STRIPE_MAX_RETRIES: network retries inside the Stripe client, 3 when unset

Usage:
    from billing.adapters import IdempotencyKeyGenerator, StripeAdapter

    result = StripeAdapter.create_transfer(
        amount_cents=1000000,
        destination_account="acct_123",
        idempotency_key=IdempotencyKeyGenerator.generate(
            "create_transfer", payout.id, payout.idempotency_attempt
        ),
        metadata={"payout_id": str(payout.id)},
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from billing.exceptions import (
    GatewayError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class TransferResult:
    """
    Outcome of a transfer to a recruiter's connected account.

    ``id`` is the tr_ identifier persisted on the payout. ``raw_response``
    keeps the whole Stripe object for the audit log.
    """

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConnectedAccountResult:
    """
    Capability snapshot of a Connect account.

    Attributes:
        id: acct_ identifier
        charges_enabled: Whether the account can accept charges
        payouts_enabled: Whether the account can receive payouts
        details_submitted: Whether onboarding details were submitted
        requirements: Outstanding verification requirements
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    requirements: dict[str, Any] = field(default_factory=dict)


@dataclass
class AccountLinkResult:
    """Result from Stripe AccountLink creation."""

    url: str
    expires_at: int | None = None


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Deterministic Stripe idempotency keys.

    Keys look like ``operation:entity_id:attempt:hash`` where the hash is
    salted with SECRET_KEY.

    The same (operation, entity, attempt) always yields the same key, so a
    retried call after a timeout replays the original Stripe response.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="create_transfer",
            entity_id=payout.id,
            attempt=payout.idempotency_attempt,
        )
        # Result: "create_transfer:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        """
        Build the key for one attempt of an operation on an entity.

        ``attempt`` only changes after Stripe rejected the previous attempt
        outright.
        """
        prefix = f"{operation}:{entity_id}:{attempt}"
        digest = hashlib.sha256(f"{prefix}:{settings.SECRET_KEY}".encode()).hexdigest()
        return f"{prefix}:{digest[:8]}"


def is_retryable_gateway_error(error: Exception) -> bool:
    """
    Check whether a gateway error leaves the transfer outcome ambiguous.

    Retryable errors (timeouts, connection failures, rate limits) must be
    retried with the same idempotency key. Anything else, including errors
    that are not gateway errors at all, is treated as definitive.
    """
    if isinstance(error, GatewayError):
        return error.is_retryable
    return False


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Classmethod facade over the Stripe SDK.

    Holds no state, so web requests and Celery workers share it freely.

    Usage:
        result = StripeAdapter.create_transfer(...)
        account = StripeAdapter.create_connected_account(recruiter_id)
        link = StripeAdapter.create_account_link(account.id, refresh_url, return_url)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Apply key, timeout and retry settings to the Stripe SDK."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the adapter class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Transfers
    # =========================================================================

    @classmethod
    def create_transfer(
        cls,
        amount_cents: int,
        destination_account: str,
        idempotency_key: str,
        currency: str = "usd",
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        """
        Move ``amount_cents`` from the platform balance to a recruiter's
        connected account.

        Replaying the same ``idempotency_key`` returns the original transfer
        instead of paying twice.

        Raises:
            StripeInvalidAccountError: Destination account unusable
            StripeInsufficientFundsError: Platform balance too low
            StripeCardDeclinedError: Transfer declined
            StripeTimeoutError: No response within the configured timeout
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_transfer",
            "amount_cents": amount_cents,
            "destination_account": destination_account,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Stripe call started", extra=log_context)

        try:
            transfer = stripe.Transfer.create(
                amount=amount_cents,
                currency=currency,
                destination=destination_account,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe call finished",
            extra={
                **log_context,
                "transfer_id": transfer.id,
                "duration_ms": duration_ms,
            },
        )

        return TransferResult(
            id=transfer.id,
            amount_cents=transfer.amount,
            currency=transfer.currency,
            destination_account=transfer.destination,
            metadata=dict(transfer.metadata or {}),
            raw_response=transfer.to_dict(),
        )

    # =========================================================================
    # Connect Accounts
    # =========================================================================

    @classmethod
    def create_connected_account(cls, recruiter_id: uuid.UUID | str) -> ConnectedAccountResult:
        """
        Create a Stripe Express account for a recruiter.

        The recruiter id is used as the idempotency entity so a repeated
        onboarding request does not create a second account.
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_connected_account",
            "recruiter_id": str(recruiter_id),
        }

        start_time = time.time()
        logger.info("Stripe call started", extra=log_context)

        try:
            account = stripe.Account.create(
                type="express",
                metadata={"recruiter_id": str(recruiter_id)},
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "create_account", recruiter_id
                ),
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        logger.info(
            "Stripe call finished",
            extra={
                **log_context,
                "account_id": account.id,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return cls._to_account_result(account)

    @classmethod
    def create_account_link(
        cls,
        account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> AccountLinkResult:
        """Create a hosted onboarding link for a connected account."""
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_account_link",
            "account_id": account_id,
        }

        start_time = time.time()
        logger.info("Stripe call started", extra=log_context)

        try:
            link = stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        logger.info(
            "Stripe call finished",
            extra={**log_context, "duration_ms": (time.time() - start_time) * 1000},
        )
        return AccountLinkResult(url=link.url, expires_at=link.expires_at)

    @classmethod
    def retrieve_account(cls, account_id: str) -> ConnectedAccountResult:
        """Retrieve a connected account's capability flags."""
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_account",
            "account_id": account_id,
        }

        start_time = time.time()
        logger.debug("Stripe call started", extra=log_context)

        try:
            account = stripe.Account.retrieve(account_id)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        logger.debug(
            "Stripe call finished",
            extra={**log_context, "duration_ms": (time.time() - start_time) * 1000},
        )
        return cls._to_account_result(account)

    @staticmethod
    def _to_account_result(account: Any) -> ConnectedAccountResult:
        requirements = account.requirements
        if requirements is not None and hasattr(requirements, "to_dict"):
            requirements = requirements.to_dict()
        return ConnectedAccountResult(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
            details_submitted=bool(account.details_submitted),
            requirements=dict(requirements or {}),
        )

    # =========================================================================
    # Error Translation
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Re-raise a Stripe SDK error as the matching billing exception.

        Messages of the raised exceptions are our own; Stripe's payloads are
        only logged.

        Raises:
            StripeCardDeclinedError: Transfer declined
            StripeInsufficientFundsError: Platform balance too low
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request or credentials
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: Network failure or Stripe 5xx
        """
        logger = cls.get_logger()

        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Decline from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )

            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    "Insufficient funds for transfer",
                    stripe_code=error.code,
                    decline_code=decline_code,
                )

            raise StripeCardDeclinedError(
                "Transfer was declined",
                stripe_code=error.code,
                decline_code=decline_code,
            )

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code, "stripe_message": str(error)},
            )

            if error.code == "balance_insufficient":
                raise StripeInsufficientFundsError(
                    "Insufficient platform balance for transfer",
                    stripe_code=error.code,
                )

            if "account" in str(error).lower():
                raise StripeInvalidAccountError(
                    "Destination Stripe account is invalid",
                    stripe_code=error.code,
                )

            raise StripeInvalidRequestError(
                "Invalid request to Stripe",
                stripe_code=error.code,
            )

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            )

        elif isinstance(error, stripe.APIConnectionError):
            if "timeout" in str(error).lower() or "timed out" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                )

            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            )

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            )

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            )

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {type(error).__name__}",
                stripe_code="unknown_error",
            )

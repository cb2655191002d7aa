"""
Billing-specific exceptions for payout operations.

Exception Hierarchy:
    PayoutError (base for billing domain, 500)
    ├── MissingPayoutAccountError - Recruiter has no Stripe account
    └── ImmutableRecordError - Attempt to change an audit row

    PayoutValidationError (ValidationError, 400)
    PayoutNotFoundError (NotFoundError, 404)
    EscrowHoldNotFoundError (NotFoundError, 404)

    InvalidStateError (ConflictError, 409) - Operation not allowed in state
    └── StaleRecordError - Conditional update lost to a concurrent writer

    GatewayError (ExternalServiceError, 500)
    └── StripeError - Base for all Stripe errors
        ├── StripeCardDeclinedError - Declined (permanent)
        ├── StripeInsufficientFundsError - Platform balance too low (permanent)
        ├── StripeInvalidAccountError - Invalid Connect account (permanent)
        ├── StripeInvalidRequestError - Invalid request params (permanent)
        ├── StripeRateLimitError - Rate limited (transient)
        ├── StripeAPIUnavailableError - API unavailable (transient)
        └── StripeTimeoutError - Request timeout (transient)

Usage:
    from billing.exceptions import InvalidStateError, PayoutNotFoundError

    if payout is None:
        raise PayoutNotFoundError(
            f"Payout {payout_id} not found",
            details={"payout_id": str(payout_id)},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payout Domain Exceptions
# =============================================================================


class PayoutError(BaseApplicationError):
    """Base exception for billing failures that are not the caller's fault."""

    default_error_code: str = "PAYOUT_ERROR"


class PayoutValidationError(ValidationError):
    """
    Raised when payout input violates a business rule.

    Use for:
    - Non-positive payout or hold amounts
    - Share percentage outside 0-100
    - A split batch totalling more than 100 percent
    """

    default_error_code: str = "PAYOUT_VALIDATION_ERROR"


class PayoutNotFoundError(NotFoundError):
    """Raised when a payout lookup finds nothing."""

    default_error_code: str = "PAYOUT_NOT_FOUND"


class EscrowHoldNotFoundError(NotFoundError):
    """Raised when an escrow hold lookup finds nothing."""

    default_error_code: str = "ESCROW_HOLD_NOT_FOUND"


class MissingPayoutAccountError(PayoutError):
    """
    Raised when the recruiter has no Stripe Connect account on file.

    The payout is recorded as failed before this is raised, so it can be
    retried once the recruiter completes onboarding.
    """

    default_error_code: str = "MISSING_PAYOUT_ACCOUNT"


class ImmutableRecordError(PayoutError):
    """Raised when code tries to update or delete an audit log row."""

    default_error_code: str = "IMMUTABLE_RECORD"


# =============================================================================
# State Exceptions
# =============================================================================


class InvalidStateError(ConflictError):
    """
    Raised when an operation is not allowed in the record's current status.

    Attributes:
        details: Contains current_status and the attempted operation

    Example:
        raise InvalidStateError(
            "Payout cannot be processed from 'completed'",
            details={"payout_id": str(payout.id), "current_status": "completed"},
        )
    """

    default_error_code: str = "INVALID_STATE"


class StaleRecordError(InvalidStateError):
    """
    Raised when a conditional status update matches no row.

    The record was moved out of the expected status by another process
    between read and update. The caller must not perform any side effect
    that depended on winning the update.

    Attributes:
        details: Contains pk, expected_status and current_status
    """

    default_error_code: str = "STALE_RECORD"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(ExternalServiceError):
    """
    Base exception for payment gateway failures.

    Use is_retryable to decide on the idempotency key for the next attempt:
    - True: Outcome is ambiguous or transient, reuse the same key
    - False: Definitive rejection, a new attempt needs a new key
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False


class StripeError(GatewayError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Decline code (if applicable)
    """

    default_error_code: str = "STRIPE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Transfer was declined by Stripe."""

    default_error_code: str = "TRANSFER_DECLINED"


class StripeInsufficientFundsError(StripeError):
    """
    Platform balance cannot cover the transfer.

    Requires topping up the platform account before a retry can succeed.
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"


class StripeInvalidAccountError(StripeError):
    """
    Invalid Stripe Connect account.

    The destination account is missing, restricted or not onboarded.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Usually indicates a bug in our code, not a recruiter problem.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers network failures and Stripe 5xx responses. The transfer may or
    may not have been created.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    IMPORTANT: The transfer may have succeeded on Stripe's side. Retry with
    the same idempotency key so Stripe replays the original response.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


__all__ = [
    "EscrowHoldNotFoundError",
    "GatewayError",
    "ImmutableRecordError",
    "InvalidStateError",
    "MissingPayoutAccountError",
    "PayoutError",
    "PayoutNotFoundError",
    "PayoutValidationError",
    "StaleRecordError",
    "StripeAPIUnavailableError",
    "StripeCardDeclinedError",
    "StripeError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeTimeoutError",
]

"""
Billing adapters for external services.

All Stripe calls go through StripeAdapter to ensure consistent error
handling, timeouts, idempotency and observability.
"""

from billing.adapters.stripe_adapter import (
    AccountLinkResult,
    ConnectedAccountResult,
    IdempotencyKeyGenerator,
    StripeAdapter,
    TransferResult,
    is_retryable_gateway_error,
)

__all__ = [
    "AccountLinkResult",
    "ConnectedAccountResult",
    "IdempotencyKeyGenerator",
    "StripeAdapter",
    "TransferResult",
    "is_retryable_gateway_error",
]

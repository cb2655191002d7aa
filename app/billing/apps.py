"""
Billing app configuration.

This app owns the recruiter payout pipeline:
- Payout creation, execution and audit trail
- Collaborator payout splits
- Escrow holdbacks and their release
- Deferred payout schedules and periodic sweeps
- Stripe Connect onboarding for recruiters
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    """Configuration for the billing application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"
    verbose_name = "Billing"

"""
URL configuration for the billing service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/billing/               - Billing endpoints
        payouts/                   - Create payout (POST)
        payouts/schedule/          - Schedule payouts for a placement (POST)
        payouts/{id}/              - Payout detail
        payouts/{id}/process/      - Execute the transfer (POST)
        payouts/{id}/splits/       - List/add collaborator splits
        payouts/{id}/audit-log/    - Payout audit trail
        recruiters/{id}/payouts/   - Payouts for a recruiter
        placements/{id}/payouts/   - Payouts for a placement
        escrow/holds/              - Create escrow hold (POST)
        escrow/holds/{id}/release/ - Release escrow hold (POST)
        stripe/connect/onboard/    - Start Stripe Connect onboarding (POST)
        stripe/connect/status/{account_id}/ - Connected account status
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("billing/", include("billing.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Billing Admin"
admin.site.site_title = "Billing Admin"
admin.site.index_title = "Payouts and escrow"

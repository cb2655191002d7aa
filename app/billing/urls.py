"""
URL configuration for the billing app.

Mounted at /api/v1/billing/ by config/urls.py.
"""

from django.urls import path

from billing import views

app_name = "billing"

urlpatterns = [
    # Payouts
    path("payouts/", views.PayoutCreateView.as_view(), name="payout-create"),
    path("payouts/schedule/", views.PayoutScheduleView.as_view(), name="payout-schedule"),
    path("payouts/<uuid:payout_id>/", views.PayoutDetailView.as_view(), name="payout-detail"),
    path("payouts/<uuid:payout_id>/process/", views.PayoutProcessView.as_view(), name="payout-process"),
    path("payouts/<uuid:payout_id>/splits/", views.PayoutSplitsView.as_view(), name="payout-splits"),
    path("payouts/<uuid:payout_id>/audit-log/", views.PayoutAuditLogView.as_view(), name="payout-audit-log"),
    path("recruiters/<uuid:recruiter_id>/payouts/", views.RecruiterPayoutsView.as_view(), name="recruiter-payouts"),
    path("placements/<uuid:placement_id>/payouts/", views.PlacementPayoutsView.as_view(), name="placement-payouts"),
    # Escrow
    path("escrow/holds/", views.EscrowHoldCreateView.as_view(), name="escrow-hold-create"),
    path("escrow/holds/<uuid:hold_id>/release/", views.EscrowHoldReleaseView.as_view(), name="escrow-hold-release"),
    # Stripe Connect
    path("stripe/connect/onboard/", views.ConnectOnboardView.as_view(), name="connect-onboard"),
    path("stripe/connect/status/<str:account_id>/", views.ConnectStatusView.as_view(), name="connect-status"),
]

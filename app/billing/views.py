"""
Billing API views.

Thin HTTP adapters over the billing services. Successful responses wrap
their payload in {"data": ...}; errors are rendered by
core.views.api_exception_handler from the domain exceptions the services
raise.

Authentication is handled upstream by the API gateway. The actor recorded
on audit rows comes from the X-Actor-Id header.

Endpoints (mounted under /api/v1/billing/):
    POST payouts/                           Create payout
    GET  payouts/<id>/                      Get payout
    POST payouts/<id>/process/              Process payout
    GET  payouts/<id>/splits/               List splits
    POST payouts/<id>/splits/               Add splits
    GET  payouts/<id>/audit-log/            Audit log
    POST payouts/schedule/                  Schedule payouts
    GET  recruiters/<id>/payouts/           Recruiter payouts
    GET  placements/<id>/payouts/           Placement payouts
    POST escrow/holds/                      Create escrow hold
    POST escrow/holds/<id>/release/         Release escrow hold
    POST stripe/connect/onboard/            Start Stripe Connect onboarding
    GET  stripe/connect/status/<acct_id>/   Stripe Connect account status
"""

from __future__ import annotations

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.serializers import (
    AddPayoutSplitsSerializer,
    ConnectOnboardSerializer,
    CreateEscrowHoldSerializer,
    CreatePayoutSerializer,
    EscrowHoldSerializer,
    PayoutAuditLogSerializer,
    PayoutScheduleSerializer,
    PayoutSerializer,
    PayoutSplitSerializer,
    SchedulePayoutSerializer,
)
from billing.services import build_connected_account_service, build_payout_engine


def get_actor(request) -> str:
    """Actor identity for audit rows, from the X-Actor-Id header."""
    return request.headers.get("X-Actor-Id") or settings.PAYOUT_DEFAULT_HTTP_ACTOR


# =============================================================================
# Payouts
# =============================================================================


class PayoutCreateView(APIView):
    @extend_schema(
        operation_id="create_payout",
        summary="Create payout",
        description=(
            "Create a pending payout for a recruiter on a placement. "
            "The payout amount is stored as supplied."
        ),
        request=CreatePayoutSerializer,
        responses={
            201: OpenApiResponse(response=PayoutSerializer, description="Payout created"),
            400: OpenApiResponse(description="Validation error"),
        },
        tags=["Billing - Payouts"],
    )
    def post(self, request):
        serializer = CreatePayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payout = build_payout_engine().create_payout(
            created_by=get_actor(request),
            **serializer.validated_data,
        )
        return Response({"data": PayoutSerializer(payout).data}, status=status.HTTP_201_CREATED)


class PayoutDetailView(APIView):
    @extend_schema(
        operation_id="get_payout",
        summary="Get payout",
        responses={
            200: OpenApiResponse(response=PayoutSerializer, description="Payout"),
            404: OpenApiResponse(description="Payout not found"),
        },
        tags=["Billing - Payouts"],
    )
    def get(self, request, payout_id):
        payout = build_payout_engine().get_payout(payout_id)
        return Response({"data": PayoutSerializer(payout).data})


class PayoutProcessView(APIView):
    @extend_schema(
        operation_id="process_payout",
        summary="Process payout",
        description=(
            "Transfer a pending or failed payout to the recruiter's Stripe "
            "Connect account. A failed transfer leaves the payout failed and "
            "returns the gateway error."
        ),
        request=None,
        responses={
            200: OpenApiResponse(response=PayoutSerializer, description="Payout completed"),
            404: OpenApiResponse(description="Payout not found"),
            409: OpenApiResponse(description="Payout is processing or completed"),
            500: OpenApiResponse(description="Transfer failed"),
        },
        tags=["Billing - Payouts"],
    )
    def post(self, request, payout_id):
        payout = build_payout_engine().process_payout(payout_id, actor=get_actor(request))
        return Response({"data": PayoutSerializer(payout).data})


class PayoutSplitsView(APIView):
    @extend_schema(
        operation_id="list_payout_splits",
        summary="List payout splits",
        responses={
            200: OpenApiResponse(response=PayoutSplitSerializer(many=True), description="Splits"),
            404: OpenApiResponse(description="Payout not found"),
        },
        tags=["Billing - Payouts"],
    )
    def get(self, request, payout_id):
        splits = build_payout_engine().get_payout_splits(payout_id)
        return Response({"data": PayoutSplitSerializer(splits, many=True).data})

    @extend_schema(
        operation_id="add_payout_splits",
        summary="Add payout splits",
        description="Attach collaborator splits. A batch may total at most 100 percent.",
        request=AddPayoutSplitsSerializer,
        responses={
            201: OpenApiResponse(response=PayoutSplitSerializer(many=True), description="Splits created"),
            400: OpenApiResponse(description="Validation error"),
            404: OpenApiResponse(description="Payout not found"),
        },
        tags=["Billing - Payouts"],
    )
    def post(self, request, payout_id):
        serializer = AddPayoutSplitsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        splits = build_payout_engine().add_payout_splits(
            payout_id,
            serializer.validated_data["splits"],
            actor=get_actor(request),
        )
        return Response(
            {"data": PayoutSplitSerializer(splits, many=True).data},
            status=status.HTTP_201_CREATED,
        )


class PayoutAuditLogView(APIView):
    @extend_schema(
        operation_id="get_payout_audit_log",
        summary="Get payout audit log",
        description="Every recorded event of a payout, oldest first.",
        responses={
            200: OpenApiResponse(
                response=PayoutAuditLogSerializer(many=True),
                description="Audit log",
            ),
            404: OpenApiResponse(description="Payout not found"),
        },
        tags=["Billing - Payouts"],
    )
    def get(self, request, payout_id):
        entries = build_payout_engine().get_payout_audit_log(payout_id)
        return Response({"data": PayoutAuditLogSerializer(entries, many=True).data})


class PayoutScheduleView(APIView):
    @extend_schema(
        operation_id="schedule_payout",
        summary="Schedule placement payouts",
        description="Process the placement's pending payouts once scheduled_date has passed.",
        request=SchedulePayoutSerializer,
        responses={
            201: OpenApiResponse(response=PayoutScheduleSerializer, description="Schedule created"),
            400: OpenApiResponse(description="Validation error"),
        },
        tags=["Billing - Payouts"],
    )
    def post(self, request):
        serializer = SchedulePayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        schedule = build_payout_engine().schedule_payout(**serializer.validated_data)
        return Response(
            {"data": PayoutScheduleSerializer(schedule).data},
            status=status.HTTP_201_CREATED,
        )


class RecruiterPayoutsView(APIView):
    @extend_schema(
        operation_id="list_recruiter_payouts",
        summary="List recruiter payouts",
        responses={200: OpenApiResponse(response=PayoutSerializer(many=True), description="Payouts, newest first")},
        tags=["Billing - Payouts"],
    )
    def get(self, request, recruiter_id):
        payouts = build_payout_engine().get_recruiter_payouts(recruiter_id)
        return Response({"data": PayoutSerializer(payouts, many=True).data})


class PlacementPayoutsView(APIView):
    @extend_schema(
        operation_id="list_placement_payouts",
        summary="List placement payouts",
        responses={200: OpenApiResponse(response=PayoutSerializer(many=True), description="Payouts, newest first")},
        tags=["Billing - Payouts"],
    )
    def get(self, request, placement_id):
        payouts = build_payout_engine().get_placement_payouts(placement_id)
        return Response({"data": PayoutSerializer(payouts, many=True).data})


# =============================================================================
# Escrow
# =============================================================================


class EscrowHoldCreateView(APIView):
    @extend_schema(
        operation_id="create_escrow_hold",
        summary="Create escrow hold",
        request=CreateEscrowHoldSerializer,
        responses={
            201: OpenApiResponse(response=EscrowHoldSerializer, description="Hold created"),
            400: OpenApiResponse(description="Validation error"),
            404: OpenApiResponse(description="Linked payout not found"),
        },
        tags=["Billing - Escrow"],
    )
    def post(self, request):
        serializer = CreateEscrowHoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        hold = build_payout_engine().create_escrow_hold(**serializer.validated_data)
        return Response({"data": EscrowHoldSerializer(hold).data}, status=status.HTTP_201_CREATED)


class EscrowHoldReleaseView(APIView):
    @extend_schema(
        operation_id="release_escrow_hold",
        summary="Release escrow hold",
        description="Release an active hold and stamp its payout's holdback release.",
        request=None,
        responses={
            200: OpenApiResponse(response=EscrowHoldSerializer, description="Hold released"),
            404: OpenApiResponse(description="Hold not found"),
            409: OpenApiResponse(description="Hold already released"),
        },
        tags=["Billing - Escrow"],
    )
    def post(self, request, hold_id):
        hold = build_payout_engine().release_escrow_hold(hold_id, released_by=get_actor(request))
        return Response({"data": EscrowHoldSerializer(hold).data})


# =============================================================================
# Stripe Connect
# =============================================================================


class ConnectOnboardView(APIView):
    @extend_schema(
        operation_id="stripe_connect_onboard",
        summary="Start Stripe Connect onboarding",
        description=(
            "Create (or reuse) the recruiter's Stripe Express account and "
            "return a hosted onboarding link."
        ),
        request=ConnectOnboardSerializer,
        responses={
            200: OpenApiResponse(description="account_id and onboarding_url"),
            400: OpenApiResponse(description="Validation error"),
            500: OpenApiResponse(description="Stripe error"),
        },
        tags=["Billing - Stripe Connect"],
    )
    def post(self, request):
        serializer = ConnectOnboardSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = build_connected_account_service().onboard(**serializer.validated_data)
        return Response({"data": result})


class ConnectStatusView(APIView):
    @extend_schema(
        operation_id="stripe_connect_status",
        summary="Get Stripe Connect account status",
        responses={
            200: OpenApiResponse(description="Account capability flags and requirements"),
            500: OpenApiResponse(description="Stripe error"),
        },
        tags=["Billing - Stripe Connect"],
    )
    def get(self, request, account_id):
        result = build_connected_account_service().refresh_status(account_id)
        return Response({"data": result})

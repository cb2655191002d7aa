"""
DRF serializers for the billing API.

Request serializers validate request shape only; business rules (amount
ranges, split totals, state checks) live in PayoutEngine.

Usage:
    serializer = CreatePayoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    payout = engine.create_payout(**serializer.validated_data)
    return Response({"data": PayoutSerializer(payout).data})
"""

from __future__ import annotations

from rest_framework import serializers

from billing.models import EscrowHold, Payout, PayoutAuditLog, PayoutSchedule, PayoutSplit

# =============================================================================
# Response Serializers
# =============================================================================


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = [
            "id",
            "placement_id",
            "recruiter_id",
            "placement_fee",
            "recruiter_share_percentage",
            "payout_amount",
            "holdback_amount",
            "currency",
            "status",
            "stripe_transfer_id",
            "destination_account_id",
            "processing_started_at",
            "completed_at",
            "failed_at",
            "failure_reason",
            "holdback_released_at",
            "created_by",
            "metadata",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PayoutSplitSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutSplit
        fields = [
            "id",
            "payout_id",
            "collaborator_recruiter_id",
            "split_percentage",
            "split_amount",
            "status",
            "settled_at",
            "created_at",
        ]
        read_only_fields = fields


class EscrowHoldSerializer(serializers.ModelSerializer):
    class Meta:
        model = EscrowHold
        fields = [
            "id",
            "placement_id",
            "payout_id",
            "hold_amount",
            "currency",
            "hold_reason",
            "held_at",
            "release_scheduled_date",
            "status",
            "released_at",
            "released_by",
            "created_at",
        ]
        read_only_fields = fields


class PayoutScheduleSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutSchedule
        fields = [
            "id",
            "placement_id",
            "scheduled_date",
            "trigger_event",
            "status",
            "triggered_at",
            "processed_count",
            "last_error",
            "created_at",
        ]
        read_only_fields = fields


class PayoutAuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutAuditLog
        fields = [
            "id",
            "payout_id",
            "event_type",
            "old_status",
            "new_status",
            "reason",
            "metadata",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Request Serializers
# =============================================================================


class CreatePayoutSerializer(serializers.Serializer):
    """
    Request body for POST payouts/.

    Amounts are decimals in major units (e.g. "10000.00").
    """

    placement_id = serializers.UUIDField()
    recruiter_id = serializers.UUIDField()
    placement_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    recruiter_share_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    payout_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    holdback_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        default=0,
    )


class SchedulePayoutSerializer(serializers.Serializer):
    placement_id = serializers.UUIDField()
    scheduled_date = serializers.DateTimeField()
    trigger_event = serializers.CharField(max_length=100)


class SplitInputSerializer(serializers.Serializer):
    collaborator_recruiter_id = serializers.UUIDField()
    split_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    split_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
    )


class AddPayoutSplitsSerializer(serializers.Serializer):
    splits = SplitInputSerializer(many=True, allow_empty=False)


class CreateEscrowHoldSerializer(serializers.Serializer):
    placement_id = serializers.UUIDField()
    hold_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    hold_reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    release_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    payout_id = serializers.UUIDField(required=False, allow_null=True, default=None)


class ConnectOnboardSerializer(serializers.Serializer):
    """
    Request body for POST stripe/connect/onboard/.

    Fields:
        recruiter_id: Recruiter to onboard
        refresh_url: Where Stripe sends the recruiter if the link expires
        return_url: Where Stripe sends the recruiter after onboarding
    """

    recruiter_id = serializers.UUIDField()
    refresh_url = serializers.URLField()
    return_url = serializers.URLField()

"""
Django admin configuration for billing models.

Payouts, holds and schedules are read-only in the admin: every status
change must go through PayoutEngine so it is conditional and audited.
The payout audit log cannot be added to, edited or deleted.
"""

from django.contrib import admin

from billing.models import (
    ConnectedAccount,
    EscrowHold,
    Payout,
    PayoutAuditLog,
    PayoutSchedule,
    PayoutSplit,
)


class ReadOnlyAdminMixin:
    """Disable add, change and delete for a ModelAdmin."""

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


class PayoutSplitInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = PayoutSplit
    extra = 0
    fields = ["collaborator_recruiter_id", "split_percentage", "split_amount", "status", "settled_at"]
    readonly_fields = fields


class PayoutAuditLogInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = PayoutAuditLog
    extra = 0
    fields = ["created_at", "event_type", "old_status", "new_status", "created_by", "metadata"]
    readonly_fields = fields
    ordering = ["created_at", "id"]


@admin.register(Payout)
class PayoutAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "id",
        "placement_id",
        "recruiter_id",
        "amount_display",
        "status",
        "stripe_transfer_id",
        "idempotency_attempt",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "placement_id", "recruiter_id", "stripe_transfer_id"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [PayoutSplitInline, PayoutAuditLogInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "placement_id", "recruiter_id", "status", "version"),
            },
        ),
        (
            "Amounts",
            {
                "fields": (
                    "placement_fee",
                    "recruiter_share_percentage",
                    "payout_amount",
                    "holdback_amount",
                    "currency",
                ),
            },
        ),
        (
            "Stripe",
            {
                "fields": (
                    "stripe_transfer_id",
                    "destination_account_id",
                    "idempotency_attempt",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "created_at",
                    "processing_started_at",
                    "completed_at",
                    "failed_at",
                    "holdback_released_at",
                ),
            },
        ),
        (
            "Additional Info",
            {
                "fields": ("failure_reason", "created_by", "metadata"),
            },
        ),
    )

    def amount_display(self, obj: Payout) -> str:
        return f"{obj.payout_amount} {obj.currency.upper()}"

    amount_display.short_description = "Amount"


@admin.register(EscrowHold)
class EscrowHoldAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "id",
        "placement_id",
        "payout",
        "hold_amount",
        "status",
        "release_scheduled_date",
        "released_at",
        "released_by",
    ]
    list_filter = ["status"]
    search_fields = ["id", "placement_id", "payout__id"]
    ordering = ["-created_at"]


@admin.register(PayoutSchedule)
class PayoutScheduleAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "id",
        "placement_id",
        "trigger_event",
        "scheduled_date",
        "status",
        "triggered_at",
        "processed_count",
    ]
    list_filter = ["status", "trigger_event"]
    search_fields = ["id", "placement_id"]
    ordering = ["scheduled_date"]


@admin.register(PayoutAuditLog)
class PayoutAuditLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Audit log rows are immutable.

    Corrections are recorded as new events by the engine, never by editing
    existing rows.
    """

    list_display = ["id", "created_at", "payout", "event_type", "old_status", "new_status", "created_by"]
    list_filter = ["event_type", "created_at"]
    search_fields = ["payout__id", "created_by"]
    date_hierarchy = "created_at"
    ordering = ["-created_at", "-id"]


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(admin.ModelAdmin):
    list_display = [
        "stripe_account_id",
        "recruiter_id",
        "onboarding_status",
        "payouts_enabled",
        "charges_enabled",
        "details_submitted",
        "created_at",
    ]
    list_filter = ["onboarding_status", "payouts_enabled"]
    search_fields = ["stripe_account_id", "recruiter_id"]
    readonly_fields = ["id", "created_at", "updated_at"]

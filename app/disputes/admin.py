"""Django admin configuration for disputes."""

from django.contrib import admin

from disputes.models import Dispute, DisputeComment


class DisputeCommentInline(admin.TabularInline):
    model = DisputeComment
    extra = 0
    readonly_fields = ["author", "author_role", "body", "is_system", "created_at"]


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "order",
        "customer",
        "reason",
        "status",
        "refund_failed",
        "created_at",
    ]
    list_filter = ["status", "reason", "refund_failed"]
    search_fields = ["order__order_number", "customer__email"]
    raw_id_fields = ["order", "customer", "resolved_by"]
    readonly_fields = [
        "status",
        "order_status_at_open",
        "resolution_type",
        "resolved_by",
        "resolved_at",
        "refunded_amount",
        "refunded_at",
        "gateway_refunded_amount",
        "gateway_refunded_at",
        "refund_error",
        "created_at",
        "updated_at",
    ]
    inlines = [DisputeCommentInline]

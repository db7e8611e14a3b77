"""Django admin configuration for payments."""

from django.contrib import admin

from payments.models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = [
        "order",
        "payment_id",
        "status",
        "amount",
        "currency",
        "refunded_amount",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "currency"]
    search_fields = ["payment_id", "order__order_number"]
    raw_id_fields = ["order"]
    readonly_fields = [
        "payment_id",
        "status",
        "amount",
        "currency",
        "method",
        "status_message",
        "paid_at",
        "raw_payload",
        "signature_hash",
        "refunded_amount",
        "refunded_at",
        "refund_error",
        "created_at",
        "updated_at",
    ]

    def has_delete_permission(self, request, obj=None):
        return False

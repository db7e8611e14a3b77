"""Django admin configuration for orders and coupons."""

from django.contrib import admin

from orders.models import Coupon, CouponUsage, Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ["product_name", "vendor", "quantity", "unit_price", "line_total", "status", "tracking_number"]
    readonly_fields = fields
    can_delete = False


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    fields = ["created_at", "previous_status", "status", "actor_role", "actor", "note"]
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Status changes go through the admin API so history and escrow stay consistent."""

    list_display = ["order_number", "customer", "status", "total", "created_at"]
    list_filter = ["status"]
    search_fields = ["order_number", "customer__email"]
    raw_id_fields = ["customer", "coupon"]
    readonly_fields = [
        "order_number",
        "status",
        "subtotal",
        "discount",
        "shipping",
        "total",
        "coupon",
        "shipping_address",
        "cancelled_at",
        "delivery_confirmed_at",
        "return_requested_at",
        "created_at",
        "updated_at",
    ]
    inlines = [OrderItemInline, OrderStatusHistoryInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ["code", "type", "value", "vendor", "usage_count", "usage_limit", "valid_until", "is_active"]
    list_filter = ["type", "is_active"]
    search_fields = ["code"]
    raw_id_fields = ["vendor"]
    readonly_fields = ["usage_count", "created_at", "updated_at"]


@admin.register(CouponUsage)
class CouponUsageAdmin(admin.ModelAdmin):
    list_display = ["coupon", "customer", "order", "discount_amount", "created_at"]
    raw_id_fields = ["coupon", "customer", "order"]

"""
Serializers for order, fulfillment and coupon endpoints.

Money fields are DecimalFields, rendered as strings (COERCE_DECIMAL_TO_STRING).
Input serializers validate shape and length; business rules (windows,
ownership, transitions) are enforced by the services.
"""

from rest_framework import serializers

from orders.models import Order, OrderItem, OrderStatusHistory
from orders.states import ItemStatus, OrderStatus

# =============================================================================
# Read serializers
# =============================================================================


class OrderItemSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source="vendor.business_name", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "vendor",
            "vendor_name",
            "product_id",
            "variant_id",
            "product_name",
            "product_snapshot",
            "variant_snapshot",
            "quantity",
            "unit_price",
            "line_total",
            "status",
            "tracking_number",
            "tracking_url",
            "carrier_slug",
            "shipped_at",
            "delivered_at",
        ]
        read_only_fields = fields


class VendorOrderItemSerializer(OrderItemSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True)
    order_status = serializers.CharField(source="order.status", read_only=True)
    shipping_address = serializers.JSONField(source="order.shipping_address", read_only=True)

    class Meta(OrderItemSerializer.Meta):
        fields = OrderItemSerializer.Meta.fields + [
            "order",
            "order_number",
            "order_status",
            "shipping_address",
        ]
        read_only_fields = fields


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "order_item",
            "previous_status",
            "status",
            "note",
            "actor_role",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    coupon_code = serializers.CharField(source="coupon.code", read_only=True, default=None)
    item_count = serializers.IntegerField(source="items.count", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "subtotal",
            "discount",
            "shipping",
            "total",
            "coupon_code",
            "item_count",
            "created_at",
            "cancelled_at",
            "delivery_confirmed_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = OrderStatusHistorySerializer(many=True, read_only=True)
    payment_status = serializers.CharField(source="payment.status", read_only=True, default=None)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + [
            "shipping_address",
            "notes",
            "cancel_reason",
            "return_reason",
            "return_description",
            "return_requested_at",
            "payment_status",
            "items",
            "status_history",
        ]
        read_only_fields = fields


# =============================================================================
# Order creation
# =============================================================================


class CartLineSerializer(serializers.Serializer):
    """A cart line; price, name and snapshot are resolved from the catalog."""

    product_id = serializers.UUIDField()
    variant_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    quantity = serializers.IntegerField(min_value=1, max_value=1000)


class ShippingAddressSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=20)
    address_line1 = serializers.CharField(max_length=255)
    address_line2 = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    city = serializers.CharField(max_length=100)
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    country = serializers.CharField(max_length=100, required=False, default="Sri Lanka")


class OrderCreateSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True, allow_empty=False)
    shipping_address = ShippingAddressSerializer()
    coupon_code = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=30)
    items = CartLineSerializer(many=True, allow_empty=False)


# =============================================================================
# Status changes
# =============================================================================


class OrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=10, max_length=500)


class OrderReturnSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=10, max_length=500)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class OrderStatusUpdateSerializer(serializers.Serializer):
    """Customer status endpoint; reason is required for cancellations and returns."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        needs_reason = attrs["status"] in (OrderStatus.CANCELLED, OrderStatus.RETURN_REQUESTED)
        if needs_reason and len(attrs["reason"]) < 10:
            raise serializers.ValidationError(
                {"reason": ["Reason must be at least 10 characters"]}
            )
        return attrs


class ItemStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[ItemStatus.PROCESSING, ItemStatus.SHIPPED])
    tracking_number = serializers.CharField(
        min_length=8, max_length=30, required=False, allow_blank=True, default=""
    )
    tracking_url = serializers.URLField(max_length=200, required=False, allow_blank=True, default="")
    carrier_slug = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    note = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["status"] == ItemStatus.SHIPPED and not attrs["tracking_number"]:
            raise serializers.ValidationError(
                {"tracking_number": ["Tracking number is required when marking as shipped"]}
            )
        return attrs


class AdminStatusOverrideSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    reason = serializers.CharField(min_length=10, max_length=500)


class AdminMarkDeliveredSerializer(serializers.Serializer):
    note = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

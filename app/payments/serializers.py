"""
Serializers for payment endpoints.
"""

from rest_framework import serializers

from payments.models import Payment


class PaymentInitiateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()


class PaymentSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "order",
            "order_number",
            "payment_id",
            "status",
            "amount",
            "currency",
            "method",
            "status_message",
            "paid_at",
            "refunded_amount",
            "refunded_at",
            "created_at",
        ]
        read_only_fields = fields

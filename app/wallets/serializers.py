"""
Serializers for wallet, ledger and payout endpoints.

Money fields are DecimalFields, rendered as strings (COERCE_DECIMAL_TO_STRING).
"""

from django.conf import settings
from rest_framework import serializers

from wallets.models import Payout, Wallet, WalletTransaction


class WalletSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source="vendor.business_name", read_only=True)

    class Meta:
        model = Wallet
        fields = [
            "id",
            "vendor_name",
            "pending_balance",
            "available_balance",
            "total_earnings",
            "total_withdrawn",
            "updated_at",
        ]
        read_only_fields = fields


class WalletTransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True, default=None)

    class Meta:
        model = WalletTransaction
        fields = [
            "id",
            "type",
            "balance",
            "amount",
            "balance_before",
            "balance_after",
            "description",
            "order",
            "order_number",
            "payout",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = [
            "id",
            "amount",
            "status",
            "bank_name",
            "account_number",
            "account_holder_name",
            "branch_code",
            "notes",
            "transaction_reference",
            "failure_reason",
            "processed_at",
            "completed_at",
            "failed_at",
            "created_at",
        ]
        read_only_fields = fields


class PayoutRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    bank_name = serializers.CharField(max_length=100)
    account_number = serializers.RegexField(
        r"^\d{8,20}$",
        error_messages={"invalid": "Account number must be 8-20 digits"},
    )
    account_holder_name = serializers.CharField(min_length=2, max_length=100)
    branch_code = serializers.RegexField(
        r"^\d{3}$",
        required=False,
        allow_blank=True,
        default="",
        error_messages={"invalid": "Branch code must be 3 digits"},
    )
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def validate_amount(self, value):
        if value < settings.PAYOUT_MIN_AMOUNT or value > settings.PAYOUT_MAX_AMOUNT:
            raise serializers.ValidationError(
                f"Amount must be between {settings.PAYOUT_MIN_AMOUNT} and {settings.PAYOUT_MAX_AMOUNT}"
            )
        return value


class PayoutCompleteSerializer(serializers.Serializer):
    transaction_reference = serializers.CharField(min_length=5, max_length=100)


class PayoutFailSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=5, max_length=500)

"""
Serializers for authentication models.
"""

from rest_framework import serializers

from authentication.models import User, Vendor


class VendorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = ["id", "business_name", "commission_rate", "is_active"]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """Current user with role and, for vendors, the vendor profile."""

    vendor = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "email", "full_name", "phone", "role", "vendor"]
        read_only_fields = fields

    def get_vendor(self, obj):
        vendor = getattr(obj, "vendor", None)
        return VendorSerializer(vendor).data if vendor else None

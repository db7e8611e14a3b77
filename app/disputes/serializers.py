"""
Serializers for dispute endpoints.
"""

from django.conf import settings
from rest_framework import serializers

from disputes.models import Dispute, DisputeComment, DisputeReason, ResolutionType
from disputes.services import validate_evidence


class DisputeCommentSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source="author.full_name", read_only=True, default=None)

    class Meta:
        model = DisputeComment
        fields = ["id", "author", "author_name", "author_role", "body", "is_system", "created_at"]
        read_only_fields = fields


class DisputeSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "order",
            "order_number",
            "reason",
            "description",
            "evidence",
            "status",
            "order_status_at_open",
            "resolution_type",
            "resolution_notes",
            "resolved_at",
            "refund_amount",
            "refunded_amount",
            "refunded_at",
            "refund_failed",
            "created_at",
        ]
        read_only_fields = fields


class DisputeDetailSerializer(DisputeSerializer):
    comments = DisputeCommentSerializer(many=True, read_only=True)

    class Meta(DisputeSerializer.Meta):
        fields = DisputeSerializer.Meta.fields + ["comments"]
        read_only_fields = fields


class DisputeCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    reason = serializers.ChoiceField(choices=DisputeReason.choices)
    description = serializers.CharField(min_length=20, max_length=2000)
    evidence = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
        default=list,
    )

    def validate_evidence(self, value):
        error = validate_evidence(value)
        if error:
            raise serializers.ValidationError(error)
        return value


class DisputeCommentCreateSerializer(serializers.Serializer):
    body = serializers.CharField(max_length=settings.DISPUTE_COMMENT_MAX_LENGTH)


class DisputeResolveSerializer(serializers.Serializer):
    resolution_type = serializers.ChoiceField(choices=ResolutionType.choices)
    notes = serializers.CharField(min_length=10, max_length=2000)
    refund_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
        default=None,
    )

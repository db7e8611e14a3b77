"""
Dispute API views.

Customer / vendor / admin endpoints:
    GET  /api/v1/disputes/                 - Disputes visible to the caller
    POST /api/v1/disputes/                 - Open a dispute (customer)
    GET  /api/v1/disputes/{id}/            - Detail with comments
    POST /api/v1/disputes/{id}/comments/   - Add a comment (customer, admin)

Admin endpoints:
    POST /api/v1/admin/disputes/{id}/resolve/ - Resolve (may trigger refund)
"""

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from authentication.permissions import IsAdmin, IsCustomer
from core.views import service_response
from disputes.models import Dispute
from disputes.serializers import (
    DisputeCommentCreateSerializer,
    DisputeCommentSerializer,
    DisputeCreateSerializer,
    DisputeDetailSerializer,
    DisputeResolveSerializer,
    DisputeSerializer,
)
from disputes.services import DisputeService


class DisputeViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return DisputeService.disputes_for(self.request.user)

    def get_permissions(self):
        if self.action == "create":
            return [IsCustomer()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == "retrieve":
            return DisputeDetailSerializer
        return DisputeSerializer

    @extend_schema(
        operation_id="open_dispute",
        summary="Open a dispute",
        request=DisputeCreateSerializer,
        responses={201: DisputeSerializer},
        tags=["Disputes"],
    )
    def create(self, request):
        serializer = DisputeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = DisputeService.open_dispute(
            data["order_id"],
            customer=request.user,
            reason=data["reason"],
            description=data["description"],
            evidence=data["evidence"],
        )
        return service_response(result, DisputeSerializer, status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="comment_on_dispute",
        summary="Add a dispute comment",
        request=DisputeCommentCreateSerializer,
        responses={201: DisputeCommentSerializer},
        tags=["Disputes"],
    )
    @action(detail=True, methods=["post"])
    def comments(self, request, pk=None):
        serializer = DisputeCommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DisputeService.add_comment(pk, request.user, serializer.validated_data["body"])
        return service_response(result, DisputeCommentSerializer, status.HTTP_201_CREATED)


class AdminDisputeViewSet(viewsets.GenericViewSet):
    permission_classes = [IsAdmin]
    queryset = Dispute.objects.all()

    @extend_schema(
        operation_id="resolve_dispute",
        summary="Resolve a dispute",
        request=DisputeResolveSerializer,
        responses={200: DisputeSerializer},
        tags=["Admin - Disputes"],
    )
    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        serializer = DisputeResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = DisputeService.resolve(
            pk,
            request.user,
            data["resolution_type"],
            data["notes"],
            refund_amount=data["refund_amount"],
        )
        return service_response(result, DisputeSerializer)

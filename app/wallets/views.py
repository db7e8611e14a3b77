"""
Wallet API views.

Vendor endpoints:
    GET  /api/v1/wallet/                   - Wallet summary
    GET  /api/v1/wallet/transactions/      - Ledger history (type, date_from, date_to)
    GET  /api/v1/wallet/payouts/           - Own payouts
    POST /api/v1/wallet/payouts/           - Request a payout

Admin endpoints:
    GET  /api/v1/admin/payouts/                  - All payouts (filter by status)
    POST /api/v1/admin/payouts/{id}/process/     - PENDING -> PROCESSING
    POST /api/v1/admin/payouts/{id}/complete/    - PROCESSING -> COMPLETED
    POST /api/v1/admin/payouts/{id}/fail/        - PROCESSING -> FAILED
"""

from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action

from authentication.permissions import IsAdmin, IsVendor
from core.views import service_response
from wallets.filters import PayoutFilter, WalletTransactionFilter
from wallets.models import Payout, Wallet, WalletTransaction
from wallets.serializers import (
    PayoutCompleteSerializer,
    PayoutFailSerializer,
    PayoutRequestSerializer,
    PayoutSerializer,
    WalletSerializer,
    WalletTransactionSerializer,
)
from wallets.services import PayoutService


@extend_schema(
    operation_id="get_vendor_wallet",
    summary="Vendor wallet summary",
    tags=["Wallet"],
)
class WalletView(generics.RetrieveAPIView):
    permission_classes = [IsVendor]
    serializer_class = WalletSerializer

    def get_object(self):
        return get_object_or_404(
            Wallet.objects.select_related("vendor"), vendor=self.request.user.vendor
        )


@extend_schema(
    operation_id="list_wallet_transactions",
    summary="Wallet transaction history",
    description="Paginated ledger rows, newest first. Filter by type, date_from and date_to.",
    tags=["Wallet"],
)
class WalletTransactionListView(generics.ListAPIView):
    permission_classes = [IsVendor]
    serializer_class = WalletTransactionSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = WalletTransactionFilter

    def get_queryset(self):
        return WalletTransaction.objects.filter(
            wallet__vendor=self.request.user.vendor
        ).select_related("order")


class PayoutListCreateView(generics.ListAPIView):
    permission_classes = [IsVendor]
    serializer_class = PayoutSerializer

    def get_queryset(self):
        return Payout.objects.filter(wallet__vendor=self.request.user.vendor)

    @extend_schema(
        operation_id="request_payout",
        summary="Request a payout",
        request=PayoutRequestSerializer,
        responses={201: PayoutSerializer},
        tags=["Wallet"],
    )
    def post(self, request):
        serializer = PayoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PayoutService.request_payout(
            vendor=request.user.vendor, **serializer.validated_data
        )
        return service_response(result, PayoutSerializer, status.HTTP_201_CREATED)


class AdminPayoutViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsAdmin]
    serializer_class = PayoutSerializer
    queryset = Payout.objects.select_related("wallet__vendor")
    filter_backends = [DjangoFilterBackend]
    filterset_class = PayoutFilter

    @extend_schema(
        operation_id="process_payout",
        summary="Start processing a payout",
        request=None,
        tags=["Admin - Payouts"],
    )
    @action(detail=True, methods=["post"])
    def process(self, request, pk=None):
        result = PayoutService.process_payout(pk, request.user)
        return service_response(result, PayoutSerializer)

    @extend_schema(
        operation_id="complete_payout",
        summary="Mark a payout as completed",
        request=PayoutCompleteSerializer,
        tags=["Admin - Payouts"],
    )
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        serializer = PayoutCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PayoutService.complete_payout(
            pk, request.user, serializer.validated_data["transaction_reference"]
        )
        return service_response(result, PayoutSerializer)

    @extend_schema(
        operation_id="fail_payout",
        summary="Mark a payout as failed",
        request=PayoutFailSerializer,
        tags=["Admin - Payouts"],
    )
    @action(detail=True, methods=["post"])
    def fail(self, request, pk=None):
        serializer = PayoutFailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PayoutService.fail_payout(pk, request.user, serializer.validated_data["reason"])
        return service_response(result, PayoutSerializer)

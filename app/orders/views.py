"""
Order API views.

Customer endpoints:
    GET  /api/v1/orders/                          - Own orders (filter by status)
    POST /api/v1/orders/                          - Place an order (catalog-priced)
    GET  /api/v1/orders/{id}/                     - Detail with items and history
    POST /api/v1/orders/{id}/cancel/              - Cancel (24 h window)
    POST /api/v1/orders/{id}/confirm-delivery/    - Confirm delivery
    POST /api/v1/orders/{id}/status/              - Generic customer transition
    POST /api/v1/orders/{id}/request-return/      - Request a return (24 h window)
    GET  /api/v1/orders/{id}/actions/             - Available actions
    POST /api/v1/coupons/validate/                - Quote a coupon for a cart

Vendor endpoints:
    GET  /api/v1/vendor/order-items/              - Own order items
    POST /api/v1/vendor/order-items/{id}/status/  - PROCESSING / SHIPPED

Admin endpoints:
    POST /api/v1/admin/orders/{id}/status/          - Status override
    POST /api/v1/admin/orders/{id}/mark-delivered/  - Delivery (releases escrow)
"""

from collections import defaultdict

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.views import APIView

from authentication.permissions import IsAdmin, IsCustomer, IsVendor
from catalog.services import CatalogService
from core.money import ZERO, format_money
from core.views import service_response
from orders.filters import OrderFilter, OrderItemFilter
from orders.models import Order, OrderItem
from orders.serializers import (
    AdminMarkDeliveredSerializer,
    AdminStatusOverrideSerializer,
    CouponValidateSerializer,
    ItemStatusUpdateSerializer,
    OrderCancelSerializer,
    OrderCreateSerializer,
    OrderDetailSerializer,
    OrderReturnSerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
    VendorOrderItemSerializer,
)
from orders.services.coupon_service import CouponService
from orders.services.delivery import DeliveryService
from orders.services.order_creation import OrderCreationService
from orders.services.status_service import OrderStatusService
from orders.states import DeliveryTrigger


class OrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsCustomer]
    filter_backends = [DjangoFilterBackend]
    filterset_class = OrderFilter

    def get_queryset(self):
        qs = Order.objects.filter(customer=self.request.user).select_related("coupon")
        if self.action == "retrieve":
            qs = qs.prefetch_related("items__vendor", "status_history")
        return qs.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return OrderDetailSerializer
        return OrderSerializer

    @extend_schema(
        operation_id="create_order",
        summary="Place an order",
        request=OrderCreateSerializer,
        responses={201: OrderDetailSerializer},
        tags=["Orders"],
    )
    def create(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = OrderCreationService.place_order(
            customer=request.user,
            cart_lines=data["items"],
            shipping_address=data["shipping_address"],
            coupon_code=data["coupon_code"],
            notes=data["notes"],
        )
        return service_response(result, OrderDetailSerializer, status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="cancel_order",
        summary="Cancel an order",
        request=OrderCancelSerializer,
        responses={200: OrderSerializer},
        tags=["Orders"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = OrderCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = OrderStatusService.cancel_order(pk, request.user, serializer.validated_data["reason"])
        return service_response(result, OrderSerializer)

    @extend_schema(
        operation_id="confirm_order_delivery",
        summary="Confirm delivery",
        request=None,
        responses={200: OrderSerializer},
        tags=["Orders"],
    )
    @action(detail=True, methods=["post"], url_path="confirm-delivery")
    def confirm_delivery(self, request, pk=None):
        result = OrderStatusService.confirm_delivery(pk, request.user)
        return service_response(result, OrderSerializer)

    @extend_schema(
        operation_id="update_order_status",
        summary="Customer status transition",
        request=OrderStatusUpdateSerializer,
        responses={200: OrderSerializer},
        tags=["Orders"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = OrderStatusService.transition_order(
            pk,
            request.user,
            data["status"],
            reason=data["reason"],
            description=data["description"],
        )
        return service_response(result, OrderSerializer)

    @extend_schema(
        operation_id="request_order_return",
        summary="Request a return",
        request=OrderReturnSerializer,
        responses={200: OrderSerializer},
        tags=["Orders"],
    )
    @action(detail=True, methods=["post"], url_path="request-return")
    def request_return(self, request, pk=None):
        serializer = OrderReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = OrderStatusService.request_return(
            pk,
            request.user,
            serializer.validated_data["reason"],
            serializer.validated_data["description"],
        )
        return service_response(result, OrderSerializer)

    @extend_schema(
        operation_id="get_order_actions",
        summary="Available customer actions",
        tags=["Orders"],
    )
    @action(detail=True, methods=["get"], url_path="actions")
    def available_actions(self, request, pk=None):
        return service_response(OrderStatusService.get_available_actions(pk, request.user))


class VendorOrderItemViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsVendor]
    serializer_class = VendorOrderItemSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = OrderItemFilter

    def get_queryset(self):
        return (
            OrderItem.objects.filter(vendor=self.request.user.vendor)
            .select_related("order", "vendor")
            .order_by("-created_at")
        )

    @extend_schema(
        operation_id="update_order_item_status",
        summary="Advance an order item",
        request=ItemStatusUpdateSerializer,
        responses={200: VendorOrderItemSerializer},
        tags=["Vendor - Orders"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = ItemStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = OrderStatusService.update_item_status(
            pk, request.user.vendor, **serializer.validated_data
        )
        return service_response(result, VendorOrderItemSerializer)


class AdminOrderViewSet(viewsets.GenericViewSet):
    permission_classes = [IsAdmin]
    queryset = Order.objects.all()

    @extend_schema(
        operation_id="admin_override_order_status",
        summary="Override an order's status",
        request=AdminStatusOverrideSerializer,
        responses={200: OrderSerializer},
        tags=["Admin - Orders"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def override_status(self, request, pk=None):
        serializer = AdminStatusOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = OrderStatusService.admin_override(
            pk,
            request.user,
            serializer.validated_data["status"],
            serializer.validated_data["reason"],
        )
        return service_response(result, OrderSerializer)

    @extend_schema(
        operation_id="admin_mark_order_delivered",
        summary="Mark an order delivered",
        request=AdminMarkDeliveredSerializer,
        tags=["Admin - Orders"],
    )
    @action(detail=True, methods=["post"], url_path="mark-delivered")
    def mark_delivered(self, request, pk=None):
        serializer = AdminMarkDeliveredSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DeliveryService.mark_delivered(
            pk,
            DeliveryTrigger.ADMIN,
            actor=request.user,
            note=serializer.validated_data["note"],
        ).map(
            lambda outcome: {
                "order": OrderSerializer(outcome.order).data,
                "already_delivered": outcome.already_delivered,
                "message": outcome.message,
            }
        )
        return service_response(result)


class CouponValidateView(APIView):
    permission_classes = [IsCustomer]

    @extend_schema(
        operation_id="validate_coupon",
        summary="Quote a coupon for a cart",
        request=CouponValidateSerializer,
        tags=["Orders"],
    )
    def post(self, request):
        serializer = CouponValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        priced = CatalogService.price_lines(serializer.validated_data["items"])
        if not priced:
            return service_response(priced)

        vendor_subtotals = defaultdict(lambda: ZERO)
        for line in priced.data:
            vendor_subtotals[line["vendor_id"]] += line["unit_price"] * line["quantity"]

        result = CouponService.validate_coupon(
            serializer.validated_data["code"],
            request.user,
            sum(vendor_subtotals.values(), ZERO),
            dict(vendor_subtotals),
        ).map(
            lambda quote: {
                "code": quote.coupon.code,
                "type": quote.coupon.type,
                "value": format_money(quote.coupon.value),
                "eligible_subtotal": format_money(quote.eligible_subtotal),
                "discount": format_money(quote.discount),
            }
        )
        return service_response(result)

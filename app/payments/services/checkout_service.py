"""Checkout initiation: PayHere form fields for a pending order."""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService, ServiceResult
from orders.models import Order
from orders.states import OrderStatus
from payments.adapters import PayHereAdapter
from payments.models import Payment, PaymentStatus

if TYPE_CHECKING:
    from authentication.models import User


class CheckoutService(BaseService):

    @classmethod
    def initiate(cls, order_id, customer: User, notify_url: str) -> ServiceResult[dict]:
        """
        Build the gateway checkout form for an order.

        Creates the PENDING Payment row on first call; later calls reuse it.

        Error codes:
            ORDER_NOT_FOUND: No such order
            NOT_ORDER_OWNER: Order belongs to another customer
            INVALID_ORDER_STATUS: Order is no longer awaiting payment
        """
        order = Order.objects.select_related("customer").filter(pk=order_id).first()
        if order is None:
            return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")
        if order.customer_id != customer.pk:
            return ServiceResult.failure(
                "You can only pay for your own orders",
                error_code="NOT_ORDER_OWNER",
            )
        if order.status != OrderStatus.PENDING_PAYMENT:
            return ServiceResult.failure(
                f"Order is not awaiting payment (current: {order.status})",
                error_code="INVALID_ORDER_STATUS",
            )

        payment, created = Payment.objects.get_or_create(
            order=order,
            defaults={
                "amount": order.total,
                "currency": settings.PAYHERE_CURRENCY,
                "status": PaymentStatus.PENDING,
            },
        )
        if created:
            cls.get_logger().info(
                "Payment initiated",
                extra={"order_id": str(order.id), "order_number": order.order_number},
            )

        fields = PayHereAdapter.checkout_fields(order, notify_url)
        return ServiceResult.success({"payment_id": str(payment.pk), "checkout": fields})

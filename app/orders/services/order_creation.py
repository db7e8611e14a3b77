"""
Order creation.

Builds an Order and its items from checkout lines in one transaction:
pricing, coupon redemption, address snapshot, order number and the
initial "Order created" history row.

place_order is the customer entry point: it prices the cart through
catalog.services.CatalogService so unit prices and snapshots never come
from the client. create_order takes lines that are already priced:
    {
        "vendor_id": 3,
        "product_id": "prod_123",
        "variant_id": "",
        "product_name": "Handloom saree",
        "product_snapshot": {"name": ..., "image": ..., "sku": ...},
        "variant_snapshot": None,
        "unit_price": Decimal("500.00"),
        "quantity": 2,
    }
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from authentication.models import Vendor
from catalog.services import CatalogService
from core.money import ZERO, format_money, to_money
from core.services import BaseService, ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService
from orders.models import Coupon, CouponUsage, Order, OrderItem
from orders.services.coupon_service import CouponService
from orders.services.history import record_history
from orders.states import ActorRole, ItemStatus, OrderStatus

if TYPE_CHECKING:
    from decimal import Decimal
    from typing import Any

    from authentication.models import User

ORDER_NUMBER_ATTEMPTS = 5


class OrderCreationService(BaseService):

    @classmethod
    def next_order_number(cls, attempt: int = 0) -> str:
        """
        <PREFIX>-YYYYMMDD-NNN where NNN is today's order count plus one.

        attempt is added on retries after a unique collision.
        """
        today = timezone.localdate()
        prefix = f"{settings.ORDER_NUMBER_PREFIX}-{today:%Y%m%d}-"
        count = Order.objects.filter(order_number__startswith=prefix).count()
        return f"{prefix}{count + 1 + attempt:03d}"

    @classmethod
    def place_order(
        cls,
        customer: User,
        cart_lines: list[dict[str, Any]],
        shipping_address: dict[str, Any],
        coupon_code: str = "",
        notes: str = "",
    ) -> ServiceResult[Order]:
        """
        Customer checkout: price the cart from the catalog, then create_order.

        cart_lines carry only product_id, optional variant_id and quantity.
        Shipping is the flat ORDER_FLAT_SHIPPING_FEE.

        Error codes:
            EMPTY_ORDER, PRODUCT_UNAVAILABLE, VARIANT_UNAVAILABLE, plus those
            of create_order
        """
        if not cart_lines:
            return ServiceResult.failure("Order must contain at least one item", "EMPTY_ORDER")

        priced = CatalogService.price_lines(cart_lines)
        if not priced:
            return priced

        return cls.create_order(
            customer=customer,
            lines=priced.data,
            shipping_address=shipping_address,
            coupon_code=coupon_code,
            shipping_amount=settings.ORDER_FLAT_SHIPPING_FEE,
            notes=notes,
        )

    @classmethod
    def create_order(
        cls,
        customer: User,
        lines: list[dict[str, Any]],
        shipping_address: dict[str, Any],
        coupon_code: str = "",
        shipping_amount: Decimal = ZERO,
        notes: str = "",
    ) -> ServiceResult[Order]:
        """
        Create a PENDING_PAYMENT order.

        Error codes:
            EMPTY_ORDER: No lines
            VENDOR_NOT_FOUND: A line references a missing or inactive vendor
            INVALID_COUPON: Coupon failed validation (error has the reason)
        """
        logger = cls.get_logger()
        if not lines:
            return ServiceResult.failure("Order must contain at least one item", "EMPTY_ORDER")

        vendor_ids = {line["vendor_id"] for line in lines}
        vendors = Vendor.objects.in_bulk(vendor_ids)
        missing = [v for v in vendor_ids if v not in vendors or not vendors[v].is_active]
        if missing:
            return ServiceResult.failure(
                "One or more vendors are unavailable",
                error_code="VENDOR_NOT_FOUND",
            )

        vendor_subtotals: dict[Any, Decimal] = defaultdict(lambda: ZERO)
        for line in lines:
            vendor_subtotals[line["vendor_id"]] += to_money(line["unit_price"]) * line["quantity"]
        subtotal = sum(vendor_subtotals.values(), ZERO)
        shipping_amount = to_money(shipping_amount)

        with transaction.atomic():
            coupon: Coupon | None = None
            discount = ZERO
            if coupon_code:
                quote = CouponService.validate_coupon(
                    coupon_code,
                    customer,
                    subtotal,
                    dict(vendor_subtotals),
                    lock=True,
                )
                if not quote:
                    return quote
                coupon = quote.data.coupon
                discount = quote.data.discount

            order = cls._create_with_unique_number(
                customer=customer,
                status=OrderStatus.PENDING_PAYMENT,
                subtotal=subtotal,
                discount=discount,
                shipping=shipping_amount,
                total=subtotal - discount + shipping_amount,
                coupon=coupon,
                shipping_address=dict(shipping_address),
                notes=notes,
            )

            for line in lines:
                OrderItem.objects.create(
                    order=order,
                    vendor=vendors[line["vendor_id"]],
                    product_id=line["product_id"],
                    variant_id=line.get("variant_id") or "",
                    product_name=line["product_name"],
                    product_snapshot=line.get("product_snapshot") or {},
                    variant_snapshot=line.get("variant_snapshot"),
                    quantity=line["quantity"],
                    unit_price=to_money(line["unit_price"]),
                    status=ItemStatus.PENDING_PAYMENT,
                )

            if coupon is not None:
                CouponUsage.objects.create(
                    coupon=coupon,
                    customer=customer,
                    order=order,
                    discount_amount=discount,
                )
                Coupon.objects.filter(pk=coupon.pk).update(usage_count=F("usage_count") + 1)

            record_history(
                order,
                OrderStatus.PENDING_PAYMENT,
                note="Order created",
                actor_role=ActorRole.CUSTOMER,
                actor=customer,
            )

            transaction.on_commit(
                lambda: NotificationService.notify_best_effort(
                    recipient=customer,
                    notification_type=NotificationType.ORDER_PLACED,
                    title="Order placed",
                    message=(
                        f"Your order {order.order_number} for {format_money(order.total)} "
                        "is awaiting payment."
                    ),
                    link=f"{settings.FRONTEND_URL}/orders/{order.id}",
                    metadata={"order_id": str(order.id), "order_number": order.order_number},
                )
            )

        logger.info(
            "Order created",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "customer_id": customer.pk,
                "items": len(lines),
                "total": format_money(order.total),
                "coupon": coupon.code if coupon else None,
            },
        )
        return ServiceResult.success(order)

    @classmethod
    def _create_with_unique_number(cls, **fields: Any) -> Order:
        """Insert the order, retrying inside a savepoint on number collisions."""
        for attempt in range(ORDER_NUMBER_ATTEMPTS):
            order_number = cls.next_order_number(attempt)
            try:
                with transaction.atomic():
                    return Order.objects.create(order_number=order_number, **fields)
            except IntegrityError:
                if Order.objects.filter(order_number=order_number).exists():
                    cls.get_logger().warning(
                        "Order number collision, retrying",
                        extra={"order_number": order_number, "attempt": attempt + 1},
                    )
                    continue
                raise
        raise IntegrityError("Could not allocate a unique order number")

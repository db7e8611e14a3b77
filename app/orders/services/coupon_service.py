"""
Coupon validation and discount calculation.

A coupon is checked in this order: exists, active, started, not expired,
global usage limit, per-customer limit, minimum order amount, vendor
scope. The first failing check's message is returned.

Usage:
    result = CouponService.validate_coupon(
        code="SAVE10",
        customer=request.user,
        subtotal=Decimal("1000.00"),
        vendor_subtotals={vendor.id: Decimal("1000.00")},
    )
    if result:
        discount = result.data.discount
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.utils import timezone

from core.money import ZERO, format_money, to_money
from core.services import BaseService, ServiceResult
from orders.models import Coupon, CouponType, CouponUsage

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from typing import Any

    from authentication.models import User


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    eligible_subtotal: Decimal
    discount: Decimal


def calculate_discount(
    eligible_subtotal: Decimal,
    coupon_type: str,
    value: Decimal,
    max_discount: Decimal | None = None,
) -> Decimal:
    """
    Discount for a subtotal.

    FLAT takes the value as-is; PERCENTAGE takes value percent of the
    subtotal, capped by max_discount. The result never exceeds the
    subtotal it applies to.
    """
    if coupon_type == CouponType.PERCENTAGE:
        discount = to_money(eligible_subtotal * value / Decimal("100"))
        if max_discount is not None:
            discount = min(discount, to_money(max_discount))
    else:
        discount = to_money(value)
    return max(min(discount, to_money(eligible_subtotal)), ZERO)


class CouponService(BaseService):

    @classmethod
    def validate_coupon(
        cls,
        code: str,
        customer: User,
        subtotal: Decimal,
        vendor_subtotals: Mapping[Any, Decimal],
        lock: bool = False,
        now: datetime | None = None,
    ) -> ServiceResult[CouponQuote]:
        """
        Validate a coupon for a customer's cart and quote the discount.

        Args:
            code: Coupon code (case-insensitive)
            customer: Buyer
            subtotal: Cart subtotal, used for the minimum order check
            vendor_subtotals: Subtotal per vendor id, used for vendor scope
            lock: Lock the coupon row (order creation passes True)

        Error codes:
            INVALID_COUPON: Any failed check; error carries the reason
        """
        now = now or timezone.now()
        queryset = Coupon.objects.select_for_update() if lock else Coupon.objects
        coupon = queryset.filter(code=(code or "").strip().upper()).first()

        def invalid(message: str) -> ServiceResult[CouponQuote]:
            return ServiceResult.failure(message, error_code="INVALID_COUPON")

        if coupon is None:
            return invalid("Invalid coupon code")
        if not coupon.is_active:
            return invalid("This coupon is no longer active")
        if now < coupon.valid_from:
            return invalid("This coupon is not yet valid")
        if now > coupon.valid_until:
            return invalid("This coupon has expired")
        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            return invalid("This coupon has reached its usage limit")

        used = CouponUsage.objects.filter(coupon=coupon, customer=customer).count()
        if used >= coupon.per_customer_limit:
            return invalid("You have already used this coupon")

        if subtotal < coupon.min_order_amount:
            return invalid(f"Minimum order amount is {format_money(coupon.min_order_amount)}")

        eligible = to_money(subtotal)
        if coupon.vendor_id is not None:
            if coupon.vendor_id not in vendor_subtotals:
                return invalid("This coupon is only valid for specific vendor products")
            eligible = to_money(vendor_subtotals[coupon.vendor_id])

        discount = calculate_discount(eligible, coupon.type, coupon.value, coupon.max_discount)
        return ServiceResult.success(
            CouponQuote(coupon=coupon, eligible_subtotal=eligible, discount=discount)
        )

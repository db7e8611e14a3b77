"""
Tests for OrderCreationService and CouponService.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from freezegun import freeze_time

from authentication.tests.factories import CustomerFactory, VendorFactory
from catalog.tests.factories import ProductFactory
from notifications.models import Notification, NotificationType
from orders.models import Coupon, CouponType, CouponUsage, Order
from orders.services.coupon_service import CouponService, calculate_discount
from orders.services.order_creation import OrderCreationService
from orders.states import ItemStatus, OrderStatus
from orders.tests.factories import CouponFactory, create_order

ADDRESS = {
    "full_name": "Kamala Silva",
    "phone": "0712345678",
    "address_line1": "45 Temple Road",
    "city": "Kandy",
    "country": "Sri Lanka",
}


def line(vendor, unit_price, quantity=1, product_id="prod_1"):
    return {
        "vendor_id": vendor.pk,
        "product_id": product_id,
        "product_name": f"Product {product_id}",
        "product_snapshot": {"name": f"Product {product_id}", "sku": product_id.upper()},
        "unit_price": Decimal(unit_price),
        "quantity": quantity,
    }


@pytest.mark.django_db
class TestCreateOrder:

    def test_creates_pending_order(self, customer, vendor, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = OrderCreationService.create_order(
                customer,
                [line(vendor, "250.00", 2, "prod_a"), line(vendor, "500.00", 1, "prod_b")],
                ADDRESS,
                shipping_amount=Decimal("350.00"),
                notes="Leave at the gate",
            )

        assert result.success
        order = result.data
        assert order.status == OrderStatus.PENDING_PAYMENT
        assert order.subtotal == Decimal("1000.00")
        assert order.shipping == Decimal("350.00")
        assert order.total == Decimal("1350.00")
        assert order.shipping_address == ADDRESS
        assert order.notes == "Leave at the gate"

        items = list(order.items.order_by("product_id"))
        assert [i.line_total for i in items] == [Decimal("500.00"), Decimal("500.00")]
        assert {i.status for i in items} == {ItemStatus.PENDING_PAYMENT}
        assert items[0].product_snapshot == {"name": "Product prod_a", "sku": "PROD_A"}

        history = order.status_history.get()
        assert history.note == "Order created"
        assert history.status == OrderStatus.PENDING_PAYMENT
        assert Notification.objects.filter(
            recipient=customer, type=NotificationType.ORDER_PLACED
        ).exists()

    @freeze_time("2026-05-04 09:30:00")
    def test_order_numbers_are_sequential_per_day(self, customer, vendor, settings):
        settings.ORDER_NUMBER_PREFIX = "LK"

        first = OrderCreationService.create_order(customer, [line(vendor, "100.00")], ADDRESS)
        second = OrderCreationService.create_order(customer, [line(vendor, "100.00")], ADDRESS)

        assert first.data.order_number == "LK-20260504-001"
        assert second.data.order_number == "LK-20260504-002"

    def test_empty_order(self, customer):
        result = OrderCreationService.create_order(customer, [], ADDRESS)

        assert result.error_code == "EMPTY_ORDER"

    def test_inactive_vendor(self, customer):
        vendor = VendorFactory(is_active=False)

        result = OrderCreationService.create_order(customer, [line(vendor, "100.00")], ADDRESS)

        assert result.error_code == "VENDOR_NOT_FOUND"

    def test_coupon_is_redeemed(self, customer, vendor):
        coupon = CouponFactory(code="WELCOME", type=CouponType.PERCENTAGE, value=Decimal("10"))

        result = OrderCreationService.create_order(
            customer, [line(vendor, "800.00")], ADDRESS, coupon_code="welcome"
        )

        assert result.success
        order = result.data
        assert order.coupon == coupon
        assert order.discount == Decimal("80.00")
        assert order.total == Decimal("720.00")
        usage = CouponUsage.objects.get(order=order)
        assert usage.discount_amount == Decimal("80.00")
        coupon.refresh_from_db()
        assert coupon.usage_count == 1

    def test_invalid_coupon_creates_nothing(self, customer, vendor):
        result = OrderCreationService.create_order(
            customer, [line(vendor, "800.00")], ADDRESS, coupon_code="NOPE"
        )

        assert result.error_code == "INVALID_COUPON"
        assert result.error == "Invalid coupon code"
        assert not customer.orders.exists()


@pytest.mark.django_db
class TestPlaceOrder:

    def test_prices_cart_from_catalog(self, customer, vendor, settings):
        settings.ORDER_FLAT_SHIPPING_FEE = Decimal("200.00")
        product = ProductFactory(vendor=vendor, name="Clay pot", price=Decimal("450.00"))

        result = OrderCreationService.place_order(
            customer,
            [{"product_id": product.pk, "variant_id": None, "quantity": 2}],
            ADDRESS,
        )

        assert result.success
        order = result.data
        assert order.subtotal == Decimal("900.00")
        assert order.shipping == Decimal("200.00")
        assert order.total == Decimal("1100.00")
        item = order.items.get()
        assert item.vendor == vendor
        assert item.product_id == str(product.pk)
        assert item.unit_price == Decimal("450.00")
        assert item.product_snapshot["unit_price"] == "450.00"

    def test_empty_cart(self, customer):
        result = OrderCreationService.place_order(customer, [], ADDRESS)

        assert result.error_code == "EMPTY_ORDER"

    def test_unavailable_product_creates_nothing(self, customer, vendor):
        product = ProductFactory(vendor=vendor, is_active=False)

        result = OrderCreationService.place_order(
            customer,
            [{"product_id": product.pk, "variant_id": None, "quantity": 1}],
            ADDRESS,
        )

        assert result.error_code == "PRODUCT_UNAVAILABLE"
        assert not Order.objects.exists()


@pytest.mark.django_db
class TestValidateCoupon:

    def quote(self, code, customer, subtotal="1000.00", vendor_subtotals=None):
        subtotal = Decimal(subtotal)
        return CouponService.validate_coupon(code, customer, subtotal, vendor_subtotals or {})

    def test_flat_discount(self, customer):
        CouponFactory(code="FLAT100")

        result = self.quote("flat100", customer)

        assert result.success
        assert result.data.discount == Decimal("100.00")
        assert result.data.eligible_subtotal == Decimal("1000.00")

    @pytest.mark.parametrize(
        ("changes", "message"),
        [
            ({"is_active": False}, "This coupon is no longer active"),
            ({"valid_from_days": 2}, "This coupon is not yet valid"),
            ({"valid_until_days": -1}, "This coupon has expired"),
            ({"usage_limit": 5, "usage_count": 5}, "This coupon has reached its usage limit"),
            ({"min_order_amount": Decimal("1500.00")}, "Minimum order amount is 1500.00"),
        ],
    )
    def test_rejections(self, customer, changes, message):
        changes = dict(changes)
        now = timezone.now()
        if "valid_from_days" in changes:
            changes["valid_from"] = now + timedelta(days=changes.pop("valid_from_days"))
        if "valid_until_days" in changes:
            changes["valid_until"] = now + timedelta(days=changes.pop("valid_until_days"))
        CouponFactory(code="CHECKME", **changes)

        result = self.quote("CHECKME", customer)

        assert result.error_code == "INVALID_COUPON"
        assert result.error == message

    def test_per_customer_limit(self, customer, vendor):
        coupon = CouponFactory(code="ONCE")
        order = create_order(customer=customer, lines=[(vendor, Decimal("1000.00"), 1)])
        CouponUsage.objects.create(
            coupon=coupon, customer=customer, order=order, discount_amount=Decimal("100.00")
        )

        assert self.quote("ONCE", customer).error == "You have already used this coupon"
        assert self.quote("ONCE", CustomerFactory()).success

    def test_vendor_scoped_coupon(self, customer, vendor):
        other = VendorFactory()
        CouponFactory(
            code="VENDOR20",
            type=CouponType.PERCENTAGE,
            value=Decimal("20"),
            vendor=vendor,
        )

        outside = self.quote("VENDOR20", customer, "300.00", {other.pk: Decimal("300.00")})
        inside = self.quote(
            "VENDOR20",
            customer,
            "800.00",
            {vendor.pk: Decimal("500.00"), other.pk: Decimal("300.00")},
        )

        assert outside.error == "This coupon is only valid for specific vendor products"
        assert inside.data.eligible_subtotal == Decimal("500.00")
        assert inside.data.discount == Decimal("100.00")


class TestCalculateDiscount:

    def test_percentage_is_capped(self):
        discount = calculate_discount(
            Decimal("5000.00"), CouponType.PERCENTAGE, Decimal("15"), Decimal("500.00")
        )

        assert discount == Decimal("500.00")

    def test_flat_never_exceeds_subtotal(self):
        assert calculate_discount(Decimal("80.00"), CouponType.FLAT, Decimal("100.00")) == Decimal("80.00")

    def test_percentage_rounds_to_cents(self):
        assert calculate_discount(Decimal("99.99"), CouponType.PERCENTAGE, Decimal("12.5")) == Decimal("12.50")


@pytest.mark.django_db
class TestCouponModel:

    def test_code_is_normalised(self):
        coupon = CouponFactory(code="  summer25 ")

        assert Coupon.objects.get(pk=coupon.pk).code == "SUMMER25"

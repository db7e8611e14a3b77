"""
Tests for CatalogService.price_lines.
"""

import uuid
from decimal import Decimal

import pytest

from authentication.models import Vendor
from catalog.services import CatalogService
from catalog.tests.factories import ProductFactory, ProductVariantFactory


def cart_line(product, quantity=1, variant=None):
    return {
        "product_id": product.pk,
        "variant_id": variant.pk if variant else None,
        "quantity": quantity,
    }


@pytest.mark.django_db
class TestPriceLines:
    def test_prices_from_catalog(self, vendor):
        product = ProductFactory(vendor=vendor, name="Clay pot", sku="POT-1", price=Decimal("450.00"))

        result = CatalogService.price_lines([cart_line(product, quantity=2)])

        assert result.success
        [line] = result.data
        assert line["vendor_id"] == vendor.pk
        assert line["product_id"] == str(product.pk)
        assert line["variant_id"] == ""
        assert line["product_name"] == "Clay pot"
        assert line["unit_price"] == Decimal("450.00")
        assert line["quantity"] == 2
        assert line["product_snapshot"]["sku"] == "POT-1"
        assert line["product_snapshot"]["unit_price"] == "450.00"
        assert line["variant_snapshot"] is None

    def test_variant_price_overrides_product(self, vendor):
        product = ProductFactory(vendor=vendor, price=Decimal("450.00"))
        variant = ProductVariantFactory(
            product=product,
            name="Large",
            attributes={"size": "L"},
            price=Decimal("600.00"),
        )

        result = CatalogService.price_lines([cart_line(product, variant=variant)])

        assert result.success
        [line] = result.data
        assert line["unit_price"] == Decimal("600.00")
        assert line["variant_id"] == str(variant.pk)
        assert line["variant_snapshot"]["attributes"] == {"size": "L"}

    def test_variant_without_price_uses_product_price(self, vendor):
        product = ProductFactory(vendor=vendor, price=Decimal("450.00"))
        variant = ProductVariantFactory(product=product)

        result = CatalogService.price_lines([cart_line(product, variant=variant)])

        assert result.data[0]["unit_price"] == Decimal("450.00")

    def test_unknown_product(self):
        result = CatalogService.price_lines(
            [{"product_id": uuid.uuid4(), "variant_id": None, "quantity": 1}]
        )

        assert not result.success
        assert result.error_code == "PRODUCT_UNAVAILABLE"

    def test_inactive_product(self, vendor):
        product = ProductFactory(vendor=vendor, is_active=False)

        result = CatalogService.price_lines([cart_line(product)])

        assert result.error_code == "PRODUCT_UNAVAILABLE"

    def test_suspended_vendor(self, vendor):
        product = ProductFactory(vendor=vendor)
        Vendor.objects.filter(pk=vendor.pk).update(is_active=False)

        result = CatalogService.price_lines([cart_line(product)])

        assert result.error_code == "PRODUCT_UNAVAILABLE"

    def test_variant_of_another_product(self, vendor):
        product = ProductFactory(vendor=vendor)
        other_variant = ProductVariantFactory(product=ProductFactory(vendor=vendor))

        result = CatalogService.price_lines([cart_line(product, variant=other_variant)])

        assert result.error_code == "VARIANT_UNAVAILABLE"

    def test_inactive_variant(self, vendor):
        product = ProductFactory(vendor=vendor)
        variant = ProductVariantFactory(product=product, is_active=False)

        result = CatalogService.price_lines([cart_line(product, variant=variant)])

        assert result.error_code == "VARIANT_UNAVAILABLE"

"""
Factory Boy factories for catalog models.

Usage:
    from catalog.tests.factories import ProductFactory, ProductVariantFactory

    pot = ProductFactory(vendor=vendor, name="Clay pot", price=Decimal("450.00"))
    large = ProductVariantFactory(product=pot, price=Decimal("600.00"))
"""

from decimal import Decimal

import factory

from authentication.tests.factories import VendorFactory
from catalog.models import Product, ProductVariant


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Product
        skip_postgeneration_save = True

    vendor = factory.SubFactory(VendorFactory)
    name = factory.Sequence(lambda n: f"Product {n}")
    sku = factory.Sequence(lambda n: f"SKU-{n:04d}")
    image_url = "https://cdn.example.com/products/item.jpg"
    price = Decimal("1000.00")
    is_active = True


class ProductVariantFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ProductVariant
        skip_postgeneration_save = True

    product = factory.SubFactory(ProductFactory)
    name = "Large"
    sku = factory.Sequence(lambda n: f"SKU-V{n:04d}")
    attributes = factory.LazyFunction(lambda: {"size": "L"})
    price = None
    is_active = True

"""
Catalog models.

Product:
    A vendor's sellable product with its current price. Inactive products
    stay in the table so past order snapshots keep their product_id.

ProductVariant:
    A size/colour option of a product. A variant without its own price
    sells at the product price.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from core.money import MoneyField


class Product(UUIDPrimaryKeyMixin, BaseModel):
    vendor = models.ForeignKey(
        "authentication.Vendor",
        on_delete=models.PROTECT,
        related_name="products",
    )
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, blank=True, verbose_name="SKU")
    image_url = models.URLField(max_length=500, blank=True)
    price = MoneyField(help_text="Current unit price charged at checkout")
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        db_table = "catalog_products"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name="product_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class ProductVariant(UUIDPrimaryKeyMixin, BaseModel):
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="variants",
    )
    name = models.CharField(max_length=100, help_text="e.g. 'Large / Red'")
    sku = models.CharField(max_length=100, blank=True, verbose_name="SKU")
    attributes = models.JSONField(default=dict, blank=True)
    price = MoneyField(
        null=True,
        blank=True,
        default=None,
        help_text="Overrides the product price when set",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "catalog_product_variants"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__isnull=True) | models.Q(price__gte=0),
                name="variant_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product.name} ({self.name})"

    @property
    def unit_price(self) -> Decimal:
        return self.product.price if self.price is None else self.price

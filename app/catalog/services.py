"""
Server-side pricing of cart lines.

CatalogService.price_lines turns what the client may send (product,
optional variant, quantity) into the priced, snapshotted lines that
OrderCreationService.create_order stores. Prices, names and SKUs are read
from the catalog at call time.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog.models import Product, ProductVariant
from core.money import format_money
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from typing import Any


class CatalogService(BaseService):

    @classmethod
    def price_lines(cls, lines: list[dict[str, Any]]) -> ServiceResult[list[dict[str, Any]]]:
        """
        Resolve cart lines to priced order lines.

        Args:
            lines: [{"product_id": UUID, "variant_id": UUID | None, "quantity": int}]

        Error codes:
            PRODUCT_UNAVAILABLE: Unknown or inactive product, or inactive vendor
            VARIANT_UNAVAILABLE: Unknown or inactive variant, or a variant of
                another product
        """
        products = Product.objects.select_related("vendor").in_bulk(
            {line["product_id"] for line in lines}
        )
        variant_ids = {line["variant_id"] for line in lines if line.get("variant_id")}
        variants = ProductVariant.objects.in_bulk(variant_ids) if variant_ids else {}

        priced = []
        for line in lines:
            product = products.get(line["product_id"])
            if product is None or not product.is_active or not product.vendor.is_active:
                cls.get_logger().info(
                    "Cart line references an unavailable product",
                    extra={"product_id": str(line["product_id"])},
                )
                return ServiceResult.failure(
                    "One or more products are unavailable",
                    error_code="PRODUCT_UNAVAILABLE",
                )

            variant = None
            if line.get("variant_id"):
                variant = variants.get(line["variant_id"])
                if variant is None or not variant.is_active or variant.product_id != product.pk:
                    return ServiceResult.failure(
                        "One or more product variants are unavailable",
                        error_code="VARIANT_UNAVAILABLE",
                    )

            unit_price = variant.unit_price if variant else product.price
            priced.append(
                {
                    "vendor_id": product.vendor_id,
                    "product_id": str(product.pk),
                    "variant_id": str(variant.pk) if variant else "",
                    "product_name": product.name,
                    "product_snapshot": {
                        "name": product.name,
                        "image": product.image_url,
                        "sku": product.sku,
                        "unit_price": format_money(unit_price),
                    },
                    "variant_snapshot": (
                        {"name": variant.name, "sku": variant.sku, "attributes": variant.attributes}
                        if variant
                        else None
                    ),
                    "unit_price": unit_price,
                    "quantity": line["quantity"],
                }
            )
        return ServiceResult.success(priced)

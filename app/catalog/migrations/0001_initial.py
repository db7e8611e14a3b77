import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


def uuid_pk():
    return models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier (UUID v4)",
        primary_key=True,
        serialize=False,
    )


def timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"),
        ),
        ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("authentication", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", uuid_pk()),
                *timestamps(),
                ("name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, max_length=100, verbose_name="SKU")),
                ("image_url", models.URLField(blank=True, max_length=500)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Current unit price charged at checkout",
                        max_digits=12,
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="products",
                        to="authentication.vendor",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_products",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("price__gte", 0)),
                        name="product_price_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductVariant",
            fields=[
                ("id", uuid_pk()),
                *timestamps(),
                ("name", models.CharField(help_text="e.g. 'Large / Red'", max_length=100)),
                ("sku", models.CharField(blank=True, max_length=100, verbose_name="SKU")),
                ("attributes", models.JSONField(blank=True, default=dict)),
                (
                    "price",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        default=None,
                        help_text="Overrides the product price when set",
                        max_digits=12,
                        null=True,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variants",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_product_variants",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("price__isnull", True), ("price__gte", 0), _connector="OR"),
                        name="variant_price_non_negative",
                    ),
                ],
            },
        ),
    ]

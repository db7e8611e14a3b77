import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("ORDER_PLACED", "Order placed"),
                            ("NEW_ORDER", "New order (vendor)"),
                            ("PAYMENT_CONFIRMED", "Payment confirmed"),
                            ("PAYMENT_FAILED", "Payment failed"),
                            ("ORDER_STATUS_CHANGED", "Order status changed"),
                            ("ORDER_DELIVERED", "Order delivered"),
                            ("ORDER_CANCELLED", "Order cancelled"),
                            ("RETURN_REQUESTED", "Return requested"),
                            ("DISPUTE_OPENED", "Dispute opened"),
                            ("DISPUTE_COMMENT", "Dispute comment"),
                            ("DISPUTE_RESOLVED", "Dispute resolved"),
                            ("REFUND_PROCESSED", "Refund processed"),
                            ("PAYOUT_UPDATE", "Payout update"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                ("title", models.CharField(max_length=200)),
                ("message", models.TextField(blank=True, default="")),
                ("link", models.CharField(blank=True, default="", max_length=500)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("is_read", models.BooleanField(db_index=True, default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "is_read", "-created_at"], name="notification_inbox_idx"),
                ],
            },
        ),
    ]

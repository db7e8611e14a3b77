"""
Payments app configuration.

This app provides:
- PayHere checkout initiation and payment notifications (webhook)
- Gateway refunds for cancellations and dispute resolutions
- DistributedLock for work that runs outside a database transaction
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

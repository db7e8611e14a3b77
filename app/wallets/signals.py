"""
Wallet provisioning signal.

A vendor gets its wallet at onboarding, so the fund movement engine can
always lock an existing row instead of racing to create one.
"""

import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from authentication.models import Vendor
from wallets.models import Wallet

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Vendor)
def create_vendor_wallet(sender, instance, created, **kwargs):
    """Create the Wallet for a newly onboarded vendor."""
    if not created:
        return

    wallet, wallet_created = Wallet.objects.get_or_create(vendor=instance)
    if wallet_created:
        logger.info(
            "Wallet created for vendor",
            extra={"vendor_id": instance.pk, "wallet_id": str(wallet.id)},
        )

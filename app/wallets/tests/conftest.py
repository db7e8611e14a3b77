"""
Fixtures for wallet tests.
"""

from decimal import Decimal

import pytest

from orders.services.delivery import DeliveryService
from orders.states import DeliveryTrigger
from orders.tests.factories import create_order, pay_order, ship_order


@pytest.fixture
def funded_vendor(customer, vendor):
    """Vendor with 4500.00 available from a delivered 5000.00 order."""
    order = ship_order(pay_order(create_order(customer=customer, lines=[(vendor, Decimal("5000.00"), 1)])))
    DeliveryService.mark_delivered(order.pk, DeliveryTrigger.ADMIN)
    vendor.wallet.refresh_from_db()
    return vendor


@pytest.fixture
def bank_details():
    return {
        "bank_name": "Commercial Bank",
        "account_number": "8001234567",
        "account_holder_name": "Shop Owner",
        "branch_code": "012",
    }

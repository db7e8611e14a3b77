"""
Pytest fixtures for payment tests.

PayHere credentials are fixed test values so notification signatures can
be computed with the real adapter.

Usage:
    def test_completed(payhere_settings, pending_order, notification):
        payload = notification(pending_order, status_code="2")
"""

import pytest

from core.money import format_money
from payments.adapters import PayHereAdapter

MERCHANT_ID = "1211149"
MERCHANT_SECRET = "test-merchant-secret"


@pytest.fixture
def payhere_settings(settings):
    settings.PAYHERE_MERCHANT_ID = MERCHANT_ID
    settings.PAYHERE_MERCHANT_SECRET = MERCHANT_SECRET
    settings.PAYHERE_CURRENCY = "LKR"
    settings.PAYHERE_SANDBOX = True
    return settings


@pytest.fixture
def notification(payhere_settings):
    """
    Build a correctly signed PayHere notification for an order.

    Keyword overrides are applied before signing, except md5sig which
    replaces the computed signature.
    """

    def build(order, status_code="2", **overrides):
        payload = {
            "merchant_id": MERCHANT_ID,
            "order_id": order.order_number,
            "payment_id": "320025071234",
            "payhere_amount": format_money(order.total),
            "payhere_currency": "LKR",
            "status_code": status_code,
            "method": "VISA",
            "status_message": "",
            "card_no": "************1292",
        }
        md5sig = overrides.pop("md5sig", None)
        payload.update(overrides)
        payload["md5sig"] = md5sig or PayHereAdapter.notification_signature(payload)
        return payload

    return build

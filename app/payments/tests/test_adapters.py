"""
Tests for the PayHere adapter: signatures, status mapping and refunds.
"""

import hashlib
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from payments.adapters import PayHereAdapter
from payments.exceptions import GatewayError
from payments.models import PaymentStatus
from payments.tests.conftest import MERCHANT_ID, MERCHANT_SECRET


def md5_upper(value):
    return hashlib.md5(value.encode()).hexdigest().upper()


def api_response(body=None, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response


class TestSignatures:

    def test_checkout_hash(self, payhere_settings):
        expected = md5_upper(f"{MERCHANT_ID}ORD-20260101-0011000.00LKR{md5_upper(MERCHANT_SECRET)}")

        assert PayHereAdapter.checkout_hash("ORD-20260101-001", Decimal("1000"), "LKR") == expected

    def test_notification_roundtrip(self, payhere_settings):
        payload = {
            "merchant_id": MERCHANT_ID,
            "order_id": "ORD-20260101-001",
            "payhere_amount": "1000.00",
            "payhere_currency": "LKR",
            "status_code": "2",
        }
        payload["md5sig"] = md5_upper(
            f"{MERCHANT_ID}ORD-20260101-0011000.00LKR2{md5_upper(MERCHANT_SECRET)}"
        )

        assert PayHereAdapter.verify_notification(payload)

    def test_tampered_amount_fails(self, payhere_settings):
        payload = {
            "merchant_id": MERCHANT_ID,
            "order_id": "ORD-20260101-001",
            "payhere_amount": "1000.00",
            "payhere_currency": "LKR",
            "status_code": "2",
        }
        payload["md5sig"] = PayHereAdapter.notification_signature(payload)
        payload["payhere_amount"] = "1.00"

        assert not PayHereAdapter.verify_notification(payload)

    def test_lowercase_signature_is_accepted(self, payhere_settings):
        payload = {
            "merchant_id": MERCHANT_ID,
            "order_id": "X",
            "payhere_amount": "1.00",
            "payhere_currency": "LKR",
            "status_code": "0",
        }
        payload["md5sig"] = PayHereAdapter.notification_signature(payload).lower()

        assert PayHereAdapter.verify_notification(payload)

    def test_missing_secret_rejects_everything(self, settings):
        settings.PAYHERE_MERCHANT_SECRET = ""

        assert not PayHereAdapter.verify_notification({"md5sig": "anything"})


class TestStatusMapping:

    @pytest.mark.parametrize(
        ("code", "status"),
        [
            ("2", PaymentStatus.COMPLETED),
            ("0", PaymentStatus.PENDING),
            ("-1", PaymentStatus.CANCELLED),
            ("-2", PaymentStatus.FAILED),
            ("-3", PaymentStatus.CHARGEDBACK),
            ("7", PaymentStatus.FAILED),
        ],
    )
    def test_map_status(self, code, status):
        assert PayHereAdapter.map_status(code)[0] == status

    def test_unknown_code_message(self):
        assert PayHereAdapter.map_status("99") == (PaymentStatus.FAILED, "Unknown status code")


@pytest.mark.django_db
class TestCheckoutFields:

    def test_fields(self, payhere_settings, pending_order):
        fields = PayHereAdapter.checkout_fields(pending_order, "https://api.example.com/api/v1/payments/webhook/")

        assert fields["action_url"] == "https://sandbox.payhere.lk/pay/checkout"
        assert fields["order_id"] == pending_order.order_number
        assert fields["amount"] == "1000.00"
        assert fields["first_name"] == "Nimal"
        assert fields["last_name"] == "Perera"
        assert fields["city"] == "Colombo"
        assert fields["hash"] == PayHereAdapter.checkout_hash(
            pending_order.order_number, pending_order.total, "LKR"
        )


class TestRequestRefund:

    def test_disabled_skips_gateway(self, settings):
        settings.PAYHERE_REFUNDS_ENABLED = False

        with patch("payments.adapters.payhere.requests.request") as mock_request:
            result = PayHereAdapter.request_refund("320012345678", Decimal("500.00"), "Dispute")

        assert result.success
        mock_request.assert_not_called()

    @patch("payments.adapters.payhere.requests.request")
    def test_refund_accepted(self, mock_request, settings):
        settings.PAYHERE_REFUNDS_ENABLED = True
        mock_request.side_effect = [
            api_response({"access_token": "token-123"}),
            api_response({"status": 1, "msg": "Successfully submitted the refund request"}),
        ]

        result = PayHereAdapter.request_refund("320012345678", Decimal("500"), "Dispute")

        assert result.success
        assert result.message == "Successfully submitted the refund request"
        refund_call = mock_request.call_args_list[1]
        assert refund_call.kwargs["json"] == {
            "payment_id": "320012345678",
            "description": "Dispute",
            "amount": "500.00",
        }
        assert refund_call.kwargs["headers"]["Authorization"] == "Bearer token-123"

    @patch("payments.adapters.payhere.requests.request")
    def test_refund_rejected(self, mock_request, settings):
        settings.PAYHERE_REFUNDS_ENABLED = True
        mock_request.side_effect = [
            api_response({"access_token": "token-123"}),
            api_response({"status": -1, "msg": "Payment already refunded"}),
        ]

        with pytest.raises(GatewayError, match="Payment already refunded"):
            PayHereAdapter.request_refund("320012345678", Decimal("500"), "Dispute")

    @patch("payments.adapters.payhere.requests.request")
    def test_http_error(self, mock_request, settings):
        settings.PAYHERE_REFUNDS_ENABLED = True
        mock_request.return_value = api_response(status_code=401)

        with pytest.raises(GatewayError) as exc_info:
            PayHereAdapter.request_refund("320012345678", Decimal("500"), "Dispute")

        assert exc_info.value.details["status_code"] == 401

    @patch("payments.adapters.payhere.requests.request")
    def test_timeout(self, mock_request, settings):
        settings.PAYHERE_REFUNDS_ENABLED = True
        mock_request.side_effect = requests.exceptions.Timeout()

        with pytest.raises(GatewayError, match="timed out"):
            PayHereAdapter.request_refund("320012345678", Decimal("500"), "Dispute")

"""
PayHere gateway adapter.

All PayHere specifics live here: the MD5 signature scheme, status code
mapping, checkout form fields and the merchant refund API.

Signatures:
    checkout  UPPER(MD5(merchant_id + order_id + amount + currency
                        + UPPER(MD5(merchant_secret))))
    notify    UPPER(MD5(merchant_id + order_id + payhere_amount
                        + payhere_currency + status_code
                        + UPPER(MD5(merchant_secret))))

Usage:
    from payments.adapters import PayHereAdapter

    if not PayHereAdapter.verify_notification(payload):
        ...  # possible forgery

    PayHereAdapter.request_refund(payment.payment_id, Decimal("500.00"), "Dispute")
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import requests
from django.conf import settings

from core.money import format_money
from payments.exceptions import GatewayError
from payments.models import PaymentStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from decimal import Decimal
    from typing import Any

    from orders.models import Order

logger = logging.getLogger(__name__)


SANDBOX_BASE_URL = "https://sandbox.payhere.lk"
LIVE_BASE_URL = "https://www.payhere.lk"

# PayHere status_code -> Payment.status; anything unknown is a failure
STATUS_CODES: dict[str, tuple[str, str]] = {
    "2": (PaymentStatus.COMPLETED, "Payment successful"),
    "0": (PaymentStatus.PENDING, "Payment pending"),
    "-1": (PaymentStatus.CANCELLED, "Payment cancelled by user"),
    "-2": (PaymentStatus.FAILED, "Payment failed"),
    "-3": (PaymentStatus.CHARGEDBACK, "Payment chargedback"),
}

REQUIRED_NOTIFICATION_FIELDS = (
    "merchant_id",
    "order_id",
    "payhere_amount",
    "payhere_currency",
    "status_code",
    "md5sig",
    "payment_id",
)


@dataclass(frozen=True)
class RefundResult:
    success: bool
    message: str
    raw: dict


def _md5_upper(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest().upper()  # noqa: S324


class PayHereAdapter:
    """Stateless PayHere helpers; credentials come from settings."""

    @staticmethod
    def base_url() -> str:
        return SANDBOX_BASE_URL if settings.PAYHERE_SANDBOX else LIVE_BASE_URL

    @staticmethod
    def _secret_hash() -> str:
        return _md5_upper(settings.PAYHERE_MERCHANT_SECRET)

    # =========================================================================
    # Signatures
    # =========================================================================

    @classmethod
    def checkout_hash(cls, order_number: str, amount: Decimal, currency: str) -> str:
        return _md5_upper(
            f"{settings.PAYHERE_MERCHANT_ID}{order_number}{format_money(amount)}"
            f"{currency}{cls._secret_hash()}"
        )

    @classmethod
    def notification_signature(cls, payload: Mapping[str, str]) -> str:
        return _md5_upper(
            f"{payload['merchant_id']}{payload['order_id']}{payload['payhere_amount']}"
            f"{payload['payhere_currency']}{payload['status_code']}{cls._secret_hash()}"
        )

    @classmethod
    def verify_notification(cls, payload: Mapping[str, str]) -> bool:
        """Constant-time comparison of md5sig with the expected signature."""
        if not settings.PAYHERE_MERCHANT_SECRET:
            logger.error("PayHere merchant secret is not configured")
            return False
        expected = cls.notification_signature(payload)
        return hmac.compare_digest(str(payload.get("md5sig", "")).upper(), expected)

    @staticmethod
    def map_status(status_code: str) -> tuple[str, str]:
        """Return (PaymentStatus, message) for a PayHere status code."""
        return STATUS_CODES.get(str(status_code).strip(), (PaymentStatus.FAILED, "Unknown status code"))

    # =========================================================================
    # Checkout
    # =========================================================================

    @classmethod
    def checkout_fields(cls, order: Order, notify_url: str) -> dict[str, Any]:
        """Form fields the storefront auto-submits to PayHere checkout."""
        address = order.shipping_address or {}
        full_name = (address.get("full_name") or order.customer.get_full_name()).strip()
        first_name, _, last_name = full_name.partition(" ")
        currency = settings.PAYHERE_CURRENCY
        amount = format_money(order.total)

        return {
            "action_url": f"{cls.base_url()}/pay/checkout",
            "merchant_id": settings.PAYHERE_MERCHANT_ID,
            "return_url": f"{settings.FRONTEND_URL}/payment/success/{order.id}",
            "cancel_url": f"{settings.FRONTEND_URL}/payment/cancel/{order.id}",
            "notify_url": notify_url,
            "order_id": order.order_number,
            "items": f"Order {order.order_number}",
            "currency": currency,
            "amount": amount,
            "first_name": first_name or "Customer",
            "last_name": last_name,
            "email": order.customer.email,
            "phone": address.get("phone") or order.customer.phone,
            "address": ", ".join(
                part for part in (address.get("address_line1"), address.get("address_line2")) if part
            ),
            "city": address.get("city", ""),
            "country": address.get("country", "Sri Lanka"),
            "hash": cls.checkout_hash(order.order_number, order.total, currency),
        }

    # =========================================================================
    # Merchant API (refunds)
    # =========================================================================

    @classmethod
    def _make_request(
        cls,
        method: str,
        path: str,
        headers: dict[str, str],
        json: dict | None = None,
        data: dict | None = None,
        auth: tuple[str, str] | None = None,
    ) -> dict:
        """
        Call the PayHere merchant API.

        Raises:
            GatewayError: On timeout, connection failure, non-2xx response
                or a body that is not JSON
        """
        url = f"{cls.base_url()}{path}"
        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                json=json,
                data=data,
                auth=auth,
                timeout=settings.PAYHERE_API_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as exc:
            logger.error("PayHere API timeout", extra={"path": path})
            raise GatewayError("PayHere request timed out", details={"path": path}) from exc
        except requests.exceptions.HTTPError as exc:
            body = exc.response.text[:500] if exc.response is not None else ""
            status_code = exc.response.status_code if exc.response is not None else None
            logger.error(
                "PayHere API error",
                extra={"path": path, "status_code": status_code},
            )
            raise GatewayError(
                f"PayHere API error ({status_code})",
                details={"path": path, "status_code": status_code, "body": body},
            ) from exc
        except requests.exceptions.RequestException as exc:
            logger.error("PayHere API request failed: %s", exc, extra={"path": path})
            raise GatewayError(f"PayHere request failed: {exc}", details={"path": path}) from exc
        except ValueError as exc:
            raise GatewayError("PayHere returned a non-JSON response", details={"path": path}) from exc

    @classmethod
    def _access_token(cls) -> str:
        """Client-credentials OAuth token for the merchant API."""
        body = cls._make_request(
            "POST",
            "/merchant/v1/oauth/token",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={"grant_type": "client_credentials"},
            auth=(settings.PAYHERE_APP_ID, settings.PAYHERE_APP_SECRET),
        )
        token = body.get("access_token")
        if not token:
            raise GatewayError("PayHere did not return an access token")
        return token

    @classmethod
    def request_refund(cls, payment_id: str, amount: Decimal, reason: str) -> RefundResult:
        """
        Ask PayHere to refund a captured payment.

        Returns a successful RefundResult without calling the API when
        PAYHERE_REFUNDS_ENABLED is off, so local and test environments can
        exercise the refund flow.

        Raises:
            GatewayError: The API call failed or PayHere rejected the refund
        """
        if not settings.PAYHERE_REFUNDS_ENABLED:
            logger.info(
                "PayHere refunds disabled, skipping gateway call",
                extra={"payment_id": payment_id, "amount": format_money(amount)},
            )
            return RefundResult(success=True, message="Gateway refunds disabled", raw={})

        if not payment_id:
            raise GatewayError("Payment has no gateway payment id")

        token = cls._access_token()
        body = cls._make_request(
            "POST",
            "/merchant/v1/payment/refund",
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            json={
                "payment_id": payment_id,
                "description": reason[:255],
                "amount": format_money(amount),
            },
        )
        # PayHere answers {"status": 1, "msg": "..."} on success
        if body.get("status") != 1:
            raise GatewayError(
                f"PayHere rejected the refund: {body.get('msg', 'unknown error')}",
                details={"payment_id": payment_id, "response": body},
            )

        logger.info(
            "PayHere refund accepted",
            extra={"payment_id": payment_id, "amount": format_money(amount)},
        )
        return RefundResult(success=True, message=body.get("msg", ""), raw=body)

"""
Tests for PayHere notification processing and the webhook endpoint.
"""

import logging
from decimal import Decimal
from unittest.mock import ANY, patch

import pytest
from django.urls import reverse

from chat.models import ChatRoom
from notifications.models import Notification, NotificationType
from orders.services.status_service import OrderStatusService
from orders.states import ItemStatus, OrderStatus
from payments.exceptions import GatewayError
from payments.models import Payment, PaymentStatus
from payments.webhooks.processor import PayHereWebhookProcessor, WebhookResult
from wallets.models import TransactionType, WalletTransaction


@pytest.mark.django_db
class TestWebhookProcessor:

    def test_completed_payment(self, pending_order, vendor, notification, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            outcome = PayHereWebhookProcessor.process(notification(pending_order))

        assert outcome.processed
        assert outcome.payment_status == PaymentStatus.COMPLETED

        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PAYMENT_CONFIRMED
        assert set(pending_order.items.values_list("status", flat=True)) == {ItemStatus.PAYMENT_CONFIRMED}

        payment = Payment.objects.get(order=pending_order)
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.payment_id == "320025071234"
        assert payment.paid_at is not None
        assert "card_no" not in payment.raw_payload

        vendor.wallet.refresh_from_db()
        assert vendor.wallet.pending_balance == Decimal("900.00")
        assert WalletTransaction.objects.filter(
            wallet=vendor.wallet, type=TransactionType.CREDIT_PENDING
        ).count() == 1

        assert ChatRoom.objects.filter(order_item__order=pending_order).count() == 1
        assert Notification.objects.filter(
            recipient=pending_order.customer, type=NotificationType.PAYMENT_CONFIRMED
        ).exists()
        assert Notification.objects.filter(recipient=vendor.user, type=NotificationType.NEW_ORDER).exists()

    def test_duplicate_notification_changes_nothing(self, pending_order, vendor, notification):
        payload = notification(pending_order)
        PayHereWebhookProcessor.process(payload)

        outcome = PayHereWebhookProcessor.process(payload)

        assert outcome.result == WebhookResult.DUPLICATE
        vendor.wallet.refresh_from_db()
        assert vendor.wallet.pending_balance == Decimal("900.00")
        assert WalletTransaction.objects.filter(wallet=vendor.wallet).count() == 2

    def test_failed_payment_cancels_order(self, pending_order, notification, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            outcome = PayHereWebhookProcessor.process(notification(pending_order, status_code="-2"))

        assert outcome.processed
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.CANCELLED
        assert Payment.objects.get(order=pending_order).status == PaymentStatus.FAILED
        assert Notification.objects.filter(
            recipient=pending_order.customer, type=NotificationType.PAYMENT_FAILED
        ).exists()

    def test_pending_status_leaves_order_waiting(self, pending_order, notification):
        outcome = PayHereWebhookProcessor.process(notification(pending_order, status_code="0"))

        assert outcome.processed
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PAYMENT
        assert Payment.objects.get(order=pending_order).status == PaymentStatus.PENDING

    def test_payment_after_cancellation_is_refunded(
        self, pending_order, vendor, notification, django_capture_on_commit_callbacks
    ):
        OrderStatusService.cancel_order(pending_order.pk, pending_order.customer, "Found it cheaper elsewhere")

        with patch("payments.services.refund_service.PayHereAdapter.request_refund") as gateway:
            with django_capture_on_commit_callbacks(execute=True):
                outcome = PayHereWebhookProcessor.process(notification(pending_order))

        assert outcome.processed
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.CANCELLED

        payment = Payment.objects.get(order=pending_order)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refunded_amount == Decimal("1000.00")
        assert payment.refunded_at is not None
        gateway.assert_called_once_with("320025071234", Decimal("1000.00"), ANY)

        vendor.wallet.refresh_from_db()
        assert vendor.wallet.pending_balance == Decimal("0.00")
        assert not WalletTransaction.objects.filter(wallet=vendor.wallet).exists()
        assert not ChatRoom.objects.filter(order_item__order=pending_order).exists()

    def test_payment_after_cancellation_keeps_gateway_error(
        self, pending_order, notification, django_capture_on_commit_callbacks
    ):
        OrderStatusService.cancel_order(pending_order.pk, pending_order.customer, "Found it cheaper elsewhere")

        with patch(
            "payments.services.refund_service.PayHereAdapter.request_refund",
            side_effect=GatewayError("PayHere request timed out"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                PayHereWebhookProcessor.process(notification(pending_order))

        assert Payment.objects.get(order=pending_order).refund_error == "PayHere request timed out"

    def test_chargeback_is_recorded(self, paid_order, notification):
        Payment.objects.filter(order=paid_order).update(status=PaymentStatus.PENDING)

        outcome = PayHereWebhookProcessor.process(notification(paid_order, status_code="-3"))

        assert outcome.payment_status == PaymentStatus.CHARGEDBACK
        paid_order.refresh_from_db()
        assert paid_order.status == OrderStatus.PAYMENT_CONFIRMED

    def test_chargeback_after_completion(self, paid_order, notification, caplog):
        with caplog.at_level(logging.CRITICAL, logger="payments.webhooks.processor"):
            outcome = PayHereWebhookProcessor.process(notification(paid_order, status_code="-3"))

        assert outcome.processed
        assert Payment.objects.get(order=paid_order).status == PaymentStatus.CHARGEDBACK
        assert "Chargeback received" in caplog.text

        repeat = PayHereWebhookProcessor.process(notification(paid_order, status_code="-3"))
        assert repeat.result == WebhookResult.DUPLICATE

    def test_failure_after_completion_is_duplicate(self, paid_order, notification):
        outcome = PayHereWebhookProcessor.process(notification(paid_order, status_code="-2"))

        assert outcome.result == WebhookResult.DUPLICATE
        assert Payment.objects.get(order=paid_order).status == PaymentStatus.COMPLETED
        paid_order.refresh_from_db()
        assert paid_order.status == OrderStatus.PAYMENT_CONFIRMED

    def test_invalid_signature(self, pending_order, notification):
        outcome = PayHereWebhookProcessor.process(notification(pending_order, md5sig="0" * 32))

        assert outcome.result == WebhookResult.INVALID_SIGNATURE
        assert not Payment.objects.filter(order=pending_order).exists()

    def test_missing_fields(self, pending_order, notification):
        payload = notification(pending_order)
        del payload["payment_id"]

        assert PayHereWebhookProcessor.process(payload).result == WebhookResult.MISSING_FIELDS

    def test_unknown_merchant(self, pending_order, notification):
        outcome = PayHereWebhookProcessor.process(notification(pending_order, merchant_id="999999"))

        assert outcome.result == WebhookResult.UNKNOWN_MERCHANT

    def test_unknown_order(self, pending_order, notification):
        outcome = PayHereWebhookProcessor.process(notification(pending_order, order_id="ORD-19990101-999"))

        assert outcome.result == WebhookResult.UNKNOWN_ORDER

    def test_amount_mismatch(self, pending_order, notification):
        outcome = PayHereWebhookProcessor.process(notification(pending_order, payhere_amount="1.00"))

        assert outcome.result == WebhookResult.AMOUNT_MISMATCH
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PAYMENT

    def test_currency_mismatch(self, pending_order, notification):
        outcome = PayHereWebhookProcessor.process(notification(pending_order, payhere_currency="USD"))

        assert outcome.result == WebhookResult.CURRENCY_MISMATCH

    def test_processing_error_rolls_back(self, pending_order, vendor, notification):
        with patch(
            "payments.webhooks.processor.FundMovementService.credit_order",
            side_effect=RuntimeError("boom"),
        ):
            outcome = PayHereWebhookProcessor.process(notification(pending_order))

        assert outcome.result == WebhookResult.ERROR
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PAYMENT
        assert not Payment.objects.filter(order=pending_order).exists()


@pytest.mark.django_db
class TestWebhookEndpoint:

    def test_valid_notification(self, client, pending_order, notification):
        response = client.post(reverse("payments:payhere-webhook"), notification(pending_order))

        assert response.status_code == 200
        assert response.content == b"OK"
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PAYMENT_CONFIRMED

    def test_rejected_notification_is_still_acknowledged(self, client, pending_order, notification):
        response = client.post(
            reverse("payments:payhere-webhook"),
            notification(pending_order, md5sig="F" * 32),
        )

        assert response.status_code == 200
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PAYMENT

    def test_get_not_allowed(self, client):
        response = client.get(reverse("payments:payhere-webhook"))

        assert response.status_code == 405

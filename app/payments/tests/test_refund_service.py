"""
Tests for RefundService: dispute refunds and cancellation refunds.

Gateway refunds are disabled in tests (PAYHERE_REFUNDS_ENABLED=False) so
the adapter returns success without calling PayHere; failure paths patch
the adapter directly.
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from disputes.models import Dispute, DisputeComment, DisputeStatus, ResolutionType
from disputes.services import DisputeService
from disputes.tests.factories import DisputeFactory
from notifications.models import Notification, NotificationType
from orders.models import OrderStatusHistory
from orders.states import OrderStatus
from payments.exceptions import GatewayError
from payments.models import Payment, PaymentStatus
from payments.services import RefundService
from wallets.models import TransactionType, Wallet, WalletTransaction
from wallets.services import replay_wallet


def resolved_dispute(order, refund_amount=None):
    return DisputeFactory(
        order=order,
        status=DisputeStatus.RESOLVED_CUSTOMER_FAVOR,
        resolution_type=ResolutionType.CUSTOMER_FAVOR,
        refund_amount=refund_amount,
    )


@pytest.mark.django_db
class TestDisputeRefund:

    def test_partial_refund_after_release(
        self, mock_redis, delivered_order, vendor, admin_user, django_capture_on_commit_callbacks
    ):
        dispute = DisputeService.open_dispute(
            delivered_order.pk,
            delivered_order.customer,
            reason="DAMAGED_PRODUCT",
            description="Screen was cracked on arrival, photos attached.",
        ).data

        with django_capture_on_commit_callbacks(execute=True):
            DisputeService.resolve(
                dispute.pk,
                admin_user,
                ResolutionType.CUSTOMER_FAVOR,
                "Photos confirm the damage.",
                refund_amount=Decimal("500.00"),
            )

        vendor.wallet.refresh_from_db()
        assert vendor.wallet.available_balance == Decimal("400.00")
        assert vendor.wallet.pending_balance == Decimal("0.00")
        reversal = WalletTransaction.objects.get(wallet=vendor.wallet, type=TransactionType.REFUND_REVERSAL)
        assert reversal.amount == Decimal("-500.00")

        payment = Payment.objects.get(order=delivered_order)
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED
        assert payment.refunded_amount == Decimal("500.00")

        delivered_order.refresh_from_db()
        assert delivered_order.status == OrderStatus.REFUNDED
        assert OrderStatusHistory.objects.filter(
            order=delivered_order, status=OrderStatus.REFUNDED
        ).exists()

        dispute = Dispute.objects.get(pk=dispute.pk)
        assert dispute.refunded_amount == Decimal("500.00")
        assert dispute.refunded_at is not None
        assert not dispute.refund_failed
        assert DisputeComment.objects.filter(
            dispute=dispute, body="Refund processed successfully. Amount: 500.00"
        ).exists()
        assert Notification.objects.filter(
            recipient=delivered_order.customer, type=NotificationType.REFUND_PROCESSED
        ).exists()
        assert replay_wallet(vendor.wallet).matches(vendor.wallet)

    def test_full_refund_defaults_to_order_total(self, mock_redis, delivered_order, vendor):
        dispute = resolved_dispute(delivered_order)

        result = RefundService.execute_dispute_refund(dispute.pk)

        assert result.success
        assert result.data.amount == Decimal("1000.00")
        # Vendor only ever held the 900.00 net
        assert sum(m.amount for m in result.data.reversals) == Decimal("900.00")
        assert Payment.objects.get(order=delivered_order).status == PaymentStatus.REFUNDED
        vendor.wallet.refresh_from_db()
        assert vendor.wallet.available_balance == Decimal("0.00")

    def test_refund_before_release_comes_from_pending(self, mock_redis, paid_order, vendor):
        dispute = resolved_dispute(paid_order, refund_amount=Decimal("300.00"))

        RefundService.execute_dispute_refund(dispute.pk)

        vendor.wallet.refresh_from_db()
        assert vendor.wallet.pending_balance == Decimal("600.00")
        assert vendor.wallet.available_balance == Decimal("0.00")

    def test_second_run_is_skipped(self, mock_redis, delivered_order, vendor):
        dispute = resolved_dispute(delivered_order, refund_amount=Decimal("500.00"))
        RefundService.execute_dispute_refund(dispute.pk)

        result = RefundService.execute_dispute_refund(dispute.pk)

        assert result.success
        assert WalletTransaction.objects.filter(type=TransactionType.REFUND_REVERSAL).count() == 1

    def test_gateway_failure_flags_dispute(self, mock_redis, delivered_order, vendor):
        dispute = resolved_dispute(delivered_order, refund_amount=Decimal("500.00"))

        with patch(
            "payments.services.refund_service.PayHereAdapter.request_refund",
            side_effect=GatewayError("PayHere rejected the refund: insufficient funds"),
        ):
            result = RefundService.execute_dispute_refund(dispute.pk)

        assert result.error_code == "GATEWAY_ERROR"
        dispute = Dispute.objects.get(pk=dispute.pk)
        assert dispute.refund_failed
        assert dispute.status == DisputeStatus.RESOLVED_CUSTOMER_FAVOR
        assert dispute.comments.get().body.startswith("Refund processing failed. Please process manually.")

        # Nothing moved
        vendor.wallet.refresh_from_db()
        assert vendor.wallet.available_balance == Decimal("900.00")
        assert Payment.objects.get(order=delivered_order).refunded_amount == Decimal("0.00")
        delivered_order.refresh_from_db()
        assert delivered_order.status == OrderStatus.DELIVERED

    def test_ledger_failure_after_gateway_refund_is_not_sent_twice(self, mock_redis, delivered_order, vendor):
        dispute = resolved_dispute(delivered_order, refund_amount=Decimal("500.00"))
        # Vendor withdrew the released funds before the refund ran
        Wallet.objects.filter(pk=vendor.wallet.pk).update(available_balance=Decimal("0.00"))

        with patch("payments.services.refund_service.PayHereAdapter.request_refund") as gateway:
            first = RefundService.execute_dispute_refund(dispute.pk)

            assert first.error_code == "NEGATIVE_BALANCE"
            flagged = Dispute.objects.get(pk=dispute.pk)
            assert flagged.gateway_refunded_amount == Decimal("500.00")
            assert flagged.gateway_refunded_at is not None
            assert flagged.refunded_at is None
            assert flagged.refund_failed
            assert flagged.comments.get().body.startswith(
                "Refund processing failed: customer refunded at gateway (500.00); ledger reversal failed."
            )
            assert Payment.objects.get(order=delivered_order).refunded_amount == Decimal("0.00")

            Wallet.objects.filter(pk=vendor.wallet.pk).update(available_balance=Decimal("900.00"))
            second = RefundService.execute_dispute_refund(dispute.pk)

        assert second.success
        assert second.data.amount == Decimal("500.00")
        assert gateway.call_count == 1

        dispute = Dispute.objects.get(pk=dispute.pk)
        assert dispute.refunded_amount == Decimal("500.00")
        assert not dispute.refund_failed
        assert Payment.objects.get(order=delivered_order).refunded_amount == Decimal("500.00")
        vendor.wallet.refresh_from_db()
        assert vendor.wallet.available_balance == Decimal("400.00")
        delivered_order.refresh_from_db()
        assert delivered_order.status == OrderStatus.REFUNDED

    def test_unexpected_error_flags_dispute(self, mock_redis, delivered_order, vendor):
        dispute = resolved_dispute(delivered_order, refund_amount=Decimal("500.00"))

        with patch(
            "payments.services.refund_service.FundMovementService.refund_order",
            side_effect=RuntimeError("db connection lost"),
        ):
            result = RefundService.execute_dispute_refund(dispute.pk)

        assert result.error_code == "REFUND_FAILED"
        dispute = Dispute.objects.get(pk=dispute.pk)
        assert dispute.refund_failed
        assert dispute.refund_error == "db connection lost"
        comment = dispute.comments.get()
        assert comment.body.startswith("Refund processing failed")
        assert comment.body.endswith("Error: db connection lost")

        vendor.wallet.refresh_from_db()
        assert vendor.wallet.available_balance == Decimal("900.00")
        delivered_order.refresh_from_db()
        assert delivered_order.status == OrderStatus.DELIVERED

    def test_lock_is_taken_per_order(self, mock_redis, delivered_order):
        dispute = resolved_dispute(delivered_order, refund_amount=Decimal("500.00"))

        RefundService.execute_dispute_refund(dispute.pk)

        assert mock_redis.set.call_args.args[0] == f"lock:refund:order:{delivered_order.pk}"

    def test_lock_contention_flags_dispute(self, mock_redis, delivered_order):
        mock_redis.set.return_value = False
        dispute = resolved_dispute(delivered_order, refund_amount=Decimal("500.00"))

        with patch("payments.services.refund_service.REFUND_LOCK_TIMEOUT", 0.0):
            result = RefundService.execute_dispute_refund(dispute.pk)

        assert result.error_code == "LOCK_NOT_ACQUIRED"
        assert Dispute.objects.get(pk=dispute.pk).refund_failed

    def test_vendor_favor_dispute_is_not_refundable(self, mock_redis, delivered_order):
        dispute = DisputeFactory(order=delivered_order, status=DisputeStatus.RESOLVED_VENDOR_FAVOR)

        result = RefundService.execute_dispute_refund(dispute.pk)

        assert result.error_code == "INVALID_DISPUTE_STATUS"

    def test_unpaid_order_flags_dispute(self, mock_redis, pending_order):
        dispute = resolved_dispute(pending_order)

        result = RefundService.execute_dispute_refund(dispute.pk)

        assert result.error_code == "PAYMENT_NOT_REFUNDABLE"
        assert Dispute.objects.get(pk=dispute.pk).refund_failed

    def test_unknown_dispute(self, mock_redis):
        result = RefundService.execute_dispute_refund("00000000-0000-0000-0000-000000000000")

        assert result.error_code == "DISPUTE_NOT_FOUND"


@pytest.mark.django_db
class TestCancellationRefund:

    def test_gateway_refund(self, paid_order):
        payment = Payment.objects.get(order=paid_order)

        result = RefundService.refund_cancelled_order(payment.pk, Decimal("1000.00"), "Changed my mind")

        assert result.success
        assert Payment.objects.get(pk=payment.pk).refund_error == ""

    def test_gateway_failure_is_stored(self, paid_order):
        payment = Payment.objects.get(order=paid_order)

        with patch(
            "payments.services.refund_service.PayHereAdapter.request_refund",
            side_effect=GatewayError("PayHere request timed out"),
        ):
            result = RefundService.refund_cancelled_order(payment.pk, Decimal("1000.00"), "Changed my mind")

        assert result.error_code == "GATEWAY_ERROR"
        assert Payment.objects.get(pk=payment.pk).refund_error == "PayHere request timed out"

    def test_unknown_payment(self):
        result = RefundService.refund_cancelled_order(
            "00000000-0000-0000-0000-000000000000", Decimal("1.00"), "x"
        )

        assert result.error_code == "PAYMENT_NOT_FOUND"

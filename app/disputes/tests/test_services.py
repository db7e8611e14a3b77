"""
Tests for DisputeService: opening, commenting and resolution.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.utils import timezone
from freezegun import freeze_time

from authentication.tests.factories import CustomerFactory, VendorFactory
from disputes.models import Dispute, DisputeComment, DisputeStatus, ResolutionType
from disputes.services import DisputeService, validate_evidence
from disputes.tests.factories import DisputeFactory
from notifications.models import Notification, NotificationType
from orders.models import Order, OrderStatusHistory
from orders.services.delivery import DeliveryService
from orders.states import DeliveryTrigger, OrderStatus

DESCRIPTION = "The item arrived with a cracked screen and missing charger."


def open_dispute(order, **kwargs):
    kwargs.setdefault("reason", "DAMAGED_PRODUCT")
    kwargs.setdefault("description", DESCRIPTION)
    return DisputeService.open_dispute(order.pk, order.customer, **kwargs)


@pytest.mark.django_db
class TestOpenDispute:

    def test_open(self, delivered_order, vendor, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = open_dispute(delivered_order, evidence=["https://cdn.example.com/crack.jpg"])

        assert result.success
        dispute = result.data
        assert dispute.status == DisputeStatus.OPEN
        assert dispute.order_status_at_open == OrderStatus.DELIVERED
        assert dispute.evidence == ["https://cdn.example.com/crack.jpg"]

        delivered_order.refresh_from_db()
        assert delivered_order.status == OrderStatus.DISPUTED
        history = OrderStatusHistory.objects.filter(order=delivered_order).last()
        assert history.note == "Dispute opened: Damaged product"
        assert history.metadata == {"dispute_id": str(dispute.pk)}
        assert Notification.objects.filter(recipient=vendor.user, type=NotificationType.DISPUTE_OPENED).exists()

    def test_order_must_be_delivered(self, shipped_order):
        result = open_dispute(shipped_order)

        assert result.error_code == "INVALID_ORDER_STATUS"

    def test_window_expired(self, delivered_order):
        Order.objects.filter(pk=delivered_order.pk).update(
            delivery_confirmed_at=timezone.now() - timedelta(days=8)
        )

        result = open_dispute(delivered_order)

        assert result.error_code == "DISPUTE_WINDOW_EXPIRED"

    def test_window_edge(self, shipped_order):
        with freeze_time("2026-05-01 12:00"):
            DeliveryService.mark_delivered(shipped_order.pk, DeliveryTrigger.ADMIN)
        with freeze_time("2026-05-08 12:00"):
            result = open_dispute(shipped_order)

        assert result.success

    def test_duplicate_active_dispute(self, delivered_order):
        open_dispute(delivered_order)
        Order.objects.filter(pk=delivered_order.pk).update(status=OrderStatus.DELIVERED)

        result = open_dispute(delivered_order)

        assert result.error_code == "DUPLICATE_DISPUTE"

    def test_other_customer(self, delivered_order):
        result = DisputeService.open_dispute(
            delivered_order.pk, CustomerFactory(), reason="OTHER", description=DESCRIPTION
        )

        assert result.error_code == "NOT_ORDER_OWNER"

    def test_unknown_order(self, customer):
        result = DisputeService.open_dispute(
            "00000000-0000-0000-0000-000000000000", customer, reason="OTHER", description=DESCRIPTION
        )

        assert result.error_code == "ORDER_NOT_FOUND"

    def test_invalid_evidence(self, delivered_order):
        result = open_dispute(delivered_order, evidence=["http://insecure.example.com/a.jpg"])

        assert result.error_code == "INVALID_EVIDENCE"
        assert not Dispute.objects.exists()


class TestValidateEvidence:

    def test_valid(self, settings):
        settings.DISPUTE_MAX_EVIDENCE = 5

        assert validate_evidence(["https://cdn.example.com/1.jpg"]) is None

    def test_too_many(self, settings):
        settings.DISPUTE_MAX_EVIDENCE = 2

        assert validate_evidence(["https://a/1", "https://a/2", "https://a/3"]) == (
            "At most 2 evidence images are allowed"
        )


@pytest.mark.django_db
class TestAddComment:

    @pytest.fixture
    def dispute(self, delivered_order):
        return open_dispute(delivered_order).data

    def test_customer_comment(self, dispute):
        result = DisputeService.add_comment(dispute.pk, dispute.customer, "  Any update?  ")

        assert result.success
        assert result.data.body == "Any update?"
        assert result.data.author_role == "CUSTOMER"
        assert Dispute.objects.get(pk=dispute.pk).status == DisputeStatus.OPEN

    def test_first_admin_comment_starts_review(self, dispute, admin_user, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = DisputeService.add_comment(dispute.pk, admin_user, "Looking into it.")

        assert result.data.author_role == "ADMIN"
        assert Dispute.objects.get(pk=dispute.pk).status == DisputeStatus.IN_REVIEW
        assert Notification.objects.filter(
            recipient=dispute.customer, type=NotificationType.DISPUTE_COMMENT
        ).exists()

    def test_involved_vendor_cannot_comment(self, dispute, vendor):
        result = DisputeService.add_comment(dispute.pk, vendor.user, "We shipped it well packed.")

        assert result.error_code == "DISPUTE_COMMENT_FORBIDDEN"
        assert not DisputeComment.objects.filter(dispute=dispute).exists()
        assert DisputeService.role_for(dispute, vendor.user) == "VENDOR"

    def test_unrelated_vendor_is_forbidden(self, dispute):
        result = DisputeService.add_comment(dispute.pk, VendorFactory().user, "Hello")

        assert result.error_code == "DISPUTE_ACCESS_FORBIDDEN"

    def test_empty_comment(self, dispute):
        result = DisputeService.add_comment(dispute.pk, dispute.customer, "   ")

        assert result.error_code == "INVALID_COMMENT"

    def test_too_long(self, dispute, settings):
        settings.DISPUTE_COMMENT_MAX_LENGTH = 10

        result = DisputeService.add_comment(dispute.pk, dispute.customer, "x" * 11)

        assert result.error_code == "INVALID_COMMENT"

    def test_resolved_dispute_is_closed(self, delivered_order):
        dispute = DisputeFactory(order=delivered_order, status=DisputeStatus.CLOSED)

        result = DisputeService.add_comment(dispute.pk, dispute.customer, "One more thing")

        assert result.error_code == "DISPUTE_CLOSED"


@pytest.mark.django_db
class TestResolve:

    @pytest.fixture
    def dispute(self, delivered_order):
        return open_dispute(delivered_order).data

    def test_vendor_favor_closes_order(self, dispute, admin_user, vendor, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = DisputeService.resolve(
                dispute.pk, admin_user, ResolutionType.VENDOR_FAVOR, "Damage happened after delivery."
            )

        assert result.success
        dispute = Dispute.objects.get(pk=dispute.pk)
        assert dispute.status == DisputeStatus.RESOLVED_VENDOR_FAVOR
        assert dispute.resolved_by == admin_user
        assert dispute.resolved_at is not None
        assert dispute.order.status == OrderStatus.CLOSED
        # Vendor keeps the released funds
        vendor.wallet.refresh_from_db()
        assert vendor.wallet.available_balance == Decimal("900.00")
        assert DisputeComment.objects.filter(dispute=dispute, is_system=True).count() == 1
        assert Notification.objects.filter(
            recipient=dispute.customer, type=NotificationType.DISPUTE_RESOLVED
        ).exists()

    def test_closed_no_action(self, dispute, admin_user):
        DisputeService.resolve(dispute.pk, admin_user, ResolutionType.CLOSED_NO_ACTION, "Customer withdrew.")

        dispute = Dispute.objects.get(pk=dispute.pk)
        assert dispute.status == DisputeStatus.CLOSED
        assert dispute.order.status == OrderStatus.CLOSED

    def test_customer_favor_schedules_refund(self, dispute, admin_user, django_capture_on_commit_callbacks):
        with patch("disputes.services.RefundService.execute_dispute_refund") as mock_refund:
            with django_capture_on_commit_callbacks(execute=True):
                result = DisputeService.resolve(
                    dispute.pk,
                    admin_user,
                    ResolutionType.CUSTOMER_FAVOR,
                    "Photos confirm the damage.",
                    refund_amount=Decimal("250.00"),
                )

        assert result.success
        mock_refund.assert_called_once_with(dispute.pk)
        dispute = Dispute.objects.get(pk=dispute.pk)
        assert dispute.status == DisputeStatus.RESOLVED_CUSTOMER_FAVOR
        assert dispute.refund_amount == Decimal("250.00")
        # Order stays DISPUTED until the refund succeeds
        assert dispute.order.status == OrderStatus.DISPUTED

    def test_already_resolved(self, dispute, admin_user):
        DisputeService.resolve(dispute.pk, admin_user, ResolutionType.VENDOR_FAVOR, "Not the vendor's fault.")

        result = DisputeService.resolve(dispute.pk, admin_user, ResolutionType.CUSTOMER_FAVOR, "Changed mind.")

        assert result.error_code == "DISPUTE_ALREADY_RESOLVED"

    @pytest.mark.parametrize(
        ("resolution", "amount"),
        [
            (ResolutionType.CUSTOMER_FAVOR, Decimal("0.00")),
            (ResolutionType.CUSTOMER_FAVOR, Decimal("1000.01")),
            (ResolutionType.VENDOR_FAVOR, Decimal("100.00")),
        ],
    )
    def test_invalid_refund_amount(self, dispute, admin_user, resolution, amount):
        result = DisputeService.resolve(dispute.pk, admin_user, resolution, "Reviewed evidence.", amount)

        assert result.error_code == "INVALID_REFUND_AMOUNT"
        assert Dispute.objects.get(pk=dispute.pk).status == DisputeStatus.OPEN

    def test_unknown_resolution(self, dispute, admin_user):
        result = DisputeService.resolve(dispute.pk, admin_user, "SPLIT", "Half each.")

        assert result.error_code == "INVALID_RESOLUTION"

    def test_unknown_dispute(self, admin_user):
        result = DisputeService.resolve(
            "00000000-0000-0000-0000-000000000000", admin_user, ResolutionType.VENDOR_FAVOR, "n/a"
        )

        assert result.error_code == "DISPUTE_NOT_FOUND"


@pytest.mark.django_db
class TestVisibility:

    def test_disputes_for(self, delivered_order, vendor, admin_user):
        dispute = open_dispute(delivered_order).data
        DisputeFactory()

        assert list(DisputeService.disputes_for(delivered_order.customer)) == [dispute]
        assert list(DisputeService.disputes_for(vendor.user)) == [dispute]
        assert DisputeService.disputes_for(admin_user).count() == 2
        assert not DisputeService.disputes_for(CustomerFactory()).exists()

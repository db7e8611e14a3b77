"""
Tests for chat room provisioning.
"""

import logging
from decimal import Decimal
from unittest.mock import patch

import pytest

from authentication.tests.factories import VendorFactory
from chat.models import ChatRoom
from chat.services import ChatRoomService
from orders.tests.factories import create_order


@pytest.mark.django_db
class TestProvisionForOrder:

    def test_one_room_per_item(self, customer, vendor):
        other_vendor = VendorFactory()
        order = create_order(
            customer=customer,
            lines=[(vendor, Decimal("100.00"), 1), (other_vendor, Decimal("200.00"), 1)],
        )

        result = ChatRoomService.provision_for_order(order)

        assert result.success
        assert len(result.data) == 2
        assert {room.vendor_id for room in result.data} == {vendor.pk, other_vendor.pk}
        assert all(room.customer_id == customer.pk for room in result.data)
        assert all(room.is_active for room in result.data)

    def test_idempotent(self, paid_order):
        first = ChatRoomService.provision_for_order(paid_order).data

        second = ChatRoomService.provision_for_order(paid_order).data

        assert [room.pk for room in second] == [room.pk for room in first]
        assert ChatRoom.objects.count() == 1

    def test_best_effort_swallows_errors(self, paid_order):
        with patch.object(ChatRoomService, "provision_for_order", side_effect=RuntimeError("db down")):
            ChatRoomService.provision_best_effort(paid_order)

        assert not ChatRoom.objects.exists()

    def test_best_effort_provisions_without_logging_failure(self, paid_order, caplog):
        with caplog.at_level(logging.INFO, logger="chat.services.ChatRoomService"):
            ChatRoomService.provision_best_effort(paid_order)

        assert ChatRoom.objects.filter(order_item__order=paid_order).count() == 1
        assert "Chat room provisioning failed" not in caplog.text
        record = next(r for r in caplog.records if r.getMessage() == "Chat rooms provisioned")
        assert record.rooms_created == 1

"""
Tests for the ServiceResult envelope and its HTTP status mapping.
"""

import pytest
from django.urls import reverse
from rest_framework import serializers, status

from core.exceptions import BaseApplicationError
from core.services import ServiceResult
from core.views import service_response, status_for_error_code


class TestStatusForErrorCode:

    @pytest.mark.parametrize(
        ("error_code", "expected"),
        [
            ("ORDER_NOT_FOUND", status.HTTP_404_NOT_FOUND),
            ("PAYOUT_NOT_FOUND", status.HTTP_404_NOT_FOUND),
            ("NOT_ORDER_OWNER", status.HTTP_403_FORBIDDEN),
            ("NOT_ITEM_OWNER", status.HTTP_403_FORBIDDEN),
            ("DISPUTE_ACCESS_FORBIDDEN", status.HTTP_403_FORBIDDEN),
            ("DUPLICATE_DISPUTE", status.HTTP_409_CONFLICT),
            ("PENDING_PAYOUT_EXISTS", status.HTTP_409_CONFLICT),
            ("LOCK_NOT_ACQUIRED", status.HTTP_409_CONFLICT),
            ("INVALID_TRANSITION", status.HTTP_400_BAD_REQUEST),
            ("CANCELLATION_WINDOW_EXPIRED", status.HTTP_400_BAD_REQUEST),
            (None, status.HTTP_400_BAD_REQUEST),
        ],
    )
    def test_mapping(self, error_code, expected):
        assert status_for_error_code(error_code) == expected


class EchoSerializer(serializers.Serializer):
    name = serializers.CharField()


class TestServiceResponse:

    def test_success_envelope(self):
        response = service_response(ServiceResult.success({"name": "x"}), EchoSerializer, status.HTTP_201_CREATED)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data == {"success": True, "data": {"name": "x"}}

    def test_failure_envelope(self):
        result = ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")

        response = service_response(result)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {"success": False, "error": "Order not found", "error_code": "ORDER_NOT_FOUND"}

    def test_from_exception_keeps_code(self):
        exc = BaseApplicationError("Balance would go negative", error_code="NEGATIVE_BALANCE")

        result = ServiceResult.from_exception(exc)

        assert not result
        assert result.error == "Balance would go negative"
        assert result.error_code == "NEGATIVE_BALANCE"

    def test_from_plain_exception(self):
        result = ServiceResult.from_exception(KeyError("x"))

        assert result.error_code == "KEYERROR"

    def test_map(self):
        assert ServiceResult.success(2).map(lambda n: n * 10).data == 20
        failed = ServiceResult.failure("nope")
        assert failed.map(lambda n: n * 10) is failed


@pytest.mark.django_db
class TestHealthCheck:

    def test_healthy(self, client):
        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json()["database"] == "connected"

"""
API tests for the vendor wallet and admin payout endpoints.
"""

from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from wallets.models import Payout, PayoutStatus, TransactionType
from wallets.services import PayoutService


@pytest.mark.django_db
class TestWalletViews:

    def test_wallet_summary(self, api_client, funded_vendor):
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.get(reverse("wallets:wallet"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["available_balance"] == "4500.00"
        assert response.data["pending_balance"] == "0.00"
        assert response.data["total_earnings"] == "4500.00"
        assert response.data["vendor_name"] == funded_vendor.business_name

    def test_customers_have_no_wallet(self, api_client, customer):
        api_client.force_authenticate(user=customer)

        response = api_client.get(reverse("wallets:wallet"))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_transactions_newest_first(self, api_client, funded_vendor):
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.get(reverse("wallets:wallet-transactions"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 4
        types = [row["type"] for row in response.data["results"]]
        assert types[-1] == TransactionType.CREDIT_PENDING
        assert types[0] == TransactionType.RELEASE_AVAILABLE
        assert response.data["results"][-1]["order_number"]

    def test_transactions_filter_by_type(self, api_client, funded_vendor):
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.get(
            reverse("wallets:wallet-transactions"), {"type": TransactionType.COMMISSION_DEDUCTION}
        )

        assert response.data["count"] == 1
        assert response.data["results"][0]["amount"] == "-500.00"


@pytest.mark.django_db
class TestPayoutRequestView:

    def test_request_payout(self, api_client, funded_vendor, bank_details):
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.post(
            reverse("wallets:wallet-payouts"), {"amount": "1500.00", **bank_details}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["data"]["status"] == PayoutStatus.PENDING
        assert response.data["data"]["amount"] == "1500.00"

    def test_invalid_account_number(self, api_client, funded_vendor, bank_details):
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.post(
            reverse("wallets:wallet-payouts"),
            {"amount": "1500.00", **bank_details, "account_number": "12AB"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "account_number" in response.data

    def test_second_pending_request_conflicts(self, api_client, funded_vendor, bank_details):
        PayoutService.request_payout(funded_vendor, Decimal("1000.00"), **bank_details)
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.post(
            reverse("wallets:wallet-payouts"), {"amount": "1000.00", **bank_details}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "PENDING_PAYOUT_EXISTS"

    def test_list_own_payouts(self, api_client, funded_vendor, bank_details):
        PayoutService.request_payout(funded_vendor, Decimal("1000.00"), **bank_details)
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.get(reverse("wallets:wallet-payouts"))

        assert response.data["count"] == 1


@pytest.mark.django_db
class TestAdminPayoutViews:

    @pytest.fixture
    def payout(self, funded_vendor, bank_details):
        return PayoutService.request_payout(funded_vendor, Decimal("1000.00"), **bank_details).data

    def test_list_filtered_by_status(self, api_client, admin_user, payout):
        api_client.force_authenticate(user=admin_user)

        response = api_client.get(reverse("wallets:admin-payout-list"), {"status": PayoutStatus.PENDING})

        assert response.status_code == status.HTTP_200_OK
        assert [row["id"] for row in response.data["results"]] == [str(payout.pk)]

    def test_process_then_complete(self, api_client, admin_user, payout):
        api_client.force_authenticate(user=admin_user)

        processed = api_client.post(reverse("wallets:admin-payout-process", args=[payout.pk]))
        completed = api_client.post(
            reverse("wallets:admin-payout-complete", args=[payout.pk]),
            {"transaction_reference": "TRX-998877"},
            format="json",
        )

        assert processed.status_code == status.HTTP_200_OK
        assert processed.data["data"]["status"] == PayoutStatus.PROCESSING
        assert completed.status_code == status.HTTP_200_OK
        assert Payout.objects.get(pk=payout.pk).status == PayoutStatus.COMPLETED

    def test_fail_from_pending_is_rejected(self, api_client, admin_user, payout):
        api_client.force_authenticate(user=admin_user)

        response = api_client.post(
            reverse("wallets:admin-payout-fail", args=[payout.pk]),
            {"reason": "Wrong account"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_PAYOUT_STATUS"

    def test_vendors_are_forbidden(self, api_client, funded_vendor, payout):
        api_client.force_authenticate(user=funded_vendor.user)

        response = api_client.post(reverse("wallets:admin-payout-process", args=[payout.pk]))

        assert response.status_code == status.HTTP_403_FORBIDDEN

"""
URL configuration for wallets (mounted at /api/v1/).
"""

from django.urls import path
from rest_framework.routers import SimpleRouter

from wallets.views import (
    AdminPayoutViewSet,
    PayoutListCreateView,
    WalletTransactionListView,
    WalletView,
)

router = SimpleRouter()
router.register(r"admin/payouts", AdminPayoutViewSet, basename="admin-payout")

app_name = "wallets"
urlpatterns = [
    path("wallet/", WalletView.as_view(), name="wallet"),
    path("wallet/transactions/", WalletTransactionListView.as_view(), name="wallet-transactions"),
    path("wallet/payouts/", PayoutListCreateView.as_view(), name="wallet-payouts"),
] + router.urls

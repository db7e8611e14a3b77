import django_filters as filters

from wallets.models import Payout, WalletTransaction


class WalletTransactionFilter(filters.FilterSet):
    date_from = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    date_to = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = WalletTransaction
        fields = ["type", "balance", "date_from", "date_to"]


class PayoutFilter(filters.FilterSet):
    class Meta:
        model = Payout
        fields = ["status"]

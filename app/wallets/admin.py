"""
Django admin configuration for wallets.

Ledger rows are read-only; the wallet admin offers a replay audit that
rebuilds balances from the ledger and reports any drift.
"""

from django.contrib import admin, messages

from wallets.models import Payout, Wallet, WalletTransaction
from wallets.services import replay_wallet


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = [
        "vendor",
        "pending_balance",
        "available_balance",
        "total_earnings",
        "total_withdrawn",
        "updated_at",
    ]
    search_fields = ["vendor__business_name", "vendor__user__email"]
    readonly_fields = [
        "vendor",
        "pending_balance",
        "available_balance",
        "total_earnings",
        "total_withdrawn",
        "created_at",
        "updated_at",
    ]
    actions = ["verify_ledger"]

    @admin.action(description="Verify balances against the ledger")
    def verify_ledger(self, request, queryset):
        for wallet in queryset:
            replay = replay_wallet(wallet)
            if replay.matches(wallet):
                self.message_user(
                    request,
                    f"{wallet.vendor}: ledger consistent ({replay.entries} entries)",
                    messages.SUCCESS,
                )
            else:
                self.message_user(
                    request,
                    f"{wallet.vendor}: ledger replay gives pending={replay.pending_balance} "
                    f"available={replay.available_balance}, mismatched rows "
                    f"{replay.mismatched_entries}",
                    messages.ERROR,
                )


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ["id", "wallet", "type", "balance", "amount", "balance_after", "order", "created_at"]
    list_filter = ["type", "balance"]
    search_fields = ["wallet__vendor__business_name", "order__order_number"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ["id", "wallet", "amount", "status", "created_at", "processed_at"]
    list_filter = ["status"]
    search_fields = ["wallet__vendor__business_name", "transaction_reference"]
    readonly_fields = ["status", "version", "processed_by", "processed_at", "completed_at", "failed_at"]

"""
Vendor escrow wallets.

Every vendor owns one Wallet with a pending (escrow) and an available
(withdrawable) balance. Balances only move through FundMovementService,
which pairs each mutation with an immutable WalletTransaction row.
"""

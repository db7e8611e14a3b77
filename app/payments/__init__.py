"""
Payments app for PayHere integration.

This app handles:
- Checkout form fields and hash for a pending order
- Signed payment notifications that confirm or cancel orders
- Gateway refunds (cancellations, customer-favor disputes)

Related apps:
    - orders: Order status transitions on payment outcomes
    - wallets: Escrow credit on confirmed payment
    - disputes: Refund execution after resolution

Usage:
    from payments.services import CheckoutService

    result = CheckoutService.initiate(order_id, customer, notify_url)
"""

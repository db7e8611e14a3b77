"""
Tests for payments app.

This package contains test modules for:
- test_adapters.py: PayHere signatures, status mapping and refund API
- test_webhooks.py: Notification processing and the webhook endpoint
- test_refund_service.py: Dispute and cancellation refunds
- test_locks.py: Redis distributed lock
- test_integration.py: Checkout-to-payout journey through the API

Usage:
    pytest payments/tests/
    pytest payments/tests/test_webhooks.py
"""

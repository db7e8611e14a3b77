"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures
(users by role, API client, mocked Redis, orders at each lifecycle stage).
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os
from decimal import Decimal
from unittest.mock import MagicMock, patch

import django
import pytest
from rest_framework.test import APIClient

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # The test client speaks plain HTTP
    settings.SECURE_SSL_REDIRECT = False

    # Never call real gateways from tests
    settings.PAYHERE_REFUNDS_ENABLED = False
    settings.AFTERSHIP_API_KEY = ""


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py -> e2e (full order journeys)
    - test_views.py, test_services.py, test_webhooks.py, etc. -> integration
    - test_models.py, test_allocation.py, test_transitions.py, etc. -> unit
    - Unmatched files -> integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_permissions.py",
        "test_webhooks.py",
        "test_delivery.py",
        "test_fund_movement.py",
        "test_payouts.py",
        "test_refund_service.py",
        "test_status_service.py",
        "test_order_creation.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_allocation.py",
        "test_transitions.py",
        "test_adapters.py",
        "test_locks.py",
        "test_money.py",
        "test_tracking.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


def _patch_postgresql_flush_for_cascade():
    """
    Patch PostgreSQL flush to always use CASCADE.

    TransactionTestCase resets the database with TRUNCATE, which fails on
    tables referenced by foreign keys unless CASCADE is used.
    """
    from django.db.backends.postgresql import operations

    original_sql_flush = operations.DatabaseOperations.sql_flush

    def sql_flush_with_cascade(
        self, style, tables, *, reset_sequences=False, allow_cascade=False
    ):
        return original_sql_flush(
            self, style, tables, reset_sequences=reset_sequences, allow_cascade=True
        )

    operations.DatabaseOperations.sql_flush = sql_flush_with_cascade


_patch_postgresql_flush_for_cascade()


# =============================================================================
# Shared fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def customer(db):
    from authentication.tests.factories import CustomerFactory

    return CustomerFactory()


@pytest.fixture
def vendor(db):
    """A Vendor profile (its user has role VENDOR); the wallet is auto-created."""
    from authentication.tests.factories import VendorFactory

    return VendorFactory()


@pytest.fixture
def admin_user(db):
    from authentication.tests.factories import AdminFactory

    return AdminFactory()


@pytest.fixture
def mock_redis():
    """
    Replace the Redis connection used by DistributedLock.

    set() succeeds (lock acquired) and eval() returns 1 (lock released).
    """
    redis = MagicMock()
    redis.set.return_value = True
    redis.eval.return_value = 1
    with patch("payments.locks.get_redis_connection", return_value=redis):
        yield redis


# =============================================================================
# Order lifecycle fixtures
# =============================================================================
# Built with the helpers in orders.tests.factories so that money states
# (credited, released) come from the real fund movement engine.


@pytest.fixture
def pending_order(customer, vendor):
    """1000.00 single-vendor order awaiting payment."""
    from orders.tests.factories import create_order

    return create_order(customer=customer, lines=[(vendor, Decimal("1000.00"), 1)])


@pytest.fixture
def paid_order(pending_order):
    """PAYMENT_CONFIRMED; vendor pending balance credited with 900.00."""
    from orders.tests.factories import pay_order

    return pay_order(pending_order)


@pytest.fixture
def shipped_order(paid_order):
    from orders.tests.factories import ship_order

    return ship_order(paid_order)


@pytest.fixture
def delivered_order(shipped_order):
    """DELIVERED by an admin; vendor available balance holds the 900.00 net."""
    from orders.services.delivery import DeliveryService
    from orders.states import DeliveryTrigger

    DeliveryService.mark_delivered(shipped_order.pk, DeliveryTrigger.ADMIN)
    shipped_order.refresh_from_db()
    return shipped_order

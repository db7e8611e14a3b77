"""
Fixtures for notification tests.
"""

import pytest

from notifications.tests.factories import NotificationFactory


@pytest.fixture
def unread_notification(db, customer):
    return NotificationFactory(recipient=customer)


@pytest.fixture
def read_notification(db, customer):
    return NotificationFactory(recipient=customer, is_read=True)

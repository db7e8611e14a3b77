"""
Tests for the notification inbox API.
"""

import pytest

from notifications.tests.factories import NotificationFactory


@pytest.mark.django_db
class TestNotificationViews:
    def test_list_only_shows_own_notifications(self, api_client, customer, admin_user):
        NotificationFactory.create_batch(2, recipient=customer)
        NotificationFactory(recipient=admin_user)
        api_client.force_authenticate(user=customer)

        response = api_client.get("/api/v1/notifications/")

        assert response.status_code == 200
        assert response.data["count"] == 2

    def test_unread_count(self, api_client, customer):
        NotificationFactory.create_batch(2, recipient=customer)
        api_client.force_authenticate(user=customer)

        response = api_client.get("/api/v1/notifications/unread-count/")

        assert response.status_code == 200
        assert response.data == {"unread_count": 2}

    def test_mark_read(self, api_client, unread_notification, customer):
        api_client.force_authenticate(user=customer)

        response = api_client.post(f"/api/v1/notifications/{unread_notification.pk}/read/")

        assert response.status_code == 200
        assert response.data["success"] is True
        assert response.data["data"]["is_read"] is True

    def test_cannot_read_someone_elses_notification(
        self, api_client, unread_notification, admin_user
    ):
        api_client.force_authenticate(user=admin_user)

        response = api_client.post(f"/api/v1/notifications/{unread_notification.pk}/read/")

        assert response.status_code == 404

    def test_read_all(self, api_client, customer):
        NotificationFactory.create_batch(3, recipient=customer)
        api_client.force_authenticate(user=customer)

        response = api_client.post("/api/v1/notifications/read-all/")

        assert response.status_code == 200
        assert response.data == {"marked_count": 3}

    def test_requires_authentication(self, api_client):
        response = api_client.get("/api/v1/notifications/")

        assert response.status_code == 401

"""
Factory Boy factories for notifications.
"""

import factory

from authentication.tests.factories import CustomerFactory
from notifications.models import Notification, NotificationType


class NotificationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Notification
        skip_postgeneration_save = True

    recipient = factory.SubFactory(CustomerFactory)
    type = NotificationType.ORDER_STATUS_CHANGED
    title = factory.Sequence(lambda n: f"Order update {n}")
    message = "Your order status changed."
    is_read = False

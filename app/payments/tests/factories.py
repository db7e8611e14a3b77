"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import PaymentFactory

    payment = PaymentFactory(order=order)                      # PENDING
    payment = PaymentFactory(order=order, status=PaymentStatus.COMPLETED)
"""

import factory
from django.utils import timezone

from orders.tests.factories import OrderFactory
from payments.models import Payment, PaymentStatus


class PaymentFactory(factory.django.DjangoModelFactory):
    """Payment for an order; amount follows the order total."""

    class Meta:
        model = Payment
        skip_postgeneration_save = True

    order = factory.SubFactory(OrderFactory)
    payment_id = factory.Sequence(lambda n: f"3200{n + 1:08d}")
    status = PaymentStatus.PENDING
    amount = factory.LazyAttribute(lambda o: o.order.total)
    currency = "LKR"
    method = "VISA"
    paid_at = factory.Maybe(
        factory.LazyAttribute(lambda o: o.status == PaymentStatus.COMPLETED),
        yes_declaration=factory.LazyFunction(timezone.now),
        no_declaration=None,
    )

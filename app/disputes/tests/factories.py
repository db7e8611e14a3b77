"""
Factory Boy factories for dispute test data.

Usage:
    from disputes.tests.factories import DisputeFactory

    dispute = DisputeFactory(order=delivered_order)
    dispute = DisputeFactory(
        order=delivered_order,
        status=DisputeStatus.RESOLVED_CUSTOMER_FAVOR,
        refund_amount=Decimal("500.00"),
    )
"""

import factory

from disputes.models import Dispute, DisputeComment, DisputeReason


class DisputeFactory(factory.django.DjangoModelFactory):
    """Dispute by the order's customer; status is set at construction only."""

    class Meta:
        model = Dispute
        skip_postgeneration_save = True

    order = factory.SubFactory("orders.tests.factories.OrderFactory")
    customer = factory.LazyAttribute(lambda o: o.order.customer)
    reason = DisputeReason.DAMAGED_PRODUCT
    description = "The package arrived crushed and the item is broken."
    evidence = factory.LazyFunction(list)
    order_status_at_open = factory.LazyAttribute(lambda o: o.order.status)


class DisputeCommentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = DisputeComment
        skip_postgeneration_save = True

    dispute = factory.SubFactory(DisputeFactory)
    author = factory.LazyAttribute(lambda o: o.dispute.customer)
    author_role = "CUSTOMER"
    body = "Could you share a photo of the packaging?"

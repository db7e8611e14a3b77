"""
Orders: checkout, the order/item status state machine and delivery.

The Order status is the single source of truth for the whole order and is
recomputed from its items after every item mutation. Escrow release only
happens through orders.services.delivery.DeliveryService.mark_delivered.
"""

"""
Chat app: customer <-> vendor rooms for paid order items.

Rooms are created by the payment webhook after commit, one per order
item. Messaging itself is out of scope; this app only provisions and
lists rooms.

Related apps:
    - orders: OrderItem the room belongs to
    - payments: Webhook processor that provisions rooms

Usage:
    from chat.services import ChatRoomService

    ChatRoomService.provision_best_effort(order)
"""

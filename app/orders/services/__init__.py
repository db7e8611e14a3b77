"""
Order services.

Modules:
    order_creation: OrderCreationService (checkout -> PENDING_PAYMENT order)
    coupon_service: CouponService and calculate_discount
    status_service: OrderStatusService (customer, vendor and admin transitions)
    delivery: DeliveryService.mark_delivered (the only escrow release path)
    history: record_history helper

Import from the submodules directly; the payment and dispute services
import order helpers, and the order services call back into them.
"""

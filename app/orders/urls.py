"""
URL configuration for orders (mounted at /api/v1/).
"""

from django.urls import path
from rest_framework.routers import SimpleRouter

from orders.views import AdminOrderViewSet, CouponValidateView, OrderViewSet, VendorOrderItemViewSet

router = SimpleRouter()
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"vendor/order-items", VendorOrderItemViewSet, basename="vendor-order-item")
router.register(r"admin/orders", AdminOrderViewSet, basename="admin-order")

app_name = "orders"
urlpatterns = [
    path("coupons/validate/", CouponValidateView.as_view(), name="coupon-validate"),
] + router.urls

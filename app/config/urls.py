"""
URL configuration for the marketplace backend.

URL Structure:
    /                                      - ReDoc API documentation
    /admin/                                - Django admin interface
    /health/                               - Health check endpoint
    /schema/                               - OpenAPI schema (YAML)
    /api/v1/auth/                          - JWT token endpoints
        token/                             - Obtain access/refresh pair
        token/refresh/                     - Refresh access token
    /api/v1/orders/                        - Customer orders (list/create/detail)
        {id}/cancel/                       - Cancel within the cancellation window
        {id}/confirm-delivery/             - Confirm delivery (releases escrow)
        {id}/status/                       - Generic customer transition
        {id}/request-return/               - Request return after confirmation
        {id}/actions/                      - Available actions for the caller
    /api/v1/vendor/order-items/{id}/status/ - Vendor item fulfillment update
    /api/v1/admin/orders/{id}/status/      - Admin override
    /api/v1/admin/orders/{id}/mark-delivered/ - Admin delivery confirmation
    /api/v1/coupons/validate/              - Coupon preview
    /api/v1/payments/initiate/             - Gateway checkout fields
    /api/v1/payments/webhook/              - Gateway notification (POST, always 200)
    /api/v1/wallet/                        - Vendor wallet summary
        transactions/                      - Ledger history (filterable)
        payouts/                           - Payout requests (list/create)
    /api/v1/admin/payouts/{id}/process|complete|fail/ - Payout lifecycle
    /api/v1/disputes/                      - Disputes (list/create/detail)
        {id}/comments/                     - Dispute thread
    /api/v1/admin/disputes/{id}/resolve/   - Dispute resolution
    /api/v1/notifications/                 - Notification inbox
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("", include("orders.urls")),
    path("payments/", include("payments.urls")),
    path("", include("wallets.urls")),
    path("", include("disputes.urls")),
    path("notifications/", include("notifications.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Admin"
admin.site.site_title = "Marketplace Admin Portal"
admin.site.index_title = "Orders, wallets and disputes"

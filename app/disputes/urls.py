"""
URL configuration for disputes (mounted at /api/v1/).
"""

from rest_framework.routers import SimpleRouter

from disputes.views import AdminDisputeViewSet, DisputeViewSet

router = SimpleRouter()
router.register(r"disputes", DisputeViewSet, basename="dispute")
router.register(r"admin/disputes", AdminDisputeViewSet, basename="admin-dispute")

app_name = "disputes"
urlpatterns = router.urls

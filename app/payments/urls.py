"""
URL configuration for the payments app.

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import PaymentInitiateView
from payments.webhooks.views import payhere_webhook

app_name = "payments"

urlpatterns = [
    path("initiate/", PaymentInitiateView.as_view(), name="initiate"),
    path("webhook/", payhere_webhook, name="payhere-webhook"),
]

"""
Webhook handling for PayHere payment notifications.

Usage:
    # In urls.py
    from payments.webhooks.views import payhere_webhook

    urlpatterns = [
        path("webhook/", payhere_webhook, name="payhere-webhook"),
    ]
"""

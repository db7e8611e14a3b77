"""
Webhook endpoint for PayHere payment notifications.

PayHere posts form-encoded notifications to notify_url and retries on
anything but a 2xx. Every internal outcome, including rejected and
duplicate notifications, is logged and acknowledged with 200 so the
gateway never retries because of our own processing.
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.webhooks.processor import PayHereWebhookProcessor

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def payhere_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive a PayHere notification.

    Returns:
        HttpResponse 200 in every case
    """
    payload = request.POST.dict()
    outcome = PayHereWebhookProcessor.process(payload)

    logger.info(
        "PayHere webhook acknowledged",
        extra={
            "result": outcome.result,
            "order_id": outcome.order_id,
            "payment_status": outcome.payment_status,
        },
    )
    return HttpResponse("OK", status=200)

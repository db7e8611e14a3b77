"""
DRF views for the payments app.

Endpoints:
    POST /api/v1/payments/initiate/ - PayHere checkout fields for an order
    POST /api/v1/payments/webhook/  - PayHere notify_url (payments.webhooks)
"""

from __future__ import annotations

from django.urls import reverse
from drf_spectacular.utils import extend_schema
from rest_framework.views import APIView

from authentication.permissions import IsCustomer
from core.views import service_response
from payments.serializers import PaymentInitiateSerializer
from payments.services import CheckoutService


class PaymentInitiateView(APIView):
    """
    Start a PayHere checkout.

    Returns the form fields (including the checkout hash) that the client
    posts to PayHere. The notify_url points back at our webhook.
    """

    permission_classes = [IsCustomer]

    @extend_schema(
        operation_id="initiate_payment",
        summary="Initiate PayHere checkout",
        request=PaymentInitiateSerializer,
        tags=["Payments"],
    )
    def post(self, request):
        serializer = PaymentInitiateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        notify_url = request.build_absolute_uri(reverse("payments:payhere-webhook"))
        result = CheckoutService.initiate(
            serializer.validated_data["order_id"],
            customer=request.user,
            notify_url=notify_url,
        )
        return service_response(result)

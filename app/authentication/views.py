"""
Views for authentication.

Token issuance is handled by djangorestframework-simplejwt (see urls.py);
this module only exposes the current principal so clients can route by role.
"""

from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from drf_spectacular.utils import extend_schema

from authentication.serializers import UserSerializer


@extend_schema(
    operation_id="get_current_user",
    summary="Current user",
    description="Return the authenticated user's identity and marketplace role.",
    tags=["Auth"],
)
class CurrentUserView(generics.RetrieveAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = UserSerializer

    def get_object(self):
        return self.request.user

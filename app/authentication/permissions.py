"""
Role permission classes for the marketplace API.

- IsCustomer: CUSTOMER-role users (order placement, cancel, disputes)
- IsVendor: VENDOR-role users with a vendor profile (item fulfillment, wallet)
- IsAdmin: ADMIN-role users or superusers (overrides, payouts, resolution)

Ownership (is this my order / my item) is checked in the service layer so
the rejection carries a machine-readable error code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsCustomer(permissions.BasePermission):
    message = "Customer access required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_customer)


class IsVendor(permissions.BasePermission):
    """Vendor users must also have an onboarded Vendor profile."""

    message = "Vendor access required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        if not (user and user.is_authenticated and user.is_vendor):
            return False
        return hasattr(user, "vendor")


class IsAdmin(permissions.BasePermission):
    message = "Admin access required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_marketplace_admin)

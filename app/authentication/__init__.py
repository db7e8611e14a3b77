"""
Authentication application.

Identity collaborator for the marketplace core: email-based users with a
role (CUSTOMER, VENDOR, ADMIN), vendor profiles with commission rates, role
permission classes and JWT token endpoints.

Usage:
    from authentication.models import User, UserRole, Vendor
    from authentication.permissions import IsCustomer, IsVendor, IsAdmin
"""

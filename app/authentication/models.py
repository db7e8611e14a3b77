"""
Authentication models.

This module defines the identity models the marketplace core consumes:
- User: Custom user model with email-based authentication and a role
- Vendor: Seller profile (OneToOne with a VENDOR user) carrying the
  commission rate used by the fund movement engine

Related files:
    - managers.py: Custom user manager for email-based creation
    - permissions.py: Role permission classes (IsCustomer, IsVendor, IsAdmin)
    - wallets/signals.py: Creates the vendor's Wallet on onboarding
"""

from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import BaseModel
from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Role of the acting principal; drives transition permissions."""

    CUSTOMER = "CUSTOMER", "Customer"
    VENDOR = "VENDOR", "Vendor"
    ADMIN = "ADMIN", "Admin"


def default_commission_rate():
    return settings.PLATFORM_COMMISSION_RATE


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        full_name: Display name used in notifications and gateway forms
        phone: Contact number (shipping and gateway forms)
        role: CUSTOMER, VENDOR or ADMIN
        is_active / is_staff: Django account flags
        date_joined / updated_at: Timestamps

    Usage:
        customer = User.objects.create_user(email="c@example.com", password="...")
        admin = User.objects.create_superuser(email="a@example.com", password="...")
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    full_name = models.CharField(max_length=150, blank=True, default="")
    phone = models.CharField(max_length=20, blank=True, default="")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        db_index=True,
        help_text="Marketplace role of this account",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        return self.full_name.split(" ")[0] if self.full_name else self.email.split("@")[0]

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    @property
    def is_vendor(self) -> bool:
        return self.role == UserRole.VENDOR

    @property
    def is_marketplace_admin(self) -> bool:
        """Admins are ADMIN-role users or Django superusers."""
        return self.role == UserRole.ADMIN or self.is_superuser


class Vendor(BaseModel):
    """
    A seller on the marketplace.

    Every vendor owns exactly one Wallet, created by a post_save signal in
    the wallets app when the vendor is onboarded.

    Fields:
        user: The VENDOR-role account operating this shop
        business_name: Public shop name
        commission_rate: Fraction of each line total retained by the
            platform (e.g. 0.10). Must be in [0, 1).
        is_active: Suspended vendors keep their wallet and history
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="vendor",
    )
    business_name = models.CharField(max_length=200)
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=default_commission_rate,
        validators=[
            MinValueValidator(Decimal("0")),
            MaxValueValidator(Decimal("0.9999")),
        ],
        help_text="Platform commission as a fraction (0.10 = 10%)",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["business_name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(commission_rate__gte=0) & models.Q(commission_rate__lt=1),
                name="vendor_commission_rate_fraction",
            ),
        ]

    def __str__(self) -> str:
        return self.business_name

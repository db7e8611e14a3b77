"""
Dispute models.

- Dispute: a customer's claim against a delivered order
- DisputeComment: the thread between customer, vendor(s) and admins,
  including system comments for resolution and refund outcomes

State machine (django-fsm):
    OPEN -> IN_REVIEW                      first admin comment or resolution
    IN_REVIEW -> RESOLVED_CUSTOMER_FAVOR   refund follows after commit
    IN_REVIEW -> RESOLVED_VENDOR_FAVOR     order closed, no money moves
    IN_REVIEW -> CLOSED                    order closed, no money moves

Resolved and closed disputes accept no comments and no re-resolution.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from core.money import MoneyField


class DisputeReason(models.TextChoices):
    DAMAGED_PRODUCT = "DAMAGED_PRODUCT", "Damaged product"
    WRONG_ITEM = "WRONG_ITEM", "Wrong item"
    NOT_AS_DESCRIBED = "NOT_AS_DESCRIBED", "Not as described"
    NOT_RECEIVED = "NOT_RECEIVED", "Not received"
    QUALITY_ISSUE = "QUALITY_ISSUE", "Quality issue"
    OTHER = "OTHER", "Other"


class DisputeStatus(models.TextChoices):
    OPEN = "OPEN", "Open"
    IN_REVIEW = "IN_REVIEW", "In review"
    RESOLVED_CUSTOMER_FAVOR = "RESOLVED_CUSTOMER_FAVOR", "Resolved in customer's favor"
    RESOLVED_VENDOR_FAVOR = "RESOLVED_VENDOR_FAVOR", "Resolved in vendor's favor"
    CLOSED = "CLOSED", "Closed"


class ResolutionType(models.TextChoices):
    CUSTOMER_FAVOR = "CUSTOMER_FAVOR", "Customer favor"
    VENDOR_FAVOR = "VENDOR_FAVOR", "Vendor favor"
    CLOSED_NO_ACTION = "CLOSED_NO_ACTION", "Closed, no action"


ACTIVE_DISPUTE_STATUSES = (DisputeStatus.OPEN, DisputeStatus.IN_REVIEW)

TERMINAL_DISPUTE_STATUSES = (
    DisputeStatus.RESOLVED_CUSTOMER_FAVOR,
    DisputeStatus.RESOLVED_VENDOR_FAVOR,
    DisputeStatus.CLOSED,
)


class Dispute(UUIDPrimaryKeyMixin, BaseModel):
    """
    Customer dispute against an order.

    Fields:
        order / customer: Disputed order and its buyer
        reason / description / evidence: Claim details; evidence is a
            list of HTTPS image URLs
        status: DisputeStatus (FSM, protected)
        resolution_type / resolution_notes / resolved_by / resolved_at:
            Set once by the resolving admin
        refund_amount: Refund requested at resolution (None = order total)
        refunded_amount / refunded_at: What was actually returned
        gateway_refunded_amount / gateway_refunded_at: Committed as soon as
            the gateway accepts the refund, before the ledger reversal
        refund_failed / refund_error: Durable flag for manual follow-up
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="disputes",
    )
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="disputes",
    )
    reason = models.CharField(max_length=20, choices=DisputeReason.choices)
    description = models.TextField()
    evidence = models.JSONField(default=list, blank=True)

    status = FSMField(
        default=DisputeStatus.OPEN,
        choices=DisputeStatus.choices,
        db_index=True,
        protected=True,
    )
    # Order status when the dispute was opened
    order_status_at_open = models.CharField(max_length=20, blank=True, default="")

    resolution_type = models.CharField(
        max_length=20,
        choices=ResolutionType.choices,
        blank=True,
        default="",
    )
    resolution_notes = models.TextField(blank=True, default="")
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="resolved_disputes",
        null=True,
        blank=True,
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    refund_amount = MoneyField(null=True, blank=True, default=None)
    refunded_amount = MoneyField()
    refunded_at = models.DateTimeField(null=True, blank=True)
    gateway_refunded_amount = MoneyField(null=True, blank=True, default=None)
    gateway_refunded_at = models.DateTimeField(null=True, blank=True)
    refund_failed = models.BooleanField(default=False)
    refund_error = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="dispute_order_status_idx"),
            models.Index(fields=["status", "-created_at"], name="dispute_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Dispute({self.id}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_DISPUTE_STATUSES

    @transition(field=status, source=DisputeStatus.OPEN, target=DisputeStatus.IN_REVIEW)
    def start_review(self):
        pass

    def _stamp_resolution(self, admin, resolution_type: str, notes: str) -> None:
        self.resolution_type = resolution_type
        self.resolution_notes = notes
        self.resolved_by = admin
        self.resolved_at = timezone.now()

    @transition(
        field=status,
        source=DisputeStatus.IN_REVIEW,
        target=DisputeStatus.RESOLVED_CUSTOMER_FAVOR,
    )
    def resolve_customer_favor(self, admin, notes: str, refund_amount=None):
        self._stamp_resolution(admin, ResolutionType.CUSTOMER_FAVOR, notes)
        self.refund_amount = refund_amount

    @transition(
        field=status,
        source=DisputeStatus.IN_REVIEW,
        target=DisputeStatus.RESOLVED_VENDOR_FAVOR,
    )
    def resolve_vendor_favor(self, admin, notes: str):
        self._stamp_resolution(admin, ResolutionType.VENDOR_FAVOR, notes)

    @transition(field=status, source=DisputeStatus.IN_REVIEW, target=DisputeStatus.CLOSED)
    def close(self, admin, notes: str):
        self._stamp_resolution(admin, ResolutionType.CLOSED_NO_ACTION, notes)


class DisputeComment(BaseModel):
    """
    One message in a dispute thread.

    System comments (author None, is_system True) record the resolution
    and the refund outcome.
    """

    dispute = models.ForeignKey(Dispute, on_delete=models.CASCADE, related_name="comments")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="dispute_comments",
        null=True,
        blank=True,
    )
    author_role = models.CharField(max_length=10, blank=True, default="")
    body = models.TextField()
    is_system = models.BooleanField(default=False)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"Comment on {self.dispute_id} by {self.author_id or 'system'}"

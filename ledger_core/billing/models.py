# ledger_core/billing/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models

from ledger_core.common.models import TimeStampedModel, UUIDModel


class InvoiceStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    ISSUED = "issued", "Issued"
    PARTIALLY_PAID = "partially_paid", "Partially Paid"
    PAID = "paid", "Paid"
    OVERDUE = "overdue", "Overdue"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


class ItemCategory(models.TextChoices):
    CONSULTATION = "consultation", "Consultation"
    PROCEDURE = "procedure", "Procedure"
    MEDICATION = "medication", "Medication"
    LAB_TEST = "lab_test", "Lab Test"
    IMAGING = "imaging", "Imaging"
    OTHER = "other", "Other"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    CREDIT_CARD = "credit_card", "Credit Card"
    DEBIT_CARD = "debit_card", "Debit Card"
    BANK_TRANSFER = "bank_transfer", "Bank Transfer"
    INSURANCE = "insurance", "Insurance"
    OTHER = "other", "Other"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class ClaimStatus(models.TextChoices):
    NOT_SUBMITTED = "not_submitted", "Not Submitted"
    SUBMITTED = "submitted", "Submitted"
    IN_PROGRESS = "in_progress", "In Progress"
    APPROVED = "approved", "Approved"
    PARTIALLY_APPROVED = "partially_approved", "Partially Approved"
    DENIED = "denied", "Denied"


class Invoice(UUIDModel):
    """
    Aggregate root of the ledger: items, payments and the (single) insurance claim.

    Derived money fields (subtotal/tax/total/paid/due) are written only by
    billing.services, which recompute them from items and completed payments.
    `version` is bumped by every committed mutation (optimistic concurrency).
    """
    patient_id = models.CharField(max_length=64, db_index=True)
    doctor_id = models.CharField(max_length=64, db_index=True)
    appointment_id = models.CharField(max_length=64, blank=True, default="")

    invoice_number = models.CharField(max_length=32, unique=True)
    status = models.CharField(max_length=32, choices=InvoiceStatus.choices, default=InvoiceStatus.DRAFT, db_index=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))  # percent, e.g. 10.00
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    amount_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    due_date = models.DateTimeField(db_index=True)
    issued_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    # embedded insurance claim (at most one per invoice)
    claim_id = models.CharField(max_length=64, blank=True, default="")
    claim_status = models.CharField(
        max_length=32,
        choices=ClaimStatus.choices,
        default=ClaimStatus.NOT_SUBMITTED,
        db_index=True,
    )
    claim_approved_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    claim_denial_reason = models.TextField(blank=True, default="")

    notes = models.TextField(blank=True, default="")

    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "billing_invoice"
        indexes = [
            models.Index(fields=["status", "created_at"]),
            models.Index(fields=["patient_id", "created_at"]),
            models.Index(fields=["doctor_id", "created_at"]),
            models.Index(fields=["status", "due_date"]),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount_due__gte=0), name="ck_invoice_amount_due_gte_0"),
            models.CheckConstraint(condition=models.Q(amount_paid__gte=0), name="ck_invoice_amount_paid_gte_0"),
            models.CheckConstraint(condition=models.Q(total_amount__gte=0), name="ck_invoice_total_gte_0"),
        ]

    def __str__(self) -> str:
        return f"{self.invoice_number} ({self.status})"

    @property
    def has_claim(self) -> bool:
        return bool(self.claim_id)

    @property
    def insurance_claim(self) -> dict:
        return {
            "claim_id": self.claim_id or None,
            "status": self.claim_status,
            "approved_amount": self.claim_approved_amount,
            "denial_reason": self.claim_denial_reason or None,
        }


class BillingItem(UUIDModel):
    """
    One billable line. total_price = quantity * unit_price - discount_amount,
    recomputed whenever the item set is written.
    """
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField(default=0)

    description = models.CharField(max_length=255)
    code = models.CharField(max_length=64, blank=True, default="")
    category = models.CharField(max_length=32, choices=ItemCategory.choices, default=ItemCategory.OTHER)
    taxable = models.BooleanField(default=True)

    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "billing_item"
        ordering = ["position", "created_at"]
        indexes = [
            models.Index(fields=["invoice", "position"]),
        ]


class Payment(UUIDModel):
    """
    Settlement event against an invoice. Never deleted; voiding flips
    status to REFUNDED and annotates notes.
    """
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=32, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.COMPLETED, db_index=True)

    transaction_id = models.CharField(max_length=64, blank=True, default="")
    receipt_number = models.CharField(max_length=32, unique=True)
    notes = models.TextField(blank=True, default="")

    processed_by = models.CharField(max_length=64, blank=True, default="")
    processed_at = models.DateTimeField()

    class Meta:
        db_table = "billing_payment"
        ordering = ["processed_at", "created_at"]
        indexes = [
            models.Index(fields=["invoice", "processed_at"]),
            models.Index(fields=["invoice", "status"]),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="ck_payment_amount_gt_0"),
        ]


class InvoiceSequence(TimeStampedModel):
    """
    Per-UTC-day counter backing INV-YYYYMMDD-NNNN numbers.
    Incremented under a row lock; never derived from counting invoices.
    """
    day = models.DateField(primary_key=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "billing_invoice_sequence"

    def __str__(self) -> str:
        return f"{self.day:%Y%m%d}={self.last_value}"

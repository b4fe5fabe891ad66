# ledger_core/billing/services.py
from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Mapping
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework.exceptions import ValidationError

from ledger_core.billing.calculator import ZERO, Totals, compute_item_total, compute_totals, to_money
from ledger_core.billing.models import (
    BillingItem,
    ClaimStatus,
    Invoice,
    InvoiceStatus,
    ItemCategory,
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from ledger_core.billing.numbering import InvoiceNumberAllocator, receipt_number
from ledger_core.billing.state import can, derive_status
from ledger_core.common.api.exceptions import ConflictError, InvalidStateError, NotFoundError
from ledger_core.common.context import SYSTEM_ACTOR, Actor
from ledger_core.common.events import publish_on_commit
from ledger_core.insurance.selectors import has_active_coverage

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"items", "tax_rate", "discount_amount", "due_date", "notes", "appointment_id"})
MONEY_FIELDS = frozenset({"items", "tax_rate", "discount_amount"})

RESOLVABLE_CLAIM_STATUSES = frozenset({
    ClaimStatus.IN_PROGRESS,
    ClaimStatus.APPROVED,
    ClaimStatus.PARTIALLY_APPROVED,
    ClaimStatus.DENIED,
})
ACTIVE_CLAIM_STATUSES = frozenset({ClaimStatus.SUBMITTED, ClaimStatus.IN_PROGRESS})
FINAL_CLAIM_STATUSES = frozenset({ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED, ClaimStatus.DENIED})
SETTLING_CLAIM_STATUSES = frozenset({ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED})


# -------------------------------------------------------------------
# Input cleaning
# -------------------------------------------------------------------

def _money(value, field_name: str) -> Decimal:
    try:
        return to_money(value, field_name=field_name)
    except ValueError:
        raise ValidationError({field_name: "Invalid decimal value."})


def _non_negative(value, field_name: str) -> Decimal:
    d = _money(value if value is not None else ZERO, field_name)
    if d < ZERO:
        raise ValidationError({field_name: "Must be >= 0."})
    return d


def _clean_quantity(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError({field_name: "Quantity must be a whole number >= 1."})
    try:
        d = Decimal(str(value))
    except Exception:
        raise ValidationError({field_name: "Quantity must be a whole number >= 1."})
    if not d.is_finite() or d != d.to_integral_value() or d < 1:
        raise ValidationError({field_name: "Quantity must be a whole number >= 1."})
    return int(d)


def _clean_items(items: Iterable[Mapping[str, Any]] | None) -> list[dict]:
    cleaned: list[dict] = []
    for i, raw in enumerate(items or []):
        prefix = f"items[{i}]"
        if not isinstance(raw, Mapping):
            raise ValidationError({prefix: "Each item must be an object."})

        description = str(raw.get("description") or "").strip()
        if not description:
            raise ValidationError({f"{prefix}.description": "This field is required."})

        quantity = _clean_quantity(raw.get("quantity", 1), f"{prefix}.quantity")
        unit_price = _non_negative(raw.get("unit_price", ZERO), f"{prefix}.unit_price")
        discount = _non_negative(raw.get("discount_amount"), f"{prefix}.discount_amount")
        if discount > quantity * unit_price:
            raise ValidationError({f"{prefix}.discount_amount": "Discount cannot exceed quantity * unit_price."})

        category = raw.get("category") or ItemCategory.OTHER
        if category not in ItemCategory.values:
            raise ValidationError({f"{prefix}.category": f"Unknown category: {category}"})

        cleaned.append({
            "description": description[:255],
            "code": str(raw.get("code") or "").strip(),
            "category": category,
            "taxable": bool(raw.get("taxable", True)),
            "quantity": quantity,
            "unit_price": unit_price,
            "discount_amount": discount,
            "total_price": compute_item_total(quantity, unit_price, discount),
            "notes": str(raw.get("notes") or ""),
        })
    return cleaned


def _clean_due_date(value) -> datetime:
    """
    Accepts a datetime, a date or an ISO string. Dates without a time (either form)
    become due at the end of that day.
    """
    if isinstance(value, str):
        raw = value.strip()
        try:
            parsed = parse_date(raw) or parse_datetime(raw)
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationError({"due_date": "Invalid date/datetime."})
        value = parsed

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time(23, 59, 59))
    else:
        raise ValidationError({"due_date": "This field is required."})

    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


def _check_invoice_discount(totals: Totals, discount: Decimal) -> None:
    if discount > totals.subtotal + totals.tax_amount:
        raise ValidationError({"discount_amount": "Discount cannot exceed subtotal + tax."})


def _append_note(existing: str, line: str) -> str:
    existing = (existing or "").strip()
    return f"{existing}\n\n{line}" if existing else line


def _as_uuid(value, what: str) -> UUID:
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise NotFoundError(f"{what} not found.")


# -------------------------------------------------------------------
# Read-validate-write helpers shared by every mutator
# -------------------------------------------------------------------

class _Ledger:
    @staticmethod
    def lock(invoice_id) -> Invoice:
        try:
            return Invoice.objects.select_for_update().get(id=_as_uuid(invoice_id, "Invoice"))
        except (Invoice.DoesNotExist, DjangoValidationError):
            raise NotFoundError("Invoice not found.")

    @staticmethod
    def check_version(invoice: Invoice, expected_version) -> None:
        if expected_version is None:
            return
        if int(expected_version) != invoice.version:
            raise ConflictError(
                f"Invoice {invoice.invoice_number} is at version {invoice.version}, expected {expected_version}."
            )

    @staticmethod
    def commit(invoice: Invoice, fields: Iterable[str]) -> None:
        """
        Conditional write: succeeds only if nobody bumped `version` since our read.
        """
        now = timezone.now()
        values = {f: getattr(invoice, f) for f in set(fields)}
        values["updated_at"] = now

        rows = Invoice.objects.filter(pk=invoice.pk, version=invoice.version).update(
            version=F("version") + 1,
            **values,
        )
        if rows != 1:
            raise ConflictError(f"Invoice {invoice.invoice_number} was modified concurrently; reload and retry.")

        invoice.version += 1
        invoice.updated_at = now

    @staticmethod
    def settle(invoice: Invoice, *, keep_overdue: bool = False) -> None:
        """
        Recompute amount_paid from completed payments, then amount_due, status and paid_at.
        keep_overdue: an overdue invoice stays overdue unless the new amounts make it paid.
        """
        was_overdue = invoice.status == InvoiceStatus.OVERDUE
        paid = invoice.payments.filter(status=PaymentStatus.COMPLETED).aggregate(
            total=Sum("amount", default=ZERO)
        )["total"]

        invoice.amount_paid = to_money(paid)
        invoice.amount_due = max(to_money(invoice.total_amount - invoice.amount_paid), ZERO)

        invoice.status = derive_status(invoice.amount_paid, invoice.total_amount, invoice.status)
        if keep_overdue and was_overdue and invoice.status != InvoiceStatus.PAID:
            invoice.status = InvoiceStatus.OVERDUE
        if invoice.status == InvoiceStatus.PAID:
            invoice.paid_at = invoice.paid_at or timezone.now()
        else:
            invoice.paid_at = None

    @staticmethod
    def write_items(invoice: Invoice, cleaned: list[dict]) -> None:
        invoice.items.all().delete()
        BillingItem.objects.bulk_create(
            [BillingItem(invoice=invoice, position=i, **item) for i, item in enumerate(cleaned)]
        )


def _default_actor(invoice: Invoice) -> Actor:
    return Actor(id=invoice.doctor_id, role="doctor")


def _emit(event_name: str, invoice: Invoice, actor: Actor, **extra) -> None:
    payload = {
        "invoice_id": str(invoice.id),
        "invoice_number": invoice.invoice_number,
        "patient_id": invoice.patient_id,
        "doctor_id": invoice.doctor_id,
        "status": invoice.status,
        "total_amount": str(invoice.total_amount),
        "amount_paid": str(invoice.amount_paid),
        "amount_due": str(invoice.amount_due),
        "actor_id": actor.id,
        "actor_role": actor.role,
    }
    payload.update({k: (str(v) if isinstance(v, (Decimal, UUID)) else v) for k, v in extra.items()})
    publish_on_commit(event_name, payload)


# -------------------------------------------------------------------
# Invoice lifecycle
# -------------------------------------------------------------------

class InvoiceService:
    @staticmethod
    @transaction.atomic
    def create(
        *,
        patient_id: str,
        doctor_id: str,
        items: Iterable[Mapping[str, Any]],
        due_date,
        tax_rate=ZERO,
        discount_amount=ZERO,
        appointment_id: str = "",
        notes: str = "",
        actor: Actor | None = None,
    ) -> Invoice:
        if not str(patient_id or "").strip():
            raise ValidationError({"patient_id": "This field is required."})
        if not str(doctor_id or "").strip():
            raise ValidationError({"doctor_id": "This field is required."})

        cleaned = _clean_items(items)
        tax_rate = _non_negative(tax_rate, "tax_rate")
        discount_amount = _non_negative(discount_amount, "discount_amount")
        due = _clean_due_date(due_date)

        totals = compute_totals(cleaned, tax_rate, discount_amount)
        _check_invoice_discount(totals, discount_amount)

        invoice = Invoice.objects.create(
            patient_id=str(patient_id),
            doctor_id=str(doctor_id),
            appointment_id=str(appointment_id or ""),
            invoice_number=InvoiceNumberAllocator.allocate(),
            status=InvoiceStatus.DRAFT,
            subtotal=totals.subtotal,
            tax_rate=tax_rate,
            tax_amount=totals.tax_amount,
            discount_amount=discount_amount,
            total_amount=totals.total_amount,
            amount_paid=ZERO,
            amount_due=totals.total_amount,
            due_date=due,
            claim_status=ClaimStatus.NOT_SUBMITTED,
            notes=notes or "",
        )
        _Ledger.write_items(invoice, cleaned)

        logger.info("invoice %s created for patient %s total=%s", invoice.invoice_number, invoice.patient_id, invoice.total_amount)
        _emit("invoice.created", invoice, actor or _default_actor(invoice))
        return invoice

    @staticmethod
    @transaction.atomic
    def issue(*, invoice_id, actor: Actor | None = None, expected_version=None) -> Invoice:
        invoice = _Ledger.lock(invoice_id)
        _Ledger.check_version(invoice, expected_version)

        if not can("issue", invoice.status):
            raise InvalidStateError(f"Only draft invoices can be issued (status: {invoice.status}).")
        if not invoice.invoice_number:
            raise InvalidStateError("Invoice has no invoice number.")

        invoice.status = InvoiceStatus.ISSUED
        invoice.issued_at = timezone.now()
        _Ledger.commit(invoice, ["status", "issued_at"])

        logger.info("invoice %s issued", invoice.invoice_number)
        _emit("invoice.issued", invoice, actor or _default_actor(invoice))
        return invoice

    @staticmethod
    @transaction.atomic
    def update(
        *,
        invoice_id,
        updates: Mapping[str, Any],
        actor: Actor | None = None,
        expected_version=None,
    ) -> Invoice:
        """
        Partial update. Money changes (items / tax_rate / discount_amount) re-run the
        calculator against the stored or supplied items; amount_paid is never touched.
        """
        unknown = sorted(set(updates) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError({k: "This field cannot be updated." for k in unknown})

        invoice = _Ledger.lock(invoice_id)
        _Ledger.check_version(invoice, expected_version)

        if "items" in updates and invoice.status != InvoiceStatus.DRAFT:
            raise InvalidStateError(f"Items can only be changed on a draft invoice (status: {invoice.status}).")

        money_change = bool(MONEY_FIELDS & set(updates))
        if money_change and invoice.status in (InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED):
            raise InvalidStateError(f"Cannot change amounts on an invoice with status: {invoice.status}")

        fields: list[str] = []

        if "due_date" in updates:
            invoice.due_date = _clean_due_date(updates["due_date"])
            fields.append("due_date")
        if "notes" in updates:
            if invoice.status in (InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED):
                # closing reasons stay on record
                if updates["notes"]:
                    invoice.notes = _append_note(invoice.notes, updates["notes"])
            else:
                invoice.notes = updates["notes"] or ""
            fields.append("notes")
        if "appointment_id" in updates:
            invoice.appointment_id = str(updates["appointment_id"] or "")
            fields.append("appointment_id")

        if money_change:
            cleaned = _clean_items(updates["items"]) if "items" in updates else None
            tax_rate = _non_negative(updates["tax_rate"], "tax_rate") if "tax_rate" in updates else invoice.tax_rate
            discount = (
                _non_negative(updates["discount_amount"], "discount_amount")
                if "discount_amount" in updates
                else invoice.discount_amount
            )

            totals = compute_totals(cleaned if cleaned is not None else invoice.items.all(), tax_rate, discount)
            _check_invoice_discount(totals, discount)
            if totals.total_amount < invoice.amount_paid:
                raise ValidationError(
                    {"total_amount": f"New total {totals.total_amount} is below the amount already paid ({invoice.amount_paid})."}
                )

            if cleaned is not None:
                _Ledger.write_items(invoice, cleaned)

            invoice.tax_rate = tax_rate
            invoice.discount_amount = discount
            invoice.subtotal = totals.subtotal
            invoice.tax_amount = totals.tax_amount
            invoice.total_amount = totals.total_amount
            _Ledger.settle(invoice, keep_overdue=True)
            fields += [
                "tax_rate",
                "discount_amount",
                "subtotal",
                "tax_amount",
                "total_amount",
                "amount_paid",
                "amount_due",
                "status",
                "paid_at",
            ]

        if not fields:
            return invoice

        _Ledger.commit(invoice, fields)

        logger.info("invoice %s updated (%s)", invoice.invoice_number, ", ".join(sorted(updates)))
        _emit("invoice.updated", invoice, actor or _default_actor(invoice), updated_fields=sorted(updates))
        return invoice

    @staticmethod
    @transaction.atomic
    def cancel(*, invoice_id, reason: str = "", actor: Actor | None = None, expected_version=None) -> Invoice:
        invoice = _Ledger.lock(invoice_id)
        _Ledger.check_version(invoice, expected_version)

        if not can("cancel", invoice.status):
            raise InvalidStateError(f"Cannot cancel an invoice with status: {invoice.status}")

        invoice.status = InvoiceStatus.CANCELLED
        if reason:
            invoice.notes = _append_note(invoice.notes, f"Cancellation reason: {reason}")
        _Ledger.commit(invoice, ["status", "notes"])

        logger.info("invoice %s cancelled", invoice.invoice_number)
        _emit("invoice.cancelled", invoice, actor or _default_actor(invoice), reason=reason)
        return invoice

    @staticmethod
    @transaction.atomic
    def delete(*, invoice_id, actor: Actor | None = None, expected_version=None) -> None:
        invoice = _Ledger.lock(invoice_id)
        _Ledger.check_version(invoice, expected_version)

        if not can("delete", invoice.status):
            raise InvalidStateError("Only draft invoices can be deleted.")

        actor = actor or _default_actor(invoice)
        _emit("invoice.deleted", invoice, actor)
        invoice.delete()

        logger.info("invoice %s deleted", invoice.invoice_number)

    @staticmethod
    @transaction.atomic
    def mark_overdue(*, invoice_id, now: datetime | None = None, actor: Actor | None = None) -> Invoice:
        """
        Entry point for the external overdue scan.
        """
        now = now or timezone.now()
        invoice = _Ledger.lock(invoice_id)

        if not can("mark_overdue", invoice.status):
            raise InvalidStateError(f"Cannot mark an invoice with status {invoice.status} as overdue.")
        if invoice.due_date >= now:
            raise InvalidStateError(f"Invoice {invoice.invoice_number} is not past its due date.")

        invoice.status = InvoiceStatus.OVERDUE
        _Ledger.commit(invoice, ["status"])

        logger.info("invoice %s marked overdue", invoice.invoice_number)
        _emit("invoice.overdue", invoice, actor or SYSTEM_ACTOR)
        return invoice

    @staticmethod
    @transaction.atomic
    def refund(*, invoice_id, reason: str = "", actor: Actor | None = None, expected_version=None) -> Invoice:
        """
        Refund every completed payment and close the invoice as REFUNDED.
        """
        invoice = _Ledger.lock(invoice_id)
        _Ledger.check_version(invoice, expected_version)

        if not can("refund", invoice.status):
            raise InvalidStateError(f"Cannot refund an invoice with status: {invoice.status}")

        completed = list(invoice.payments.select_for_update().filter(status=PaymentStatus.COMPLETED))
        if not completed:
            raise InvalidStateError("Invoice has no completed payments to refund.")

        note = f"Refund reason: {reason}" if reason else "Refunded"
        for p in completed:
            p.status = PaymentStatus.REFUNDED
            p.notes = _append_note(p.notes, note)
            p.save(update_fields=["status", "notes", "updated_at"])

        refunded_total = sum((p.amount for p in completed), ZERO)

        invoice.status = InvoiceStatus.REFUNDED
        _Ledger.settle(invoice)
        if reason:
            invoice.notes = _append_note(invoice.notes, note)
        _Ledger.commit(invoice, ["status", "amount_paid", "amount_due", "paid_at", "notes"])

        logger.info("invoice %s refunded (%s)", invoice.invoice_number, refunded_total)
        _emit(
            "invoice.refunded",
            invoice,
            actor or _default_actor(invoice),
            refunded_amount=refunded_total,
            payment_ids=[str(p.id) for p in completed],
            reason=reason,
        )
        return invoice


# -------------------------------------------------------------------
# Payments
# -------------------------------------------------------------------

class PaymentService:
    @staticmethod
    @transaction.atomic
    def record_payment(
        *,
        invoice_id,
        amount,
        method: str,
        processed_by: str,
        transaction_id: str = "",
        notes: str = "",
        actor: Actor | None = None,
        expected_version=None,
    ) -> Payment:
        amount = _money(amount, "amount")
        if amount <= ZERO:
            raise ValidationError({"amount": "Payment amount must be > 0."})
        if method not in PaymentMethod.values:
            raise ValidationError({"method": f"Unknown payment method: {method}"})

        invoice = _Ledger.lock(invoice_id)
        _Ledger.check_version(invoice, expected_version)

        if not can("record_payment", invoice.status):
            raise InvalidStateError(f"Cannot record payment for an invoice with status: {invoice.status}")
        if amount > invoice.amount_due:
            raise ValidationError(
                {"amount": f"Invalid payment amount. Amount must be between 0 and {invoice.amount_due}."}
            )

        now = timezone.now()
        payment = Payment.objects.create(
            invoice=invoice,
            amount=amount,
            method=method,
            status=PaymentStatus.COMPLETED,
            transaction_id=transaction_id or "",
            receipt_number=receipt_number(prefix="INS" if method == PaymentMethod.INSURANCE else "RCPT", at=now),
            notes=notes or "",
            processed_by=str(processed_by or ""),
            processed_at=now,
        )

        _Ledger.settle(invoice)
        _Ledger.commit(invoice, ["amount_paid", "amount_due", "status", "paid_at"])

        logger.info(
            "payment %s of %s (%s) recorded on invoice %s -> %s",
            payment.receipt_number, amount, method, invoice.invoice_number, invoice.status,
        )
        _emit(
            "payment.recorded",
            invoice,
            actor or Actor(id=str(processed_by or ""), role="staff"),
            payment_id=payment.id,
            receipt_number=payment.receipt_number,
            amount=amount,
            method=method,
        )
        return payment

    @staticmethod
    @transaction.atomic
    def void_payment(
        *,
        invoice_id,
        payment_id,
        reason: str = "",
        actor: Actor | None = None,
        expected_version=None,
    ) -> Payment:
        """
        Flip a completed payment to REFUNDED and recompute from the remaining
        completed payments (order of payments does not matter).
        """
        invoice = _Ledger.lock(invoice_id)
        _Ledger.check_version(invoice, expected_version)

        try:
            payment = invoice.payments.select_for_update().get(id=_as_uuid(payment_id, "Payment"))
        except (Payment.DoesNotExist, DjangoValidationError):
            raise NotFoundError("Payment not found in invoice.")

        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidStateError(f"Cannot void a payment with status: {payment.status}")

        payment.status = PaymentStatus.REFUNDED
        payment.notes = _append_note(payment.notes, f"Void reason: {reason}" if reason else "Voided")
        payment.save(update_fields=["status", "notes", "updated_at"])

        _Ledger.settle(invoice)
        _Ledger.commit(invoice, ["amount_paid", "amount_due", "status", "paid_at"])

        logger.info("payment %s voided on invoice %s -> %s", payment.receipt_number, invoice.invoice_number, invoice.status)
        _emit(
            "payment.voided",
            invoice,
            actor or _default_actor(invoice),
            payment_id=payment.id,
            amount=payment.amount,
            reason=reason,
        )
        return payment


# -------------------------------------------------------------------
# Insurance claims
# -------------------------------------------------------------------

class InsuranceClaimService:
    @staticmethod
    def check_coverage(*, patient_id: str) -> bool:
        return has_active_coverage(patient_id)

    @staticmethod
    @transaction.atomic
    def submit(*, invoice_id, claim_id: str, actor: Actor | None = None) -> Invoice:
        claim_id = str(claim_id or "").strip()
        if not claim_id:
            raise ValidationError({"claim_id": "This field is required."})

        invoice = _Ledger.lock(invoice_id)

        if not can("submit_claim", invoice.status):
            raise InvalidStateError(f"Cannot submit to insurance an invoice with status: {invoice.status}")
        if invoice.has_claim and invoice.claim_status in ACTIVE_CLAIM_STATUSES:
            raise InvalidStateError(f"Invoice already has an active insurance claim ({invoice.claim_id}).")

        invoice.claim_id = claim_id
        invoice.claim_status = ClaimStatus.SUBMITTED
        invoice.claim_approved_amount = None
        invoice.claim_denial_reason = ""
        _Ledger.commit(invoice, ["claim_id", "claim_status", "claim_approved_amount", "claim_denial_reason"])

        logger.info("invoice %s submitted to insurance as claim %s", invoice.invoice_number, claim_id)
        _emit("claim.submitted", invoice, actor or _default_actor(invoice), claim_id=claim_id)
        return invoice

    @staticmethod
    @transaction.atomic
    def resolve(
        *,
        invoice_id,
        status: str,
        approved_amount=None,
        denial_reason: str = "",
        actor: Actor | None = None,
    ) -> Invoice:
        """
        Record the insurer's decision. An approval with a positive amount is
        settled through PaymentService.record_payment (method=insurance) in the
        same transaction, so a rejected settlement leaves the claim untouched.
        """
        if status not in RESOLVABLE_CLAIM_STATUSES:
            raise ValidationError({"status": f"Cannot resolve a claim to status: {status}"})

        approved = None
        if approved_amount is not None:
            approved = _money(approved_amount, "approved_amount")
            if approved < ZERO:
                raise ValidationError({"approved_amount": "Must be >= 0."})

        invoice = _Ledger.lock(invoice_id)

        if not invoice.has_claim:
            raise NotFoundError("Invoice does not have an insurance claim.")
        if invoice.claim_status in FINAL_CLAIM_STATUSES:
            raise InvalidStateError(f"Insurance claim {invoice.claim_id} is already {invoice.claim_status}.")

        actor = actor or _default_actor(invoice)

        invoice.claim_status = status
        if approved is not None:
            invoice.claim_approved_amount = approved
        if denial_reason:
            invoice.claim_denial_reason = denial_reason
        _Ledger.commit(invoice, ["claim_status", "claim_approved_amount", "claim_denial_reason"])

        payment = None
        if status in SETTLING_CLAIM_STATUSES and approved is not None and approved > ZERO:
            payment = PaymentService.record_payment(
                invoice_id=invoice.id,
                amount=approved,
                method=PaymentMethod.INSURANCE,
                processed_by=actor.id,
                transaction_id=invoice.claim_id,
                notes="Payment from insurance claim",
                actor=actor,
            )
            invoice.refresh_from_db()

        logger.info("claim %s on invoice %s resolved as %s", invoice.claim_id, invoice.invoice_number, status)
        _emit(
            "claim.resolved",
            invoice,
            actor,
            claim_id=invoice.claim_id,
            claim_status=status,
            approved_amount=approved,
            denial_reason=denial_reason,
            payment_id=payment.id if payment else None,
        )
        return invoice

# ledger_core/billing/tests/test_invoice_lifecycle.py
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from ledger_core.billing.tests.factories import consultation_items
from ledger_core.billing.models import BillingItem, ClaimStatus, Invoice, InvoiceStatus, PaymentStatus
from ledger_core.billing.services import InvoiceService
from ledger_core.common.api.exceptions import InvalidStateError, NotFoundError


@pytest.mark.django_db
def test_create_computes_reference_totals(make_invoice):
    inv = make_invoice()

    assert inv.status == InvoiceStatus.DRAFT
    assert inv.subtotal == Decimal("200.00")
    assert inv.tax_amount == Decimal("20.00")
    assert inv.total_amount == Decimal("220.00")
    assert inv.amount_paid == Decimal("0.00")
    assert inv.amount_due == Decimal("220.00")
    assert inv.claim_status == ClaimStatus.NOT_SUBMITTED
    assert inv.version == 1
    assert inv.invoice_number.startswith("INV-")

    items = list(inv.items.all())
    assert len(items) == 1
    assert items[0].total_price == Decimal("200.00")
    assert items[0].position == 0


@pytest.mark.django_db
def test_create_accepts_a_plain_date_as_due_date():
    due = (timezone.now() + timedelta(days=10)).date()
    inv = InvoiceService.create(
        patient_id="p-1",
        doctor_id="d-1",
        items=consultation_items(),
        due_date=due,
    )
    assert inv.due_date.date() == due


@pytest.mark.django_db
def test_date_string_and_date_object_share_end_of_day_due_time():
    due = (timezone.now() + timedelta(days=10)).date()
    from_date = InvoiceService.create(patient_id="p-1", doctor_id="d-1", items=consultation_items(), due_date=due)
    from_string = InvoiceService.create(
        patient_id="p-1", doctor_id="d-1", items=consultation_items(), due_date=due.isoformat()
    )

    assert from_string.due_date == from_date.due_date
    assert (from_string.due_date.hour, from_string.due_date.minute, from_string.due_date.second) == (23, 59, 59)


@pytest.mark.django_db
@pytest.mark.parametrize(
    "item_overrides",
    [
        {"quantity": 0},
        {"quantity": Decimal("1.5")},
        {"unit_price": Decimal("-1.00")},
        {"discount_amount": Decimal("250.00")},
        {"category": "massage"},
        {"description": "  "},
    ],
)
def test_create_rejects_invalid_items(make_invoice, item_overrides):
    item = {**consultation_items()[0], **item_overrides}
    with pytest.raises(ValidationError):
        make_invoice(items=[item])
    assert Invoice.objects.count() == 0


@pytest.mark.django_db
def test_create_rejects_discount_larger_than_subtotal_plus_tax(make_invoice):
    with pytest.raises(ValidationError):
        make_invoice(discount_amount=Decimal("220.01"))


@pytest.mark.django_db
def test_create_rejects_negative_tax(make_invoice):
    with pytest.raises(ValidationError):
        make_invoice(tax_rate=Decimal("-1"))


@pytest.mark.django_db
def test_issue_moves_draft_to_issued_once(make_invoice):
    inv = make_invoice()
    inv = InvoiceService.issue(invoice_id=inv.id)

    assert inv.status == InvoiceStatus.ISSUED
    assert inv.issued_at is not None
    assert inv.version == 2

    with pytest.raises(InvalidStateError):
        InvoiceService.issue(invoice_id=inv.id)


@pytest.mark.django_db
def test_unknown_invoice_is_not_found():
    with pytest.raises(NotFoundError):
        InvoiceService.issue(invoice_id=uuid.uuid4())
    with pytest.raises(NotFoundError):
        InvoiceService.issue(invoice_id="not-a-uuid")


@pytest.mark.django_db
def test_update_items_on_draft_recomputes_totals(make_invoice):
    inv = make_invoice()
    inv = InvoiceService.update(
        invoice_id=inv.id,
        updates={
            "items": [
                {"description": "X-ray", "category": "imaging", "quantity": 1, "unit_price": Decimal("80.00")},
                {"description": "Blood panel", "category": "lab_test", "quantity": 1, "unit_price": Decimal("20.00")},
            ],
            "discount_amount": Decimal("5.00"),
        },
    )

    assert inv.subtotal == Decimal("100.00")
    assert inv.tax_amount == Decimal("10.00")
    assert inv.total_amount == Decimal("105.00")
    assert inv.amount_due == Decimal("105.00")
    assert inv.status == InvoiceStatus.DRAFT
    assert BillingItem.objects.filter(invoice_id=inv.id).count() == 2


@pytest.mark.django_db
def test_items_are_frozen_after_issue(issued_invoice):
    with pytest.raises(InvalidStateError):
        InvoiceService.update(invoice_id=issued_invoice.id, updates={"items": consultation_items(quantity=1)})


@pytest.mark.django_db
def test_tax_change_after_payment_rederives_status(issued_invoice, pay):
    pay(issued_invoice, "220.00")

    inv = InvoiceService.update(invoice_id=issued_invoice.id, updates={"tax_rate": Decimal("20")})

    assert inv.total_amount == Decimal("240.00")
    assert inv.amount_paid == Decimal("220.00")
    assert inv.amount_due == Decimal("20.00")
    assert inv.status == InvoiceStatus.PARTIALLY_PAID
    assert inv.paid_at is None


@pytest.mark.django_db
def test_update_cannot_drop_total_below_amount_paid(issued_invoice, pay):
    pay(issued_invoice, "220.00")

    with pytest.raises(ValidationError):
        InvoiceService.update(invoice_id=issued_invoice.id, updates={"tax_rate": Decimal("0")})

    issued_invoice.refresh_from_db()
    assert issued_invoice.total_amount == Decimal("220.00")
    assert issued_invoice.status == InvoiceStatus.PAID


@pytest.mark.django_db
def test_update_rejects_unknown_fields(make_invoice):
    inv = make_invoice()
    with pytest.raises(ValidationError):
        InvoiceService.update(invoice_id=inv.id, updates={"amount_paid": Decimal("1")})


@pytest.mark.django_db
def test_cancelled_invoice_keeps_notes_editable_but_not_money(issued_invoice):
    InvoiceService.cancel(invoice_id=issued_invoice.id, reason="Duplicate")

    inv = InvoiceService.update(invoice_id=issued_invoice.id, updates={"notes": "See INV-1"})
    assert inv.notes == "Cancellation reason: Duplicate\n\nSee INV-1"

    inv = InvoiceService.update(invoice_id=issued_invoice.id, updates={"notes": ""})
    assert "Cancellation reason: Duplicate" in inv.notes

    with pytest.raises(InvalidStateError):
        InvoiceService.update(invoice_id=issued_invoice.id, updates={"discount_amount": Decimal("1")})


@pytest.mark.django_db
def test_cancel_appends_reason(issued_invoice):
    inv = InvoiceService.cancel(invoice_id=issued_invoice.id, reason="Patient withdrew")

    assert inv.status == InvoiceStatus.CANCELLED
    assert "Cancellation reason: Patient withdrew" in inv.notes


@pytest.mark.django_db
def test_paid_invoice_cannot_be_cancelled(issued_invoice, pay):
    pay(issued_invoice, "220.00")
    with pytest.raises(InvalidStateError):
        InvoiceService.cancel(invoice_id=issued_invoice.id, reason="late")


@pytest.mark.django_db
def test_delete_only_in_draft(make_invoice):
    draft = make_invoice()
    InvoiceService.delete(invoice_id=draft.id)

    assert not Invoice.objects.filter(id=draft.id).exists()
    assert not BillingItem.objects.filter(invoice_id=draft.id).exists()

    issued = make_invoice(issue=True)
    with pytest.raises(InvalidStateError):
        InvoiceService.delete(invoice_id=issued.id)


@pytest.mark.django_db
def test_mark_overdue_requires_past_due_date(make_invoice):
    late = make_invoice(due_date=timezone.now() - timedelta(days=1), issue=True)
    inv = InvoiceService.mark_overdue(invoice_id=late.id)
    assert inv.status == InvoiceStatus.OVERDUE

    on_time = make_invoice(issue=True)
    with pytest.raises(InvalidStateError):
        InvoiceService.mark_overdue(invoice_id=on_time.id)

    draft = make_invoice(due_date=timezone.now() - timedelta(days=1))
    with pytest.raises(InvalidStateError):
        InvoiceService.mark_overdue(invoice_id=draft.id)


@pytest.mark.django_db
def test_amount_change_keeps_overdue_invoice_overdue(make_invoice, pay):
    late = make_invoice(due_date=timezone.now() - timedelta(days=3), issue=True)
    InvoiceService.mark_overdue(invoice_id=late.id)

    inv = InvoiceService.update(invoice_id=late.id, updates={"discount_amount": Decimal("5")})
    assert inv.status == InvoiceStatus.OVERDUE
    assert inv.amount_due == Decimal("215.00")

    pay(inv, "100.00")
    InvoiceService.mark_overdue(invoice_id=late.id)
    inv = InvoiceService.update(invoice_id=late.id, updates={"tax_rate": Decimal("5")})
    assert inv.status == InvoiceStatus.OVERDUE

    # a discount that covers the rest settles it
    inv = InvoiceService.update(invoice_id=late.id, updates={"discount_amount": Decimal("110.00")})
    assert inv.total_amount == Decimal("100.00")
    assert inv.status == InvoiceStatus.PAID
    assert inv.paid_at is not None


@pytest.mark.django_db
def test_refund_reverses_all_completed_payments(issued_invoice, pay):
    p1 = pay(issued_invoice, "100.00")
    p2 = pay(issued_invoice, "120.00")

    inv = InvoiceService.refund(invoice_id=issued_invoice.id, reason="Billing error")

    assert inv.status == InvoiceStatus.REFUNDED
    assert inv.amount_paid == Decimal("0.00")
    assert inv.amount_due == Decimal("220.00")
    assert inv.paid_at is None
    for p in (p1, p2):
        p.refresh_from_db()
        assert p.status == PaymentStatus.REFUNDED
        assert "Refund reason: Billing error" in p.notes


@pytest.mark.django_db
def test_refund_requires_completed_payments(make_invoice, issued_invoice):
    with pytest.raises(InvalidStateError):
        InvoiceService.refund(invoice_id=issued_invoice.id, reason="nothing paid")

    with pytest.raises(InvalidStateError):
        InvoiceService.refund(invoice_id=make_invoice().id, reason="draft")

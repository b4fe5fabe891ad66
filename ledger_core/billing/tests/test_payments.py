# ledger_core/billing/tests/test_payments.py
import re
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from ledger_core.billing.models import InvoiceStatus, Payment, PaymentMethod, PaymentStatus
from ledger_core.billing.services import InvoiceService, PaymentService
from ledger_core.common.api.exceptions import InvalidStateError, NotFoundError


def _reload(inv):
    inv.refresh_from_db()
    return inv


@pytest.mark.django_db
def test_full_cash_payment_settles_invoice(issued_invoice, pay):
    p = pay(issued_invoice, "220.00")

    assert p.status == PaymentStatus.COMPLETED
    assert p.method == PaymentMethod.CASH
    assert re.fullmatch(r"RCPT-\d{8}-[0-9A-F]{8}", p.receipt_number)

    inv = _reload(issued_invoice)
    assert inv.status == InvoiceStatus.PAID
    assert inv.amount_paid == Decimal("220.00")
    assert inv.amount_due == Decimal("0.00")
    assert inv.paid_at is not None


@pytest.mark.django_db
def test_partial_then_full_payment(issued_invoice, pay):
    pay(issued_invoice, "100.00")
    inv = _reload(issued_invoice)
    assert inv.status == InvoiceStatus.PARTIALLY_PAID
    assert inv.amount_due == Decimal("120.00")

    pay(issued_invoice, "120.00", method="credit_card")
    inv = _reload(issued_invoice)
    assert inv.status == InvoiceStatus.PAID
    assert inv.amount_paid == Decimal("220.00")
    assert inv.amount_due == Decimal("0.00")


@pytest.mark.django_db
def test_each_payment_reduces_due_by_exactly_its_amount(issued_invoice, pay):
    due = issued_invoice.amount_due
    for amount in ("0.01", "33.33", "66.66"):
        pay(issued_invoice, amount)
        inv = _reload(issued_invoice)
        assert inv.amount_due == due - Decimal(amount)
        assert inv.amount_due == inv.total_amount - inv.amount_paid
        due = inv.amount_due


@pytest.mark.django_db
def test_voiding_a_non_latest_payment_recomputes_from_the_rest(issued_invoice, pay):
    first = pay(issued_invoice, "100.00")
    pay(issued_invoice, "120.00")

    voided = PaymentService.void_payment(invoice_id=issued_invoice.id, payment_id=first.id, reason="Duplicate charge")

    assert voided.status == PaymentStatus.REFUNDED
    assert "Void reason: Duplicate charge" in voided.notes

    inv = _reload(issued_invoice)
    assert inv.amount_paid == Decimal("120.00")
    assert inv.amount_due == Decimal("100.00")
    assert inv.status == InvoiceStatus.PARTIALLY_PAID
    assert inv.paid_at is None
    # payments are never deleted
    assert Payment.objects.filter(invoice_id=inv.id).count() == 2


@pytest.mark.django_db
@pytest.mark.parametrize("amount", ["50.00", "220.00"])
def test_void_of_record_restores_invoice(issued_invoice, pay, amount):
    before = _reload(issued_invoice)
    snapshot = (before.amount_paid, before.amount_due, before.status, before.paid_at)

    p = pay(issued_invoice, amount)
    PaymentService.void_payment(invoice_id=issued_invoice.id, payment_id=p.id, reason="test")

    after = _reload(issued_invoice)
    assert (after.amount_paid, after.amount_due, after.status, after.paid_at) == snapshot


@pytest.mark.django_db
@pytest.mark.parametrize("amount", ["0", "-10.00", "220.01"])
def test_payment_amount_must_be_within_amount_due(issued_invoice, pay, amount):
    with pytest.raises(ValidationError):
        pay(issued_invoice, amount)
    assert Payment.objects.filter(invoice_id=issued_invoice.id).count() == 0


@pytest.mark.django_db
def test_unknown_payment_method_rejected(issued_invoice):
    with pytest.raises(ValidationError):
        PaymentService.record_payment(
            invoice_id=issued_invoice.id,
            amount=Decimal("10.00"),
            method="bitcoin",
            processed_by="clerk-1",
        )


@pytest.mark.django_db
def test_payment_not_accepted_in_draft_or_terminal_states(make_invoice, pay):
    draft = make_invoice()
    with pytest.raises(InvalidStateError):
        pay(draft, "10.00")

    paid = make_invoice(issue=True)
    pay(paid, "220.00")
    with pytest.raises(InvalidStateError):
        pay(paid, "1.00")

    cancelled = make_invoice(issue=True)
    InvoiceService.cancel(invoice_id=cancelled.id, reason="void")
    with pytest.raises(InvalidStateError):
        pay(cancelled, "10.00")


@pytest.mark.django_db
def test_sequential_payments_cannot_jointly_overpay(issued_invoice, pay):
    pay(issued_invoice, "150.00")
    with pytest.raises(ValidationError):
        pay(issued_invoice, "150.00")

    inv = _reload(issued_invoice)
    assert inv.amount_paid == Decimal("150.00")


@pytest.mark.django_db
def test_void_requires_completed_payment(issued_invoice, pay):
    p = pay(issued_invoice, "50.00")
    PaymentService.void_payment(invoice_id=issued_invoice.id, payment_id=p.id, reason="first")

    with pytest.raises(InvalidStateError):
        PaymentService.void_payment(invoice_id=issued_invoice.id, payment_id=p.id, reason="again")


@pytest.mark.django_db
def test_void_unknown_payment_not_found(issued_invoice, make_invoice, pay):
    with pytest.raises(NotFoundError):
        PaymentService.void_payment(invoice_id=issued_invoice.id, payment_id=uuid.uuid4(), reason="x")

    # a payment that belongs to another invoice
    other = make_invoice(issue=True)
    p = pay(other, "10.00")
    with pytest.raises(NotFoundError):
        PaymentService.void_payment(invoice_id=issued_invoice.id, payment_id=p.id, reason="x")


@pytest.mark.django_db
def test_overdue_invoice_accepts_partial_payment(make_invoice, pay):
    inv = make_invoice(due_date=timezone.now() - timedelta(days=3), issue=True)
    InvoiceService.mark_overdue(invoice_id=inv.id)

    pay(inv, "20.00")
    inv = _reload(inv)
    assert inv.status == InvoiceStatus.PARTIALLY_PAID
    assert inv.amount_due == Decimal("200.00")

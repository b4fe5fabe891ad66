# ledger_core/billing/tests/test_state.py
from decimal import Decimal

import pytest

from ledger_core.billing.models import InvoiceStatus
from ledger_core.billing.state import can, derive_status

D = Decimal


@pytest.mark.parametrize(
    "paid,total,current,expected",
    [
        (D("0"), D("220"), InvoiceStatus.ISSUED, InvoiceStatus.ISSUED),
        (D("100"), D("220"), InvoiceStatus.ISSUED, InvoiceStatus.PARTIALLY_PAID),
        (D("220"), D("220"), InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID),
        (D("120"), D("220"), InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID),
        (D("0"), D("220"), InvoiceStatus.PAID, InvoiceStatus.ISSUED),
        (D("50"), D("220"), InvoiceStatus.OVERDUE, InvoiceStatus.PARTIALLY_PAID),
        # pinned statuses are never derived
        (D("0"), D("220"), InvoiceStatus.DRAFT, InvoiceStatus.DRAFT),
        (D("220"), D("220"), InvoiceStatus.CANCELLED, InvoiceStatus.CANCELLED),
        (D("0"), D("220"), InvoiceStatus.REFUNDED, InvoiceStatus.REFUNDED),
    ],
)
def test_derive_status(paid, total, current, expected):
    assert derive_status(paid, total, current) == expected


def test_zero_total_invoice_with_nothing_paid_stays_issued():
    assert derive_status(D("0"), D("0"), InvoiceStatus.ISSUED) == InvoiceStatus.ISSUED


def test_transition_guards():
    assert can("issue", InvoiceStatus.DRAFT)
    assert not can("issue", InvoiceStatus.ISSUED)

    assert can("record_payment", InvoiceStatus.OVERDUE)
    assert not can("record_payment", InvoiceStatus.PAID)
    assert not can("record_payment", InvoiceStatus.DRAFT)

    assert can("cancel", InvoiceStatus.PARTIALLY_PAID)
    assert not can("cancel", InvoiceStatus.PAID)

    assert can("mark_overdue", InvoiceStatus.PARTIALLY_PAID)
    assert not can("mark_overdue", InvoiceStatus.OVERDUE)

    assert can("refund", InvoiceStatus.PAID)
    assert not can("refund", InvoiceStatus.CANCELLED)

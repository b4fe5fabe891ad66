# ledger_core/billing/state.py
from __future__ import annotations

from decimal import Decimal

from ledger_core.billing.models import InvoiceStatus

# Statuses never recomputed from money: draft is pre-ledger, cancelled/refunded are terminal.
PINNED_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED})

TERMINAL_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED})

PAYABLE_STATUSES = frozenset({InvoiceStatus.ISSUED, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE})

OVERDUE_ELIGIBLE_STATUSES = frozenset({InvoiceStatus.ISSUED, InvoiceStatus.PARTIALLY_PAID})

CANCELLABLE_STATUSES = frozenset({
    InvoiceStatus.DRAFT,
    InvoiceStatus.ISSUED,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.OVERDUE,
})

REFUNDABLE_STATUSES = frozenset({
    InvoiceStatus.ISSUED,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.PAID,
    InvoiceStatus.OVERDUE,
})

# Explicit (non-derived) transitions driven by lifecycle operations.
TRANSITIONS: dict[str, frozenset[str]] = {
    "issue": frozenset({InvoiceStatus.DRAFT}),
    "cancel": CANCELLABLE_STATUSES,
    "delete": frozenset({InvoiceStatus.DRAFT}),
    "mark_overdue": OVERDUE_ELIGIBLE_STATUSES,
    "refund": REFUNDABLE_STATUSES,
    "record_payment": PAYABLE_STATUSES,
    "submit_claim": PAYABLE_STATUSES,
}


def can(operation: str, status: str) -> bool:
    return status in TRANSITIONS[operation]


def derive_status(amount_paid: Decimal, total_amount: Decimal, current_status: str) -> str:
    """
    The one place invoice status is computed from money.

    pinned (draft/cancelled/refunded) -> unchanged
    paid >= total (and something was paid)  -> paid
    0 < paid < total                        -> partially_paid
    nothing paid                            -> issued
    """
    if current_status in PINNED_STATUSES:
        return current_status

    if amount_paid > 0 and amount_paid >= total_amount:
        return InvoiceStatus.PAID
    if amount_paid > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.ISSUED

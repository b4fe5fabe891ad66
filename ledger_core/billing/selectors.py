# ledger_core/billing/selectors.py
from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from django.db.models import Count, Q, QuerySet, Sum
from django.utils import timezone

from ledger_core.billing.calculator import ZERO, to_money
from ledger_core.billing.models import ClaimStatus, Invoice, InvoiceStatus, Payment
from ledger_core.billing.state import OVERDUE_ELIGIBLE_STATUSES

PERIODS = ("day", "week", "month", "year")
PENDING_CLAIM_STATUSES = (ClaimStatus.SUBMITTED, ClaimStatus.IN_PROGRESS)


# -------------------------------------------------------------------
# Invoices
# -------------------------------------------------------------------

def invoices_qs() -> QuerySet[Invoice]:
    return Invoice.objects.all()


def get_invoice(*, invoice_id) -> Invoice:
    return invoices_qs().prefetch_related("items", "payments").get(id=invoice_id)


def get_invoice_by_number(*, invoice_number: str) -> Invoice:
    return invoices_qs().prefetch_related("items", "payments").get(invoice_number=invoice_number)


def invoices_filtered(
    *,
    patient_id: str | None = None,
    doctor_id: str | None = None,
    status: str | None = None,
) -> QuerySet[Invoice]:
    qs = invoices_qs().order_by("-created_at")

    if patient_id:
        qs = qs.filter(patient_id=str(patient_id))

    if doctor_id:
        qs = qs.filter(doctor_id=str(doctor_id))

    if status:
        qs = qs.filter(status=status)

    return qs


def payments_for_invoice(*, invoice: Invoice) -> QuerySet[Payment]:
    return invoice.payments.all().order_by("processed_at", "created_at")


def overdue_invoices(*, now: datetime | None = None) -> QuerySet[Invoice]:
    """
    Invoices past due that have not been flagged yet; the overdue scan walks this.
    """
    now = now or timezone.now()
    return invoices_qs().filter(due_date__lt=now, status__in=OVERDUE_ELIGIBLE_STATUSES).order_by("due_date")


# -------------------------------------------------------------------
# Reporting
# -------------------------------------------------------------------

def _months_back(dt: datetime, months: int) -> datetime:
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def period_start(period: str, *, now: datetime | None = None) -> datetime:
    now = now or timezone.now()
    if period == "day":
        return now - timedelta(days=1)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return _months_back(now, 1)
    if period == "year":
        return _months_back(now, 12)
    raise ValueError(f"Unknown period: {period}")


def _money_totals(qs: QuerySet[Invoice]) -> dict[str, Any]:
    agg = qs.aggregate(
        total_invoiced=Sum("total_amount", default=ZERO),
        total_paid=Sum("amount_paid", default=ZERO),
        total_outstanding=Sum("amount_due", default=ZERO),
        invoice_count=Count("id"),
    )
    return {
        "total_invoiced": to_money(agg["total_invoiced"]),
        "total_paid": to_money(agg["total_paid"]),
        "total_outstanding": to_money(agg["total_outstanding"]),
        "invoice_count": agg["invoice_count"],
    }


def billing_statistics(
    *,
    period: str = "month",
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Aggregates over invoices created in [start, end].
    `start`/`end` override the rolling `period` window (day/week/month/year back from now).
    """
    now = now or timezone.now()
    end = end or now
    start = start or period_start(period, now=now)

    qs = invoices_qs().filter(created_at__gte=start, created_at__lte=end)
    totals = _money_totals(qs)

    counts = {s: 0 for s in InvoiceStatus.values}
    for row in qs.values("status").annotate(n=Count("id")):
        counts[row["status"]] = row["n"]

    count = totals["invoice_count"]
    average = to_money(totals["total_invoiced"] / count) if count else ZERO

    return {
        **totals,
        "paid_invoice_count": counts[InvoiceStatus.PAID],
        "partially_paid_invoice_count": counts[InvoiceStatus.PARTIALLY_PAID],
        "overdue_invoice_count": counts[InvoiceStatus.OVERDUE],
        "average_invoice_amount": average,
        "status_counts": counts,
        "start": start,
        "end": end,
    }


def patient_billing_summary(*, patient_id: str, now: datetime | None = None) -> dict[str, Any]:
    now = now or timezone.now()
    qs = invoices_qs().filter(patient_id=str(patient_id))

    totals = _money_totals(qs)
    extra = qs.aggregate(
        overdue_invoice_count=Count("id", filter=Q(due_date__lt=now, status__in=OVERDUE_ELIGIBLE_STATUSES)),
        insurance_claim_count=Count("id", filter=~Q(claim_id="")),
        pending_insurance_amount=Sum(
            "amount_due",
            filter=~Q(claim_id="") & Q(claim_status__in=PENDING_CLAIM_STATUSES),
            default=ZERO,
        ),
    )

    return {
        "patient_id": str(patient_id),
        **totals,
        "overdue_invoice_count": extra["overdue_invoice_count"],
        "insurance_claim_count": extra["insurance_claim_count"],
        "pending_insurance_amount": to_money(extra["pending_insurance_amount"]),
    }


def insurance_pending_summary() -> dict[str, Any]:
    agg = (
        invoices_qs()
        .exclude(claim_id="")
        .filter(claim_status__in=PENDING_CLAIM_STATUSES)
        .aggregate(claim_count=Count("id"), pending_amount=Sum("amount_due", default=ZERO))
    )
    return {
        "claim_count": agg["claim_count"],
        "pending_amount": to_money(agg["pending_amount"] or Decimal("0")),
    }

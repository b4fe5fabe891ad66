# ledger_core/billing/subscribers.py
from __future__ import annotations

from decimal import Decimal

from django.conf import settings

from ledger_core.audit.models import AuditAction
from ledger_core.audit.services import AuditService
from ledger_core.billing.models import ClaimStatus, PaymentMethod
from ledger_core.common.events import subscribe
from ledger_core.notifications.models import NotificationSeverity
from ledger_core.notifications.services import NotificationService

# event name -> audit action. Every billing event is audited.
AUDITED_EVENTS = {
    "invoice.created": AuditAction.CREATE,
    "invoice.issued": AuditAction.UPDATE,
    "invoice.updated": AuditAction.UPDATE,
    "invoice.cancelled": AuditAction.UPDATE,
    "invoice.deleted": AuditAction.DELETE,
    "invoice.overdue": AuditAction.UPDATE,
    "invoice.refunded": AuditAction.UPDATE,
    "payment.recorded": AuditAction.UPDATE,
    "payment.voided": AuditAction.UPDATE,
    "claim.submitted": AuditAction.UPDATE,
    "claim.resolved": AuditAction.UPDATE,
}

_ACTOR_KEYS = ("actor_id", "actor_role")


def _money(value) -> str:
    currency = getattr(settings, "BILLING_CURRENCY", "USD")
    return f"{Decimal(str(value)):.2f} {currency}"


def _method_label(method: str) -> str:
    try:
        return PaymentMethod(method).label
    except ValueError:
        return method


def _audit_handler(event_name: str):
    def handler(payload: dict) -> None:
        AuditService.log(
            actor_id=payload.get("actor_id", ""),
            actor_role=payload.get("actor_role", ""),
            action=AUDITED_EVENTS[event_name],
            resource_type="invoice",
            resource_id=payload["invoice_id"],
            details={k: v for k, v in payload.items() if k not in _ACTOR_KEYS},
            event_code=event_name,
        )

    handler.__name__ = f"audit_{event_name.replace('.', '_')}"
    return handler


for _event_name in AUDITED_EVENTS:
    subscribe(_event_name)(_audit_handler(_event_name))


# -------------------------------------------------------------------
# Patient notifications
# -------------------------------------------------------------------

def _notify(payload: dict, *, title: str, message: str, severity: str = NotificationSeverity.INFO) -> None:
    NotificationService.notify(
        user_id=payload["patient_id"],
        title=title,
        message=message,
        severity=severity,
        meta={"invoice_id": payload["invoice_id"], "invoice_number": payload["invoice_number"]},
    )


@subscribe("invoice.issued")
def on_invoice_issued(payload: dict) -> None:
    _notify(
        payload,
        title="New Invoice",
        message=f"Invoice {payload['invoice_number']} for {_money(payload['total_amount'])} has been issued.",
    )


@subscribe("invoice.cancelled")
def on_invoice_cancelled(payload: dict) -> None:
    message = f"Invoice {payload['invoice_number']} has been cancelled."
    if payload.get("reason"):
        message += f" Reason: {payload['reason']}"
    _notify(payload, title="Invoice Cancelled", message=message)


@subscribe("invoice.overdue")
def on_invoice_overdue(payload: dict) -> None:
    _notify(
        payload,
        title="Invoice Overdue",
        message=(
            f"Invoice {payload['invoice_number']} is overdue. "
            f"Amount due: {_money(payload['amount_due'])}."
        ),
        severity=NotificationSeverity.WARNING,
    )


@subscribe("invoice.refunded")
def on_invoice_refunded(payload: dict) -> None:
    _notify(
        payload,
        title="Invoice Refunded",
        message=(
            f"Payments of {_money(payload.get('refunded_amount', '0'))} on invoice "
            f"{payload['invoice_number']} have been refunded."
        ),
    )


@subscribe("payment.recorded")
def on_payment_recorded(payload: dict) -> None:
    _notify(
        payload,
        title="Payment Received",
        message=(
            f"Payment of {_money(payload['amount'])} via {_method_label(payload['method'])} "
            f"received for invoice {payload['invoice_number']}."
        ),
        severity=NotificationSeverity.SUCCESS,
    )


@subscribe("payment.voided")
def on_payment_voided(payload: dict) -> None:
    _notify(
        payload,
        title="Payment Voided",
        message=f"A payment of {_money(payload['amount'])} on invoice {payload['invoice_number']} has been voided.",
        severity=NotificationSeverity.WARNING,
    )


@subscribe("claim.submitted")
def on_claim_submitted(payload: dict) -> None:
    _notify(
        payload,
        title="Insurance Claim Submitted",
        message=f"Invoice {payload['invoice_number']} has been submitted to insurance (claim {payload['claim_id']}).",
    )


@subscribe("claim.resolved")
def on_claim_resolved(payload: dict) -> None:
    status = payload["claim_status"]
    if status == ClaimStatus.APPROVED:
        severity = NotificationSeverity.SUCCESS
    elif status == ClaimStatus.DENIED:
        severity = NotificationSeverity.ERROR
    else:
        severity = NotificationSeverity.INFO

    message = f"Insurance claim for invoice {payload['invoice_number']} is now {ClaimStatus(status).label.lower()}."
    if payload.get("approved_amount"):
        message += f" Approved amount: {_money(payload['approved_amount'])}."
    if payload.get("denial_reason"):
        message += f" Reason: {payload['denial_reason']}"

    _notify(payload, title="Insurance Claim Update", message=message, severity=severity)

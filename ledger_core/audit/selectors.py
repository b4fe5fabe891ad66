# ledger_core/audit/selectors.py
from __future__ import annotations

from django.db.models import QuerySet

from ledger_core.audit.models import AuditEvent


def list_audit_events(
    *,
    resource_type: str | None = None,
    resource_id: str | None = None,
    event_code: str | None = None,
    actor_id: str | None = None,
) -> QuerySet[AuditEvent]:
    qs = AuditEvent.objects.all()

    if resource_type:
        qs = qs.filter(resource_type=resource_type)
    if resource_id:
        qs = qs.filter(resource_id=str(resource_id))
    if event_code:
        qs = qs.filter(event_code=event_code)
    if actor_id:
        qs = qs.filter(actor_id=str(actor_id))

    return qs.order_by("-occurred_at")

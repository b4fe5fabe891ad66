# ledger_core/audit/api/filters.py
from __future__ import annotations

import django_filters

from ledger_core.audit.models import AuditAction, AuditEvent


class AuditEventFilter(django_filters.FilterSet):
    resource_type = django_filters.CharFilter()
    resource_id = django_filters.CharFilter()
    event_code = django_filters.CharFilter()
    actor_id = django_filters.CharFilter()
    action = django_filters.ChoiceFilter(choices=AuditAction.choices)
    occurred_after = django_filters.IsoDateTimeFilter(field_name="occurred_at", lookup_expr="gte")
    occurred_before = django_filters.IsoDateTimeFilter(field_name="occurred_at", lookup_expr="lte")

    class Meta:
        model = AuditEvent
        fields = ["resource_type", "resource_id", "event_code", "actor_id", "action"]

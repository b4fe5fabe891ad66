# ledger_core/audit/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, viewsets

from ledger_core.audit.api.filters import AuditEventFilter
from ledger_core.audit.api.serializers import AuditEventSerializer
from ledger_core.audit.selectors import list_audit_events


@extend_schema_view(list=extend_schema(tags=["Audit"]))
class AuditEventViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Read-only audit trail, newest first.
    Typical query: ?resource_type=invoice&resource_id=<uuid>
    """
    serializer_class = AuditEventSerializer
    filterset_class = AuditEventFilter

    def get_queryset(self):
        return list_audit_events()

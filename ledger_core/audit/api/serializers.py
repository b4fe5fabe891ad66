# ledger_core/audit/api/serializers.py
from rest_framework import serializers

from ledger_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "timestamp",
            "event_code",
            "action",
            "resource_type",
            "resource_id",
            "actor_id",
            "actor_role",
            "details",
        ]
        read_only_fields = fields

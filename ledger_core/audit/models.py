# ledger_core/audit/models.py
from django.db import models

from ledger_core.common.models import UUIDModel


class AuditAction(models.TextChoices):
    CREATE = "create", "Create"
    UPDATE = "update", "Update"
    DELETE = "delete", "Delete"


class AuditEvent(UUIDModel):
    """
    Immutable audit record.
    For billing this is the ground-truth trail of every ledger mutation.
    """
    event_code = models.CharField(max_length=128, db_index=True)  # e.g. "payment.voided"
    action = models.CharField(max_length=16, choices=AuditAction.choices, db_index=True)
    resource_type = models.CharField(max_length=64, db_index=True)  # e.g. "invoice"
    resource_id = models.CharField(max_length=64, db_index=True)

    actor_id = models.CharField(max_length=64, db_index=True)
    actor_role = models.CharField(max_length=32, blank=True, default="")

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["resource_type", "resource_id"]),
            models.Index(fields=["actor_id", "occurred_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.event_code} {self.resource_type}:{self.resource_id}"

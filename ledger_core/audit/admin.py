# ledger_core/audit/admin.py
from django.contrib import admin

from ledger_core.audit.models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = (
        "event_code",
        "action",
        "resource_type",
        "resource_id",
        "actor_id",
        "actor_role",
        "occurred_at",
    )
    list_filter = ("action", "resource_type", "event_code")
    search_fields = ("event_code", "resource_id", "actor_id")
    readonly_fields = ("occurred_at",)
    ordering = ("-occurred_at",)

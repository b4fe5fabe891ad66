from django.contrib import admin

from ledger_core.notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("recipient_id", "title", "severity", "is_read", "created_at")
    list_filter = ("severity", "is_read")
    search_fields = ("recipient_id", "title")
    ordering = ("-created_at",)

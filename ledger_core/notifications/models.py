from __future__ import annotations

from django.db import models
from django.utils import timezone

from ledger_core.common.models import UUIDModel


class NotificationSeverity(models.TextChoices):
    INFO = "info", "Info"
    SUCCESS = "success", "Success"
    WARNING = "warning", "Warning"
    ERROR = "error", "Error"


class Notification(UUIDModel):
    """
    In-app delivery record per recipient.
    recipient_id is a loose user reference (patients are not auth users here).
    """
    recipient_id = models.CharField(max_length=64, db_index=True)

    title = models.CharField(max_length=255)
    body = models.TextField(blank=True, default="")
    severity = models.CharField(
        max_length=16,
        choices=NotificationSeverity.choices,
        default=NotificationSeverity.INFO,
        db_index=True,
    )

    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)

    meta = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "notifications_notification"
        indexes = [
            models.Index(fields=["recipient_id", "is_read", "created_at"]),
        ]

    def mark_read(self) -> None:
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()

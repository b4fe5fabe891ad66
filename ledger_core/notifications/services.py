from __future__ import annotations

from django.db import transaction

from ledger_core.notifications.models import Notification, NotificationSeverity


class NotificationService:
    @staticmethod
    def notify(
        *,
        user_id: str,
        title: str,
        message: str = "",
        severity: str = NotificationSeverity.INFO,
        meta: dict | None = None,
    ) -> Notification:
        if severity not in NotificationSeverity.values:
            raise ValueError(f"Unknown notification severity: {severity}")

        return Notification.objects.create(
            recipient_id=str(user_id),
            title=title[:255],
            body=message,
            severity=severity,
            meta=meta or {},
        )

    @staticmethod
    @transaction.atomic
    def mark_read(*, notification_id, recipient_id: str) -> Notification:
        n = Notification.objects.select_for_update().get(id=notification_id, recipient_id=str(recipient_id))
        if not n.is_read:
            n.mark_read()
            n.save(update_fields=["is_read", "read_at", "updated_at"])
        return n

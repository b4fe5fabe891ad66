from __future__ import annotations

from django.db.models import QuerySet

from ledger_core.notifications.models import Notification


def notifications_qs(*, recipient_id: str, unread_only: bool = False) -> QuerySet[Notification]:
    qs = Notification.objects.filter(recipient_id=str(recipient_id))
    if unread_only:
        qs = qs.filter(is_read=False)
    return qs.order_by("-created_at")

# ledger_core/notifications/tests/test_notifications.py
import uuid

import pytest

from ledger_core.notifications.models import Notification, NotificationSeverity
from ledger_core.notifications.services import NotificationService


@pytest.mark.django_db
def test_notify_creates_unread_notification():
    n = NotificationService.notify(user_id="p-1", title="Payment Received", message="Thanks", severity=NotificationSeverity.SUCCESS)

    assert n.recipient_id == "p-1"
    assert n.body == "Thanks"
    assert n.is_read is False


@pytest.mark.django_db
def test_notify_rejects_unknown_severity():
    with pytest.raises(ValueError):
        NotificationService.notify(user_id="p-1", title="x", severity="panic")
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_mark_read_is_scoped_to_recipient():
    n = NotificationService.notify(user_id="p-1", title="x")

    with pytest.raises(Notification.DoesNotExist):
        NotificationService.mark_read(notification_id=n.id, recipient_id="p-2")

    n = NotificationService.mark_read(notification_id=n.id, recipient_id="p-1")
    assert n.is_read is True
    assert n.read_at is not None


@pytest.mark.django_db
def test_notifications_endpoint(api_client):
    NotificationService.notify(user_id="p-1", title="first")
    read = NotificationService.notify(user_id="p-1", title="second")
    NotificationService.notify(user_id="p-2", title="other")

    resp = api_client.get("/api/v1/notifications/")
    assert resp.status_code == 400

    resp = api_client.get("/api/v1/notifications/", {"recipient": "p-1"})
    assert resp.status_code == 200
    assert resp.data["count"] == 2

    resp = api_client.post(f"/api/v1/notifications/{read.id}/read/?recipient=p-1", {}, format="json")
    assert resp.status_code == 200
    assert resp.data["is_read"] is True

    resp = api_client.get("/api/v1/notifications/", {"recipient": "p-1", "unread": "true"})
    assert resp.data["count"] == 1

    resp = api_client.post(f"/api/v1/notifications/{uuid.uuid4()}/read/?recipient=p-1", {}, format="json")
    assert resp.status_code == 404

from rest_framework import serializers

from ledger_core.notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id",
            "recipient_id",
            "title",
            "body",
            "severity",
            "is_read",
            "read_at",
            "meta",
            "created_at",
        ]
        read_only_fields = fields

from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from ledger_core.common.api.pagination import paginate
from ledger_core.notifications.api.serializers import NotificationSerializer
from ledger_core.notifications.models import Notification
from ledger_core.notifications.selectors import notifications_qs
from ledger_core.notifications.services import NotificationService


def _recipient(request) -> str:
    recipient = (request.query_params.get("recipient") or "").strip()
    if not recipient:
        raise ValidationError({"recipient": "This query parameter is required."})
    return recipient


class NotificationViewSet(viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    queryset = Notification.objects.none()

    @extend_schema(
        tags=["Notifications"],
        responses={200: NotificationSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="recipient", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=True),
            OpenApiParameter(name="unread", type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        unread = (request.query_params.get("unread") or "").lower() in ("1", "true", "yes")
        qs = notifications_qs(recipient_id=_recipient(request), unread_only=unread)
        return paginate(request, qs, NotificationSerializer)

    @extend_schema(
        tags=["Notifications"],
        responses={200: NotificationSerializer},
        parameters=[
            OpenApiParameter(name="recipient", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=True),
        ],
    )
    @action(detail=True, methods=["post"], url_path="read")
    def read(self, request, pk=None):
        try:
            notification_id = UUID(str(pk))
        except ValueError:
            raise ValidationError({"id": "Invalid UUID"})

        n = NotificationService.mark_read(notification_id=notification_id, recipient_id=_recipient(request))
        return Response(NotificationSerializer(n).data, status=status.HTTP_200_OK)

"""Notification API views.

Every user only ever sees their own notifications.

- ``GET /api/v1/notifications/``: paginated, newest first.
- ``PUT /api/v1/notifications/{id}/read/``: mark one as read.
- ``DELETE /api/v1/notifications/clear/``: mark all as read.
"""

from __future__ import annotations

import structlog
from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.notifications.models import Notification
from modules.notifications.serializers import NotificationSerializer

logger = structlog.get_logger(__name__)


class NotificationViewSet(GenericViewSet):
    serializer_class = NotificationSerializer

    def get_queryset(self):
        return Notification.objects.filter(user_id=self.request.user.pk).order_by(
            "-created_at", "-id"
        )

    def list(self, request: Request) -> Response:
        page = self.paginate_queryset(self.get_queryset())
        serializer = NotificationSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=True, methods=["put", "post"])
    def read(self, request: Request, pk: str | None = None) -> Response:
        try:
            notification = self.get_queryset().filter(pk=pk).first()
        except (ValueError, ValidationError):
            notification = None
        if notification is None:
            return Response(
                {"detail": "Notification not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read"])
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=["delete"], url_path="clear")
    def clear(self, request: Request) -> Response:
        updated = self.get_queryset().filter(is_read=False).update(is_read=True)
        logger.info(
            "notification.cleared", user_id=str(request.user.pk), updated=updated
        )
        return Response({"updated": updated})

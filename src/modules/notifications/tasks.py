"""Celery tasks of the notifications module."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from celery import shared_task

from modules.notifications.models import Notification
from modules.notifications.services import notify_user

logger = structlog.get_logger(__name__)


@shared_task(name="notifications.dispatch_notification")
def dispatch_notification(
    user_id: str,
    title: str,
    body: str,
    kind: str,
    payload: Optional[Dict[str, Any]] = None,
    status: Optional[str] = None,
) -> Optional[str]:
    """Store a notification out of the request path; returns its id."""
    notification = notify_user(user_id, title, body, kind, payload, status)
    return str(notification.id) if notification else None


@shared_task(name="notifications.deliver_push")
def deliver_push(notification_id: str) -> bool:
    """Hand a stored notification to the push channel.

    Vendor delivery is not wired in; the task records what would be sent
    and reports whether the user has a device token.
    """
    notification = (
        Notification.objects.select_related("user").filter(id=notification_id).first()
    )
    if notification is None:
        logger.warning("notification.push_missing", notification_id=notification_id)
        return False

    token = notification.user.fcm_token
    if not token:
        logger.info(
            "notification.push_skipped",
            notification_id=notification_id,
            user_id=str(notification.user_id),
            reason="no_device_token",
        )
        return False

    logger.info(
        "notification.push_sent",
        notification_id=notification_id,
        user_id=str(notification.user_id),
        kind=notification.kind,
        fcm_token=token,
    )
    return True

"""Notification dispatch.

``notify_user`` stores the notification (the in-app source of truth) and
queues the push delivery.  It is called from event handlers after the
triggering write has been persisted, so it logs failures instead of
raising them.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.db import IntegrityError, transaction

from modules.notifications.models import Notification

logger = structlog.get_logger(__name__)


def _dedupe_key(payload: Dict[str, Any], status: Optional[str]) -> Optional[str]:
    if payload.get("dedupe_key"):
        return str(payload["dedupe_key"])
    if status:
        return f"{payload.get('order_id', '')}:{status}"
    return None


def notify_user(
    user_id: str,
    title: str,
    body: str,
    kind: str,
    payload: Optional[Dict[str, Any]] = None,
    status: Optional[str] = None,
) -> Optional[Notification]:
    """Create a notification for *user_id* and queue its push delivery.

    When *status* is given (or ``payload["dedupe_key"]``), a second call
    for the same user, kind and key returns the stored notification
    without creating or pushing anything.  Returns ``None`` if the
    notification could not be stored.
    """
    payload = dict(payload or {})
    dedupe_key = _dedupe_key(payload, status)
    log = logger.bind(user_id=str(user_id), kind=kind, dedupe_key=dedupe_key)

    if dedupe_key is not None:
        existing = Notification.objects.filter(
            user_id=user_id, kind=kind, dedupe_key=dedupe_key
        ).first()
        if existing:
            log.info("notification.duplicate_skipped", notification_id=str(existing.id))
            return existing

    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                user_id=user_id,
                title=title,
                body=body,
                kind=kind,
                reference_id=str(
                    payload.get("order_id") or payload.get("reference_id") or ""
                ),
                status=status or "",
                dedupe_key=dedupe_key,
                payload=payload,
            )
    except IntegrityError:
        # Lost the race against an identical notification.
        log.info("notification.duplicate_race")
        return Notification.objects.filter(
            user_id=user_id, kind=kind, dedupe_key=dedupe_key
        ).first()
    except Exception:
        log.exception("notification.store_failed")
        return None

    log.info("notification.created", notification_id=str(notification.id))
    _queue_push(notification)
    return notification


def _queue_push(notification: Notification) -> None:
    from modules.notifications.tasks import deliver_push

    try:
        deliver_push.delay(str(notification.id))
    except Exception:
        logger.exception(
            "notification.push_enqueue_failed", notification_id=str(notification.id)
        )

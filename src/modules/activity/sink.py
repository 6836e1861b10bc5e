"""Activity sink.

Audit writes are a side effect of an already persisted change, so a
failing write is logged and reported as ``None`` instead of raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import structlog
from django.db import transaction

from modules.activity.models import Activity

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ActivityEntry:
    actor_id: Optional[str]
    role: str
    type: str
    target_type: str
    description: str
    target_id: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    seller_ids: Tuple[str, ...] = ()


def append_activity(entry: ActivityEntry) -> Optional[Activity]:
    """Write *entry* to the audit log; return ``None`` if the write failed."""
    try:
        with transaction.atomic():
            activity = Activity.objects.create(
                actor_id=entry.actor_id,
                role=entry.role,
                type=entry.type,
                target_type=entry.target_type,
                target_id=entry.target_id,
                description=entry.description,
                details=entry.details,
            )
            if entry.seller_ids:
                activity.sellers.set(list(entry.seller_ids))
    except Exception:
        logger.exception(
            "activity.append_failed",
            type=entry.type,
            target_type=entry.target_type,
            target_id=entry.target_id,
        )
        return None

    logger.info(
        "activity.appended",
        activity_id=str(activity.id),
        type=entry.type,
        target_id=entry.target_id,
        tagged_sellers=len(entry.seller_ids),
    )
    return activity

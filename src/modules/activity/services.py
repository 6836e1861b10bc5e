"""Activity read side: role-scoped audit feeds."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.db.models import Q, QuerySet

from modules.activity.constants import MY_ACTIVITY_LIMIT
from modules.activity.models import Activity
from modules.orders.actors import Admin, Seller
from modules.orders.exceptions import Forbidden

logger = structlog.get_logger(__name__)


class ActivityService:
    """Queries over the audit log."""

    def feed(self, actor, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Return the activities *actor* may audit, newest first.

        Sellers get their own actions plus every action tagging them.
        Admins get everything and may narrow by ``user``, ``role``.  Both
        may narrow by ``type``, ``target_type``, ``start_date`` and
        ``end_date``; falsy filter values are ignored.

        Raises:
            Forbidden: the actor is a buyer.
        """
        filters = filters or {}
        queryset = Activity.objects.select_related("actor")

        if isinstance(actor, Seller):
            queryset = queryset.filter(
                Q(actor_id=actor.id) | Q(sellers__id=actor.id)
            ).distinct()
        elif isinstance(actor, Admin):
            if filters.get("user"):
                queryset = queryset.filter(actor_id=filters["user"])
            if filters.get("role"):
                queryset = queryset.filter(role=filters["role"])
        else:
            logger.warning("activity.feed_forbidden", actor_id=actor.id)
            raise Forbidden("Access denied: the activity feed is for sellers and admins.")

        if filters.get("type"):
            queryset = queryset.filter(type=filters["type"])
        if filters.get("target_type"):
            queryset = queryset.filter(target_type=filters["target_type"])
        if filters.get("start_date"):
            queryset = queryset.filter(created_at__gte=filters["start_date"])
        if filters.get("end_date"):
            queryset = queryset.filter(created_at__lte=filters["end_date"])
        return queryset.order_by("-created_at", "-id")

    def mine(self, actor) -> List[Activity]:
        """The latest activities performed by *actor*, any role."""
        return list(
            Activity.objects.filter(actor_id=actor.id).order_by("-created_at", "-id")[
                :MY_ACTIVITY_LIMIT
            ]
        )

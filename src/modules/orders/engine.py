"""Status transition engine.

Decides and applies a requested fulfilment status to the items an actor
is allowed to touch, then recomputes the order roll-up.  The engine works
on in-memory ``Order`` / ``OrderItem`` instances and never persists:
``OrderService`` owns the read-modify-write cycle around it.

Every check runs before the first item is mutated, so a rejected request
leaves the aggregate exactly as it was read.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

import structlog
from django.utils import timezone

from modules.orders.actors import Admin, Seller
from modules.orders.constants import OrderStatus, Purpose
from modules.orders.events import OrderStatusChanged
from modules.orders.exceptions import (
    InvalidStatus,
    InvalidTransition,
    NoEligibleItems,
    OrderFrozen,
)
from modules.orders.lattice import can_transition, effective_status, parse_status, rank

if TYPE_CHECKING:
    from modules.orders.authorization import AuthorizationResolver
    from modules.orders.models import Order, OrderItem

logger = structlog.get_logger(__name__)


def backfill_item_statuses(order: Order, items: Sequence[OrderItem]) -> int:
    """Give legacy items (no status) the order's current roll-up status.

    Runs on write paths only, before any comparison, and returns the
    number of repaired items.
    """
    repaired = 0
    for item in items:
        if not item.status:
            item.status = effective_status(item, order)
            repaired += 1
    if repaired:
        logger.info(
            "order.items_backfilled",
            order_id=str(order.id),
            repaired=repaired,
            status=order.status,
        )
    return repaired


@dataclass(frozen=True)
class TransitionResult:
    old_status: str
    new_status: str
    requested_status: str
    updated_items: Tuple[OrderItem, ...]
    whole_order: bool

    @property
    def updated_count(self) -> int:
        return len(self.updated_items)


class StatusTransitionEngine:
    """Applies ``requested_status`` to the authorised subset of an order's items."""

    def __init__(self, resolver: AuthorizationResolver) -> None:
        self._resolver = resolver

    def apply(
        self,
        order: Order,
        items: Sequence[OrderItem],
        actor,
        requested_status: str,
        item_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        """Validate and apply a status change.

        Raises:
            InvalidStatus: unknown status, or a seller asking for ``Placed``.
            OrderFrozen: the order is cancelled.
            Forbidden / OrderItemNotFound: see ``AuthorizationResolver``.
            InvalidTransition: a target item would move illegally.
            NoEligibleItems: every target item is already cancelled.
        """
        requested = parse_status(requested_status)
        if isinstance(actor, Seller) and requested == OrderStatus.PLACED:
            raise InvalidStatus("Sellers cannot set status back to Placed.")

        if order.is_cancelled:
            raise OrderFrozen("Cannot update status of a cancelled order.")

        backfill_item_statuses(order, items)
        targets = self._resolver.resolve(
            actor, order, items, Purpose.STATUS_UPDATE, item_id
        )

        is_admin = isinstance(actor, Admin)
        eligible = [item for item in targets if item.status != OrderStatus.CANCELLED]
        if not is_admin:
            for item in eligible:
                if not can_transition(item.status, requested):
                    raise InvalidTransition(
                        f"Invalid status transition: cannot move '{item.name}' "
                        f"from {item.status} to {requested}."
                    )
        if not eligible:
            raise NoEligibleItems(
                "No eligible active items to update (items might be Cancelled)."
            )

        active = [item for item in items if item.status != OrderStatus.CANCELLED]
        whole_order = len(eligible) == len(active)
        changed = [item for item in eligible if item.status != requested]
        for item in eligible:
            item.status = requested

        old_status = order.status
        self._roll_up(
            order,
            items,
            requested,
            correction=is_admin and whole_order,
            now=now or timezone.now(),
        )

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                actor_id=actor.id,
                actor_role=str(actor.role),
                actor_name=actor.name,
                buyer_id=str(order.buyer_id) if order.buyer_id else None,
                old_status=old_status,
                new_status=order.status,
                requested_status=requested,
                item_ids=tuple(str(item.id) for item in eligible),
                changed_item_ids=tuple(str(item.id) for item in changed),
                item_names=tuple(item.name for item in eligible),
                product_ids=tuple(item.product_key for item in eligible),
                whole_order=whole_order,
                is_admin_override=is_admin,
            )
        )
        logger.info(
            "order.transition_applied",
            order_id=str(order.id),
            old_status=old_status,
            new_status=order.status,
            requested_status=requested,
            updated_items=len(eligible),
            role=str(actor.role),
        )
        return TransitionResult(
            old_status=old_status,
            new_status=order.status,
            requested_status=requested,
            updated_items=tuple(eligible),
            whole_order=whole_order,
        )

    @staticmethod
    def _roll_up(
        order: Order,
        items: Sequence[OrderItem],
        requested: str,
        correction: bool,
        now: datetime,
    ) -> None:
        """Recompute ``order.status`` after the items changed.

        The roll-up follows any item that reaches a status at or beyond
        it.  An admin write covering the whole order may lower it.  Once
        every active item is Delivered the order is Delivered, whichever
        seller finished last.
        """
        active = [item for item in items if item.status != OrderStatus.CANCELLED]
        if not active:
            order.status = OrderStatus.CANCELLED
            return

        if requested != OrderStatus.CANCELLED:
            if rank(requested) >= rank(order.status):
                order.status = requested
            elif correction:
                order.status = requested
                order.is_delivered = False
                order.delivered_at = None

        if all(item.status == OrderStatus.DELIVERED for item in active):
            order.status = OrderStatus.DELIVERED
            if not order.is_delivered:
                order.is_delivered = True
                order.delivered_at = now

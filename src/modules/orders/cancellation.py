"""Cancellation engine.

An item can be cancelled only while its effective status is ``Placed``.
A whole-order request is all-or-nothing: one active item past ``Placed``
blocks the entire request.  Like the transition engine this works on
in-memory instances and leaves persistence to the service.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

import structlog

from modules.orders.authorization import find_item
from modules.orders.constants import OrderStatus, Purpose
from modules.orders.engine import backfill_item_statuses
from modules.orders.events import OrderCancelled
from modules.orders.exceptions import AlreadyCancelled, OrderConflict
from modules.orders.lattice import effective_status

if TYPE_CHECKING:
    from modules.orders.authorization import AuthorizationResolver
    from modules.orders.models import Order, OrderItem
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def is_cancellable(item: OrderItem, order: Order) -> bool:
    return effective_status(item, order) == OrderStatus.PLACED


@dataclass(frozen=True)
class CancellationResult:
    cancelled_items: Tuple[OrderItem, ...]
    order_cancelled: bool
    seller_ids: Tuple[str, ...]


class CancellationEngine:
    """Cancels a whole order or a single item on behalf of its buyer or an admin."""

    def __init__(
        self,
        resolver: AuthorizationResolver,
        product_repository: IProductRepository,
    ) -> None:
        self._resolver = resolver
        self._products = product_repository

    def cancel(
        self,
        order: Order,
        items: Sequence[OrderItem],
        actor,
        item_id: Optional[str] = None,
    ) -> CancellationResult:
        """Validate and apply a cancellation.

        Raises:
            Forbidden: the actor is neither the buyer nor an admin.
            OrderItemNotFound: *item_id* is not part of the order.
            AlreadyCancelled: the target is already cancelled.
            OrderConflict: the target (or, for a whole order, any active
                item) has progressed past ``Placed``.
        """
        self._resolver.resolve(actor, order, items, Purpose.CANCELLATION)

        if item_id is not None:
            affected = [self._check_item(order, items, item_id)]
        else:
            affected = self._check_order(order, items)

        backfill_item_statuses(order, items)
        for item in affected:
            item.status = OrderStatus.CANCELLED

        order_cancelled = all(item.status == OrderStatus.CANCELLED for item in items)
        if order_cancelled:
            order.status = OrderStatus.CANCELLED

        product_ids = tuple(item.product_key for item in affected)
        seller_ids = tuple(self._products.seller_ids_for(product_ids))

        order.add_domain_event(
            OrderCancelled(
                aggregate_id=order.id,
                order_number=order.order_number,
                actor_id=actor.id,
                actor_role=str(actor.role),
                actor_name=actor.name,
                buyer_id=str(order.buyer_id) if order.buyer_id else None,
                item_id=str(item_id) if item_id is not None else None,
                item_ids=tuple(str(item.id) for item in affected),
                product_names=tuple(item.name for item in affected),
                product_ids=product_ids,
                seller_ids=seller_ids,
                order_cancelled=order_cancelled,
            )
        )
        logger.info(
            "order.cancellation_applied",
            order_id=str(order.id),
            item_id=str(item_id) if item_id is not None else None,
            cancelled_items=len(affected),
            order_cancelled=order_cancelled,
            role=str(actor.role),
        )
        return CancellationResult(
            cancelled_items=tuple(affected),
            order_cancelled=order_cancelled,
            seller_ids=seller_ids,
        )

    @staticmethod
    def _check_item(order: Order, items: Sequence[OrderItem], item_id: str) -> OrderItem:
        item = find_item(items, item_id)
        current = effective_status(item, order)
        if current == OrderStatus.CANCELLED:
            raise AlreadyCancelled("Item is already cancelled.")
        if current != OrderStatus.PLACED:
            raise OrderConflict(f"Item cannot be cancelled as it is already {current}.")
        return item

    @staticmethod
    def _check_order(order: Order, items: Sequence[OrderItem]) -> list:
        if order.is_cancelled:
            raise AlreadyCancelled("Order is already cancelled.")

        active = [
            item
            for item in items
            if effective_status(item, order) != OrderStatus.CANCELLED
        ]
        blocked = [item for item in active if not is_cancellable(item, order)]
        if blocked:
            names = ", ".join(
                f"{item.name} ({effective_status(item, order)})" for item in blocked
            )
            raise OrderConflict(
                "Order cannot be cancelled because one or more items are already "
                f"being processed: {names}."
            )
        return active

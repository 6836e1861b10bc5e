"""Authorization resolver: which line items may an actor affect?

Dispatch is on the actor type.  The answer is the list of target items,
or an exception raised before the caller mutates anything.

- Admin: every item, for any purpose.
- Seller: the items whose product the seller owns; only for status
  updates.
- Buyer: every item of their own order; only for cancellation.
"""

from __future__ import annotations

from functools import singledispatchmethod
from typing import TYPE_CHECKING, List, Optional, Sequence

import structlog

from modules.orders.actors import Admin, Buyer, Seller
from modules.orders.constants import Purpose
from modules.orders.exceptions import Forbidden, OrderItemNotFound

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def find_item(items: Sequence[OrderItem], item_id: str) -> OrderItem:
    """Return the item of *items* whose id is *item_id*."""
    for item in items:
        if str(item.id) == str(item_id):
            return item
    raise OrderItemNotFound(f"Order item {item_id} not found.")


class AuthorizationResolver:
    """Resolves target item sets; product ownership comes from the injected repository."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._products = product_repository

    def resolve(
        self,
        actor,
        order: Order,
        items: Sequence[OrderItem],
        purpose: str,
        item_id: Optional[str] = None,
    ) -> List[OrderItem]:
        """Return the items *actor* may affect for *purpose*.

        With *item_id* the result is narrowed to that single item, which
        must belong to the order and to the authorised set.

        Raises:
            Forbidden: the actor may not act on this order (or this item).
            OrderItemNotFound: *item_id* is not part of the order.
        """
        targets = self._targets(actor, order, items, purpose)
        if item_id is None:
            return targets

        item = find_item(items, item_id)
        if item not in targets:
            logger.warning(
                "order.item_forbidden",
                order_id=str(order.id),
                item_id=str(item_id),
                actor_id=actor.id,
                role=str(actor.role),
            )
            raise Forbidden(f"You are not authorized to update item {item_id}.")
        return [item]

    @singledispatchmethod
    def _targets(self, actor, order, items, purpose) -> List[OrderItem]:
        raise Forbidden(f"Unauthorized actor: {type(actor).__name__}")

    @_targets.register(Admin)
    def _admin_targets(self, actor, order, items, purpose) -> List[OrderItem]:
        return list(items)

    @_targets.register(Seller)
    def _seller_targets(self, actor, order, items, purpose) -> List[OrderItem]:
        if purpose == Purpose.CANCELLATION:
            raise Forbidden("Only the buyer or an admin can cancel an order.")

        owned = self._products.product_ids_for_seller(actor.id)
        mine = [item for item in items if item.product_key in owned]
        if not mine:
            logger.warning(
                "order.seller_forbidden",
                order_id=str(order.id),
                seller_id=actor.id,
            )
            raise Forbidden("You are not authorized to update this order.")
        return mine

    @_targets.register(Buyer)
    def _buyer_targets(self, actor, order, items, purpose) -> List[OrderItem]:
        if purpose != Purpose.CANCELLATION:
            raise Forbidden("Buyers cannot change the fulfilment status of an order.")
        if order.buyer_id is None or str(order.buyer_id) != actor.id:
            raise Forbidden("Not authorized to cancel this order.")
        return list(items)

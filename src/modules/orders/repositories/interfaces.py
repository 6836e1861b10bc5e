"""Order repository interface.

Extends ``IRepository[Order]`` with what the order service needs:
atomic creation with items, idempotency-key look-up, role-scoped
listing, and a compare-and-swap write of the aggregate.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db import models

    from modules.orders.models import Order, OrderItem


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate is the order plus its items.  Writes go through
    ``persist`` so that the roll-up and the item statuses land together.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` holds the order columns plus ``items``: a list of dicts
        with ``product_id``, ``quantity``, ``unit_price``,
        ``original_unit_price``, ``name``, ``image`` and ``size``.
        """

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def items_of(self, order: Order) -> List[OrderItem]:
        """Return the order's items in display order."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List orders with optional ORM filters."""

    @abstractmethod
    def sales_totals(
        self,
        order_filters: Optional[Dict[str, Any]] = None,
        item_filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Count orders and sum line totals over live items.

        Cancelled orders and cancelled items are left out.  *order_filters*
        are ORM lookups on ``Order``, *item_filters* on ``OrderItem``.
        Returns ``{"orders": int, "revenue": Decimal}``.
        """

    @abstractmethod
    def persist(self, order: Order, items: Iterable[OrderItem] = ()) -> Order:
        """Write the order (and the given items) if nobody else did first.

        Compares ``order.version`` with the stored one and bumps it.

        Raises:
            ConcurrentModification: the stored version moved on.
        """

    def save(self, entity: Order) -> Order:
        return self.persist(entity)

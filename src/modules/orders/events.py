"""Domain events for the Orders bounded context.

Collected on the ``Order`` aggregate by the engines and published by the
service only after the write they describe has been persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class OrderEvent(DomainEvent):
    order_number: str
    actor_id: str
    actor_role: str
    actor_name: str = ""
    buyer_id: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class OrderPlaced(OrderEvent):
    """Raised when an order is created."""

    product_names: Tuple[str, ...] = ()
    total_price: str = "0.00"
    seller_ids: Tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class OrderStatusChanged(OrderEvent):
    """Raised when a status update touched at least one item."""

    old_status: str
    new_status: str
    requested_status: str
    item_ids: Tuple[str, ...] = ()
    changed_item_ids: Tuple[str, ...] = ()
    item_names: Tuple[str, ...] = ()
    product_ids: Tuple[str, ...] = ()
    whole_order: bool = False
    is_admin_override: bool = False


@dataclass(frozen=True, kw_only=True)
class OrderCancelled(OrderEvent):
    """Raised when an order, or one of its items, is cancelled."""

    item_id: Optional[str] = None
    item_ids: Tuple[str, ...] = ()
    product_names: Tuple[str, ...] = ()
    product_ids: Tuple[str, ...] = ()
    seller_ids: Tuple[str, ...] = ()
    order_cancelled: bool = False


@dataclass(frozen=True, kw_only=True)
class OrderPaid(OrderEvent):
    """Raised when the cash-on-delivery payment of an order is recorded."""

    total_price: str = "0.00"
    seller_ids: Tuple[str, ...] = ()

"""Status lattice: ranks and legal moves between fulfilment statuses.

Pure functions only.  Both the transition engine and the cancellation
engine consult this module; nothing here touches the database.

    Placed(0) < Processing(1) < Shipped(2) < Out for Delivery(3) < Delivered(4)

``Cancelled`` is absorbing and sits outside the line: it is reachable from
any non-terminal status and ranks above everything for comparisons.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from modules.orders.constants import (
    CANCELLED_RANK,
    STATUS_RANK,
    TERMINAL_STATES,
    OrderStatus,
)
from modules.orders.exceptions import InvalidStatus

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem


def parse_status(value: Optional[str]) -> OrderStatus:
    """Turn raw input into an ``OrderStatus``.

    Surrounding whitespace is ignored.  Anything else that is not one of
    the six stored values raises ``InvalidStatus``.
    """
    candidate = value.strip() if isinstance(value, str) else value
    try:
        return OrderStatus(candidate)
    except ValueError:
        allowed = ", ".join(OrderStatus.values)
        raise InvalidStatus(
            f"Invalid order status: '{value}'. Allowed: {allowed}"
        ) from None


def rank(status: str) -> int:
    """Return the linear rank of *status*; ``CANCELLED_RANK`` for Cancelled."""
    if status == OrderStatus.CANCELLED:
        return CANCELLED_RANK
    try:
        return STATUS_RANK[status]
    except KeyError:
        raise InvalidStatus(f"Unknown order status: '{status}'") from None


def is_forward_or_equal(current: str, requested: str) -> bool:
    return rank(requested) >= rank(current)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATES


def can_transition(current: str, requested: str, allow_backward: bool = False) -> bool:
    """Whether an item at *current* may be written with *requested*.

    Cancelled never moves.  Cancelled is reachable from every non-terminal
    status.  Otherwise the move must not go backwards unless
    *allow_backward* (admin correction) is set.
    """
    if current == OrderStatus.CANCELLED:
        return False
    if requested == OrderStatus.CANCELLED:
        return allow_backward or not is_terminal(current)
    if allow_backward:
        return True
    return is_forward_or_equal(current, requested)


def effective_status(item: OrderItem, order: Order) -> str:
    """The item's own status, or the order roll-up for legacy items."""
    return item.status or order.status

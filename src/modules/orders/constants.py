"""Order domain constants.

Statuses are shared by the order roll-up and by every line item.  The
stored values double as the wire values accepted by the API.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "Placed", "Placed"
    PROCESSING = "Processing", "Processing"
    SHIPPED = "Shipped", "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery", "Out for Delivery"
    DELIVERED = "Delivered", "Delivered"
    CANCELLED = "Cancelled", "Cancelled"


# Linear fulfilment ranks.  Cancelled sits outside the line.
STATUS_RANK: dict[str, int] = {
    OrderStatus.PLACED: 0,
    OrderStatus.PROCESSING: 1,
    OrderStatus.SHIPPED: 2,
    OrderStatus.OUT_FOR_DELIVERY: 3,
    OrderStatus.DELIVERED: 4,
}

CANCELLED_RANK = 99

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)

# Roll-up statuses that still need work; ``?active=true`` filters on these.
ACTIVE_ORDER_STATES: frozenset[str] = frozenset(
    set(OrderStatus.values) - TERMINAL_STATES
)


class PaymentMethod(models.TextChoices):
    COD = "COD", "Cash on delivery"


class Purpose(models.TextChoices):
    """Why an actor's target items are being resolved."""

    STATUS_UPDATE = "status_update", "Status update"
    CANCELLATION = "cancellation", "Cancellation"


ORDER_NUMBER_MAX_RETRIES = 5

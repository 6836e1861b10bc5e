"""Order and OrderItem models.

Business rules implemented:
- Every line item carries its own fulfilment ``status``; a multi-seller
  order is fulfilled item by item.
- ``Order.status`` is a roll-up recomputed by the engines, never written
  directly by a seller.
- Buyer contact details and the shipping address are snapshotted at
  creation and never resynchronised from the live account.
- ``buyer`` FK uses SET_NULL: orders outlive their buyers.
- ``version`` is bumped on every persisted mutation (compare-and-swap).
- Idempotency via ``idempotency_key`` unique constraint.
- Orders are never deleted.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any, Optional

import structlog
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    OrderStatus,
    PaymentMethod,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

_MONEY = {
    "max_digits": 12,
    "decimal_places": 2,
    "default": Decimal("0.00"),
    "validators": [MinValueValidator(Decimal("0.00"))],
}


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    buyer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    buyer_name: models.CharField = models.CharField(max_length=255)
    buyer_email: models.CharField = models.CharField(max_length=254)
    buyer_phone: models.CharField = models.CharField(
        max_length=32, blank=True, default=""
    )
    shipping_address: models.JSONField = models.JSONField()
    contact_phone: models.CharField = models.CharField(
        max_length=32, blank=True, default=""
    )
    payment_method: models.CharField = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.COD,
    )
    items_price = models.DecimalField(**_MONEY)
    tax_price = models.DecimalField(**_MONEY)
    shipping_price = models.DecimalField(**_MONEY)
    total_price = models.DecimalField(**_MONEY)
    original_total_price = models.DecimalField(**_MONEY)
    savings = models.DecimalField(**_MONEY)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PLACED,
    )
    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True, default=None)
    is_delivered = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(null=True, blank=True, default=None)
    version = models.PositiveIntegerField(default=1)
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["buyer", "-created_at"], name="orders_buyer_idx"),
        ]

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the roll-up is Delivered or Cancelled."""
        return self.status in TERMINAL_STATES

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    @property
    def short_ref(self) -> str:
        return self.order_number or str(self.id)[-6:].upper()

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an order; the unit of fulfilment.

    Price, name, image and size are a **snapshot** taken at purchase time,
    never re-derived from the live product.  ``status`` is ``NULL`` only
    on legacy rows that predate per-item statuses; see
    ``modules.orders.lattice.effective_status``.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    position = models.PositiveIntegerField(default=0)
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(**_MONEY)
    original_unit_price = models.DecimalField(**_MONEY)
    name: models.CharField = models.CharField(max_length=255)
    image: models.CharField = models.CharField(max_length=500, blank=True, default="")
    size: models.CharField = models.CharField(max_length=32, blank=True, default="")
    status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
        default=OrderStatus.PLACED,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position", "created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def product_key(self) -> Optional[str]:
        return str(self.product_id) if self.product_id else None

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity} [{self.status or 'legacy'}]"

"""Product model with its owning seller.

Each product belongs to exactly one seller; that ownership is what scopes
a seller's rights over the line items of a multi-seller order.
Products are soft-deleted (``deleted_at``) because order items keep a
``PROTECT`` FK to them.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class Product(SoftDeleteModel):
    """Catalogue entry owned by a seller."""

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="products",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    discount_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        default=None,
    )
    image = models.CharField(max_length=500, blank=True, default="")
    category = models.CharField(max_length=120, blank=True, default="")
    stock = models.PositiveIntegerField(default=0)
    is_visible = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["seller"], name="products_seller_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.discount_price is not None and self.discount_price > self.price:
            raise ValidationError(
                {"discount_price": "Discount price cannot exceed the price."}
            )

    @property
    def selling_price(self) -> Decimal:
        return self.discount_price if self.discount_price is not None else self.price

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                seller_id=str(self.seller_id),
                name=self.name,
            )

    def __str__(self) -> str:
        return self.name

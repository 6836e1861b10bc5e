"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``ShippingAddressDTO``: address snapshot stored on the order.
- ``PlaceOrderItemDTO``: one line of a new order, with its price snapshot.
- ``PlaceOrderDTO``: input for order placement (nested items and prices).
- ``SellerOrderView``: an order as one seller sees it.
- ``OrderStats``: sales figures for the admin or seller dashboard.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import PaymentMethod


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class ShippingAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = Field(min_length=1)


class PlaceOrderItemDTO(BaseModel):
    """Immutable DTO for a single line of a new order.

    Prices, name, image and size are the purchase-time snapshot.  When
    ``name`` is omitted the service falls back to the product name.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    unit_price: Decimal = Field(ge=Decimal("0.00"))
    original_unit_price: Optional[Decimal] = None
    name: Optional[str] = None
    image: str = ""
    size: str = ""

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("original_unit_price")
    @classmethod
    def original_price_not_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Original unit price cannot be negative.")
        return v


class PlaceOrderDTO(BaseModel):
    """Immutable DTO for order placement requests.

    Validates:
    - ``items`` must contain at least one item.
    - Monetary fields are non-negative.
    - Only cash on delivery is accepted.
    """

    model_config = ConfigDict(frozen=True)

    items: List[PlaceOrderItemDTO]
    shipping_address: ShippingAddressDTO
    payment_method: str = PaymentMethod.COD
    total_price: Decimal = Field(ge=Decimal("0.00"))
    items_price: Optional[Decimal] = None
    tax_price: Decimal = Field(default=Decimal("0.00"), ge=Decimal("0.00"))
    shipping_price: Decimal = Field(default=Decimal("0.00"), ge=Decimal("0.00"))
    original_total_price: Optional[Decimal] = None
    savings: Decimal = Field(default=Decimal("0.00"), ge=Decimal("0.00"))
    contact_phone: Optional[str] = None
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[PlaceOrderItemDTO]
    ) -> List[PlaceOrderItemDTO]:
        if not v:
            raise ValueError("No order items.")
        return v

    @field_validator("payment_method")
    @classmethod
    def cash_on_delivery_only(cls, v: str) -> str:
        if v not in PaymentMethod.values:
            raise ValueError(f"Unsupported payment method: '{v}'.")
        return v

    @model_validator(mode="after")
    def optional_prices_not_negative(self):
        for name in ("items_price", "original_total_price"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} cannot be negative.")
        return self


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class SellerOrderView(BaseModel):
    """An order restricted to the items one seller is responsible for."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    order: Any
    items: List[Any]
    seller_total: Decimal
    seller_item_count: int


class OrderStats(BaseModel):
    """Dashboard figures.

    Admins get ``total_users`` and ``total_sellers``; sellers get
    ``total_products``.  The fields that do not apply stay ``None``.
    """

    model_config = ConfigDict(frozen=True)

    total_orders: int
    total_revenue: Decimal
    total_users: Optional[int] = None
    total_sellers: Optional[int] = None
    total_products: Optional[int] = None

"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.constants import PaymentMethod
from modules.orders.models import Order, OrderItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------

_MONEY = {"max_digits": 12, "decimal_places": 2, "min_value": Decimal("0.00")}


class ShippingAddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=120)
    state = serializers.CharField(max_length=120)
    zip_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=120)


class PlaceOrderItemSerializer(serializers.Serializer):
    """Validates a single line of an order placement request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(**_MONEY)
    original_unit_price = serializers.DecimalField(required=False, **_MONEY)
    name = serializers.CharField(required=False, max_length=255)
    image = serializers.CharField(required=False, default="", allow_blank=True)
    size = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=32
    )


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the order placement request payload."""

    items = PlaceOrderItemSerializer(many=True, allow_empty=False)
    shipping_address = ShippingAddressSerializer()
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, default=PaymentMethod.COD
    )
    total_price = serializers.DecimalField(**_MONEY)
    items_price = serializers.DecimalField(required=False, **_MONEY)
    tax_price = serializers.DecimalField(
        required=False, default=Decimal("0.00"), **_MONEY
    )
    shipping_price = serializers.DecimalField(
        required=False, default=Decimal("0.00"), **_MONEY
    )
    original_total_price = serializers.DecimalField(required=False, **_MONEY)
    savings = serializers.DecimalField(
        required=False, default=Decimal("0.00"), **_MONEY
    )
    contact_phone = serializers.CharField(
        required=False, allow_blank=True, max_length=32
    )


class UpdateStatusSerializer(serializers.Serializer):
    """``status`` stays free text; the lattice rejects it with the allowed values."""

    status = serializers.CharField(max_length=40, trim_whitespace=False)
    item_id = serializers.UUIDField(required=False, allow_null=True)


class CancelSerializer(serializers.Serializer):
    item_id = serializers.UUIDField(required=False, allow_null=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with the purchase-time snapshot."""

    subtotal = serializers.DecimalField(
        max_digits=14, decimal_places=2, read_only=True
    )

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "name",
            "image",
            "size",
            "quantity",
            "unit_price",
            "original_unit_price",
            "subtotal",
            "status",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer_id",
            "buyer_name",
            "buyer_email",
            "buyer_phone",
            "shipping_address",
            "contact_phone",
            "payment_method",
            "items_price",
            "tax_price",
            "shipping_price",
            "total_price",
            "original_total_price",
            "savings",
            "status",
            "is_paid",
            "paid_at",
            "is_delivered",
            "delivered_at",
            "version",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer_id",
            "buyer_name",
            "status",
            "total_price",
            "is_paid",
            "is_delivered",
            "created_at",
        ]
        read_only_fields = fields


class SellerOrderViewSerializer(serializers.Serializer):
    """An order as one seller sees it: only their items, with their totals."""

    order = OrderListSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    seller_total = serializers.DecimalField(
        max_digits=14, decimal_places=2, read_only=True
    )
    seller_item_count = serializers.IntegerField(read_only=True)


class OrderStatsSerializer(serializers.Serializer):
    """Dashboard figures; the counters that do not apply to the caller are omitted."""

    total_orders = serializers.IntegerField(read_only=True)
    total_revenue = serializers.DecimalField(
        max_digits=14, decimal_places=2, read_only=True
    )
    total_users = serializers.IntegerField(read_only=True, allow_null=True)
    total_sellers = serializers.IntegerField(read_only=True, allow_null=True)
    total_products = serializers.IntegerField(read_only=True, allow_null=True)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        return {key: value for key, value in data.items() if value is not None}

"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
Creation is wrapped in ``transaction.atomic()`` so the order and its
items appear together.

Concurrency control on mutations is optimistic: ``persist`` issues
``UPDATE ... WHERE id = %s AND version = %s`` and treats a zero row count
as a lost race.  Item rows are written in the same transaction, after
the version check succeeded.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, DecimalField, F, QuerySet, Sum
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import ConcurrentModification
from modules.orders.models import Order, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_ORDER_MUTABLE_FIELDS = (
    "status",
    "is_paid",
    "paid_at",
    "is_delivered",
    "delivered_at",
)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        items = data.pop("items", [])
        order = Order(status=OrderStatus.PLACED, **data)
        order.save()

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    position=position,
                    product_id=item_data["product_id"],
                    quantity=item_data["quantity"],
                    unit_price=item_data["unit_price"],
                    original_unit_price=item_data.get(
                        "original_unit_price", item_data["unit_price"]
                    ),
                    name=item_data["name"],
                    image=item_data.get("image", ""),
                    size=item_data.get("size", ""),
                    status=OrderStatus.PLACED,
                )
                for position, item_data in enumerate(items)
            ]
        )

        logger.info(
            "order.created",
            order_id=str(order.id),
            item_count=len(items),
            total_price=str(order.total_price or Decimal("0.00")),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its items prefetched.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Order.objects.prefetch_related("items").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return Order.objects.prefetch_related("items").filter(idempotency_key=key).first()

    def items_of(self, order: Order) -> List[OrderItem]:
        return list(order.items.all())

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List orders with optional filters and prefetched items.

        Filters spanning items (``items__product__seller_id``) are
        de-duplicated with ``distinct()``.
        """
        queryset = Order.objects.prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
            if any(key.startswith("items__") for key in filters):
                queryset = queryset.distinct()
        return queryset

    def sales_totals(
        self,
        order_filters: Optional[Dict[str, Any]] = None,
        item_filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        items = (
            OrderItem.objects.filter(**(item_filters or {}))
            .exclude(status=OrderStatus.CANCELLED)
            .exclude(order__status=OrderStatus.CANCELLED)
        )
        if order_filters:
            items = items.filter(
                **{f"order__{key}": value for key, value in order_filters.items()}
            )
        totals = items.aggregate(
            orders=Count("order", distinct=True),
            revenue=Sum(
                F("quantity") * F("unit_price"),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
        )
        return {
            "orders": totals["orders"] or 0,
            "revenue": totals["revenue"] or Decimal("0.00"),
        }

    # ------------------------------------------------------------------
    # Write)
    # ------------------------------------------------------------------

    @transaction.atomic
    def persist(self, order: Order, items: Iterable[OrderItem] = ()) -> Order:
        items = list(items)
        expected = order.version
        now = timezone.now()

        updated = Order.objects.filter(id=order.id, version=expected).update(
            **{field: getattr(order, field) for field in _ORDER_MUTABLE_FIELDS},
            version=F("version") + 1,
            updated_at=now,
        )
        if updated == 0:
            logger.warning(
                "order.cas_conflict",
                order_id=str(order.id),
                expected_version=expected,
            )
            raise ConcurrentModification(
                f"Order {order.id} was modified concurrently; retry the request."
            )

        if items:
            for item in items:
                item.updated_at = now
            OrderItem.objects.bulk_update(items, ["status", "updated_at"])

        order.version = expected + 1
        order.updated_at = now
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            version=order.version,
            status=order.status,
            item_count=len(items),
        )
        return order

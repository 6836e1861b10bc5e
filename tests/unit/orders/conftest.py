"""In-memory building blocks for engine tests: no ORM round-trips."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Set
from uuid import uuid4

import pytest

from modules.orders.actors import Admin, Buyer, Seller
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem
from modules.products.repositories.interfaces import IProductRepository


class FakeProductRepository(IProductRepository):
    """Product ownership held in a dict: ``{product_id: seller_id}``."""

    def __init__(self, owners: Dict[str, str]) -> None:
        self.owners = dict(owners)

    def get_by_ids(self, ids: Iterable[str]) -> List:
        return []

    def product_ids_for_seller(self, seller_id: str) -> Set[str]:
        return {pid for pid, owner in self.owners.items() if owner == seller_id}

    def seller_ids_for(self, product_ids: Iterable[str]) -> List[str]:
        seen: List[str] = []
        for pid in product_ids:
            owner = self.owners.get(str(pid))
            if owner and owner not in seen:
                seen.append(owner)
        return seen

    def save(self, entity):
        return entity


class Marketplace:
    """Two sellers, one buyer, one admin and an order builder."""

    def __init__(self) -> None:
        self.seller_a = Seller(id=str(uuid4()), name="Seller A")
        self.seller_b = Seller(id=str(uuid4()), name="Seller B")
        self.buyer = Buyer(id=str(uuid4()), name="Alice")
        self.admin = Admin(id=str(uuid4()), name="Root")
        self.product_a = uuid4()
        self.product_b = uuid4()
        self.products = FakeProductRepository(
            {
                str(self.product_a): self.seller_a.id,
                str(self.product_b): self.seller_b.id,
            }
        )

    def order(self, *statuses, order_status=OrderStatus.PLACED, products=None):
        """Build an unsaved order whose items carry *statuses* (``None`` = legacy)."""
        order = Order(
            order_number="ORD-20250101-ABC123",
            buyer_id=self.buyer.id,
            buyer_name="Alice",
            buyer_email="alice@example.com",
            shipping_address={},
            total_price=Decimal("52.50"),
            status=order_status,
        )
        products = products or [self.product_a, self.product_b]
        items = [
            OrderItem(
                id=uuid4(),
                product_id=products[index % len(products)],
                position=index,
                quantity=1,
                unit_price=Decimal("10.00"),
                name=f"Item {index}",
                status=status,
            )
            for index, status in enumerate(statuses)
        ]
        return order, items


@pytest.fixture()
def market():
    return Marketplace()

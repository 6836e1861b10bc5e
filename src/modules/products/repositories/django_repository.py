"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: look-ups return ``None``
or empty collections instead of raising, and the order service decides
how to translate a missing product.
"""

from __future__ import annotations

from typing import Iterable, List, Set

import structlog

from django.core.exceptions import ValidationError
from django.db import transaction

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_ids(self, ids: Iterable[str]) -> List[Product]:
        try:
            return list(Product.objects.filter(id__in=[str(i) for i in ids]))
        except (ValueError, ValidationError):
            return []

    def product_ids_for_seller(self, seller_id: str) -> Set[str]:
        try:
            ids = Product.objects.filter(seller_id=seller_id).values_list(
                "id", flat=True
            )
            return {str(pk) for pk in ids}
        except (ValueError, ValidationError):
            return set()

    def seller_ids_for(self, product_ids: Iterable[str]) -> List[str]:
        ordered = [str(pk) for pk in product_ids]
        owners = dict(
            Product.objects.filter(id__in=ordered).values_list("id", "seller_id")
        )
        owners = {str(pk): str(seller) for pk, seller in owners.items()}
        seen: List[str] = []
        for pk in ordered:
            seller = owners.get(pk)
            if seller and seller not in seen:
                seen.append(seller)
        return seen

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info(
            "product.saved",
            product_id=str(entity.id),
            seller_id=str(entity.seller_id),
        )
        return entity

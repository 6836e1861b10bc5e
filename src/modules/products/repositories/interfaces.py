"""Product repository interface.

The order engines only ever *read* the catalogue: they need to know which
seller owns which product.  This contract is the read-only capability
injected into them, so they never import the ORM directly.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional, Set

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_by_ids(self, ids: Iterable[str]) -> List[Product]:
        """Retrieve every product among *ids* (missing ids are skipped)."""

    @abstractmethod
    def product_ids_for_seller(self, seller_id: str) -> Set[str]:
        """Return the ids (as strings) of the products owned by *seller_id*."""

    @abstractmethod
    def seller_ids_for(self, product_ids: Iterable[str]) -> List[str]:
        """Return the distinct owning sellers of *product_ids*, in first-seen order."""

    def get_by_id(self, id: str) -> Optional[Product]:
        products = self.get_by_ids([id])
        return products[0] if products else None

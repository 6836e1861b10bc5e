"""User repository interface.

The order service reads the buyer record once, at placement time, to
snapshot the contact details onto the new order.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import User


class IUserRepository(IRepository["User"]):
    """Repository contract for marketplace users."""

    @abstractmethod
    def get_active(self, id: str) -> Optional[User]:
        """Retrieve a user that is neither deactivated nor soft-deleted."""

    @abstractmethod
    def count_by_role(self, role: str) -> int:
        """Count active, not soft-deleted users holding *role*."""

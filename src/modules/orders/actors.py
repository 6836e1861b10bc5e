"""Acting principals as a closed set of types.

The upstream auth layer hands us a principal with ``id`` and ``role``.
``actor_for`` turns it into one of ``Admin``, ``Seller`` or ``Buyer`` so
the rest of the core dispatches on type instead of comparing role
strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from modules.accounts.models import Role
from modules.orders.exceptions import Forbidden


@dataclass(frozen=True)
class Admin:
    id: str
    name: str = ""

    role = Role.ADMIN


@dataclass(frozen=True)
class Seller:
    id: str
    name: str = ""

    role = Role.SELLER


@dataclass(frozen=True)
class Buyer:
    id: str
    name: str = ""

    role = Role.USER


Actor = Union[Admin, Seller, Buyer]

_ACTOR_BY_ROLE = {
    Role.ADMIN: Admin,
    Role.SELLER: Seller,
    Role.USER: Buyer,
}


def actor_for(principal: Any) -> Actor:
    """Build the actor for an authenticated principal.

    Raises:
        Forbidden: the principal's role is not one the order core knows.
    """
    role = getattr(principal, "role", None)
    actor_cls = _ACTOR_BY_ROLE.get(role)
    if actor_cls is None:
        raise Forbidden(f"Unauthorized role for order operations: '{role}'")
    name = getattr(principal, "display_name", "") or getattr(principal, "name", "")
    pk = getattr(principal, "pk", None) or principal.id
    return actor_cls(id=str(pk), name=name)

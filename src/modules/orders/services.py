"""Order service layer (Use Cases).

Orchestrates placement, status updates, cancellation and the role-scoped
queries.  Decisions are delegated to the engines; this layer owns the
read-modify-write cycle around them and the publication of the domain
events they collect.

Concurrency is optimistic: every mutation re-reads the aggregate, runs
the engine and persists with a compare-and-swap on ``Order.version``.
A lost race is retried up to ``ORDER_WRITE_MAX_ATTEMPTS`` times; after
that the caller gets a retryable ``OrderConflict``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, TypeVar

import structlog
from django.conf import settings
from django.utils import timezone

from modules.accounts.models import Role
from modules.orders.actors import Admin, Buyer, Seller
from modules.orders.authorization import AuthorizationResolver
from modules.orders.cancellation import CancellationEngine
from modules.orders.constants import ACTIVE_ORDER_STATES, Purpose
from modules.orders.dtos import OrderStats, SellerOrderView
from modules.orders.engine import StatusTransitionEngine
from modules.orders.events import OrderPaid, OrderPlaced
from modules.orders.exceptions import (
    ConcurrentModification,
    Forbidden,
    OrderConflict,
    OrderFrozen,
    OrderNotFound,
    ProductNotFound,
)
from modules.orders.lattice import parse_status
from shared.infrastructure.bus import event_bus as default_event_bus

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.accounts.repositories.interfaces import IUserRepository
    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)

R = TypeVar("R")


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the event bus via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        user_repository: IUserRepository,
        event_bus: Optional[IEventBus] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._user_repo = user_repository
        self._event_bus = event_bus or default_event_bus
        self._max_attempts = max_attempts or getattr(
            settings, "ORDER_WRITE_MAX_ATTEMPTS", 3
        )
        self._resolver = AuthorizationResolver(product_repository)
        self._transitions = StatusTransitionEngine(self._resolver)
        self._cancellations = CancellationEngine(self._resolver, product_repository)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def place_order(self, actor, dto: PlaceOrderDTO) -> Order:
        """Create a new order for *actor* with every item ``Placed``.

        The buyer's contact details and the shipping address are copied
        onto the order.  Replaying an idempotency key returns the order
        created by the first request.

        Raises:
            Forbidden: the actor is not a buyer, or their account is gone.
            ProductNotFound: a referenced product does not exist.
        """
        log = logger.bind(buyer_id=actor.id)
        log.info("order.placement_started", item_count=len(dto.items))

        if not isinstance(actor, Buyer):
            raise Forbidden(f"Only buyers can place orders (role '{actor.role}').")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        buyer = self._user_repo.get_active(actor.id)
        if buyer is None:
            raise Forbidden("Buyer account is not active.")

        requested_ids = [str(item.product_id) for item in dto.items]
        products = {
            str(product.id): product
            for product in self._product_repo.get_by_ids(requested_ids)
            if not product.is_deleted
        }
        missing = [pk for pk in requested_ids if pk not in products]
        if missing:
            raise ProductNotFound(f"Product {missing[0]} not found.")

        items: List[Dict[str, Any]] = []
        for item in dto.items:
            product = products[str(item.product_id)]
            items.append(
                {
                    "product_id": product.id,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "original_unit_price": (
                        item.original_unit_price
                        if item.original_unit_price is not None
                        else item.unit_price
                    ),
                    "name": item.name or product.name,
                    "image": item.image or product.image,
                    "size": item.size,
                }
            )

        order = self._order_repo.create(
            {
                "buyer": buyer,
                "buyer_name": buyer.display_name,
                "buyer_email": buyer.email,
                "buyer_phone": buyer.phone_number,
                "shipping_address": dto.shipping_address.model_dump(),
                "contact_phone": dto.contact_phone or buyer.phone_number,
                "payment_method": dto.payment_method,
                "items_price": (
                    dto.items_price if dto.items_price is not None else dto.total_price
                ),
                "tax_price": dto.tax_price,
                "shipping_price": dto.shipping_price,
                "total_price": dto.total_price,
                "original_total_price": (
                    dto.original_total_price
                    if dto.original_total_price is not None
                    else dto.total_price
                ),
                "savings": dto.savings,
                "idempotency_key": dto.idempotency_key,
                "items": items,
            }
        )

        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                order_number=order.order_number,
                actor_id=actor.id,
                actor_role=str(actor.role),
                actor_name=buyer.display_name,
                buyer_id=str(buyer.id),
                product_names=tuple(item["name"] for item in items),
                total_price=str(order.total_price),
                seller_ids=tuple(self._product_repo.seller_ids_for(requested_ids)),
            )
        )
        log.info("order.placed", order_id=str(order.id))
        self._publish(order)

        return self._order_repo.get_by_id(str(order.id)) or order

    def update_order_status(
        self,
        actor,
        order_id: str,
        status: str,
        item_id: Optional[str] = None,
    ) -> Order:
        """Apply *status* to the items *actor* may touch (one item if *item_id*).

        Raises:
            OrderNotFound: the order does not exist.
            OrderConflict: the write kept losing races.
            OrderError: whatever ``StatusTransitionEngine.apply`` rejects.
        """
        log = logger.bind(
            order_id=str(order_id),
            role=str(actor.role),
            requested_status=status,
            item_id=str(item_id) if item_id is not None else None,
        )

        def apply(order: Order, items: List[OrderItem]):
            return self._transitions.apply(order, items, actor, status, item_id)

        result, order = self._mutate(order_id, apply, log)
        log.info(
            "order.status_updated",
            old_status=result.old_status,
            new_status=result.new_status,
            updated_items=result.updated_count,
        )
        return self._reload(order)

    def cancel_order(self, actor, order_id: str, item_id: Optional[str] = None) -> Order:
        """Cancel the whole order, or the single item *item_id*.

        Raises:
            OrderNotFound: the order does not exist.
            OrderConflict: an item is past ``Placed`` or the write kept
                losing races.
            OrderError: whatever ``CancellationEngine.cancel`` rejects.
        """
        log = logger.bind(
            order_id=str(order_id),
            role=str(actor.role),
            item_id=str(item_id) if item_id is not None else None,
        )

        def cancel(order: Order, items: List[OrderItem]):
            return self._cancellations.cancel(order, items, actor, item_id)

        result, order = self._mutate(order_id, cancel, log)
        log.info(
            "order.cancelled",
            cancelled_items=len(result.cancelled_items),
            order_cancelled=result.order_cancelled,
        )
        return self._reload(order)

    def mark_paid(self, actor, order_id: str) -> Order:
        """Record the cash-on-delivery payment of an order.

        Allowed to admins and to sellers with items in the order.  Marking
        an already paid order keeps the original ``paid_at``.

        Raises:
            OrderNotFound: the order does not exist.
            OrderFrozen: the order is cancelled.
            Forbidden: the actor may not record payments on this order.
        """
        log = logger.bind(order_id=str(order_id), role=str(actor.role))

        def pay(order: Order, items: List[OrderItem]) -> bool:
            if order.is_cancelled:
                raise OrderFrozen("Cannot mark a cancelled order as paid.")
            if isinstance(actor, Buyer):
                raise Forbidden("Buyers cannot record payments.")
            self._resolver.resolve(actor, order, items, Purpose.STATUS_UPDATE)
            if order.is_paid:
                return False
            order.is_paid = True
            order.paid_at = timezone.now()
            order.add_domain_event(
                OrderPaid(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    actor_id=actor.id,
                    actor_role=str(actor.role),
                    actor_name=actor.name,
                    buyer_id=str(order.buyer_id) if order.buyer_id else None,
                    total_price=str(order.total_price),
                    seller_ids=tuple(
                        self._product_repo.seller_ids_for(
                            item.product_key for item in items
                        )
                    ),
                )
            )
            return True

        changed, order = self._mutate(order_id, pay, log)
        log.info("order.marked_paid", changed=changed)
        return self._reload(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, actor, order_id: str) -> Order:
        """Retrieve a single order visible to *actor*.

        Admins and sellers may read any order; buyers only their own.

        Raises:
            OrderNotFound: the order does not exist.
            Forbidden: a buyer asked for someone else's order.
        """
        order = self._load(order_id)
        if isinstance(actor, Buyer) and str(order.buyer_id) != actor.id:
            logger.warning(
                "order.read_forbidden", order_id=str(order_id), buyer_id=actor.id
            )
            raise Forbidden("Not authorized to view this order.")
        return order

    def list_orders(self, actor, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Return the orders *actor* may see, newest first.

        Buyers see their own orders, sellers the orders containing one of
        their products, admins everything.  Supported *filters* (falsy
        values are ignored): ``status``, ``active``, ``start_date``,
        ``end_date``, and for admins ``seller`` and ``buyer``.

        Raises:
            InvalidStatus: ``status`` is not a known status.
        """
        filters = filters or {}
        lookups: Dict[str, Any] = {}

        if isinstance(actor, Buyer):
            lookups["buyer_id"] = actor.id
        elif isinstance(actor, Seller):
            lookups["items__product__seller_id"] = actor.id
        elif isinstance(actor, Admin):
            if filters.get("seller"):
                lookups["items__product__seller_id"] = str(filters["seller"])
            if filters.get("buyer"):
                lookups["buyer_id"] = str(filters["buyer"])
        else:
            raise Forbidden(f"Unauthorized actor: {type(actor).__name__}")

        if filters.get("active"):
            lookups["status__in"] = sorted(ACTIVE_ORDER_STATES)
        elif filters.get("status"):
            lookups["status"] = parse_status(filters["status"])
        if filters.get("start_date"):
            lookups["created_at__gte"] = filters["start_date"]
        if filters.get("end_date"):
            lookups["created_at__lte"] = filters["end_date"]

        return self._order_repo.list(lookups).order_by("-created_at", "-id")

    def get_seller_view(self, actor, order_id: str) -> SellerOrderView:
        """Return the order restricted to the items *actor* is responsible for.

        Admins see every item.

        Raises:
            OrderNotFound: the order does not exist.
            Forbidden: a buyer, or a seller with no item in the order.
        """
        order = self._load(order_id)
        items = self._order_repo.items_of(order)
        if isinstance(actor, Buyer):
            raise Forbidden("Buyers have no seller view of an order.")
        mine = self._resolver.resolve(actor, order, items, Purpose.STATUS_UPDATE)
        return SellerOrderView(
            order=order,
            items=mine,
            seller_total=sum((item.subtotal for item in mine), Decimal("0.00")),
            seller_item_count=len(mine),
        )

    def stats(self, actor, filters: Optional[Dict[str, Any]] = None) -> OrderStats:
        """Sales figures for the dashboard of *actor*.

        Cancelled orders and cancelled items never count.  Admins get
        platform totals, narrowed to one ``seller`` if given; sellers get
        their own figures, narrowed to one of their ``product``s if given.
        ``start_date`` and ``end_date`` bound the placement time.

        Raises:
            Forbidden: buyers have no sales dashboard.
        """
        filters = filters or {}
        order_lookups: Dict[str, Any] = {}
        if filters.get("start_date"):
            order_lookups["created_at__gte"] = filters["start_date"]
        if filters.get("end_date"):
            order_lookups["created_at__lte"] = filters["end_date"]

        if isinstance(actor, Admin):
            item_lookups: Dict[str, Any] = {}
            if filters.get("seller"):
                item_lookups["product__seller_id"] = str(filters["seller"])
            totals = self._order_repo.sales_totals(order_lookups, item_lookups)
            return OrderStats(
                total_orders=totals["orders"],
                total_revenue=totals["revenue"],
                total_users=self._user_repo.count_by_role(Role.USER),
                total_sellers=self._user_repo.count_by_role(Role.SELLER),
            )

        if isinstance(actor, Seller):
            item_lookups = {"product__seller_id": actor.id}
            if filters.get("product"):
                item_lookups["product_id"] = str(filters["product"])
            totals = self._order_repo.sales_totals(order_lookups, item_lookups)
            return OrderStats(
                total_orders=totals["orders"],
                total_revenue=totals["revenue"],
                total_products=len(
                    self._product_repo.product_ids_for_seller(actor.id)
                ),
            )

        logger.warning("order.stats_forbidden", role=str(actor.role))
        raise Forbidden("Only sellers and admins have a sales dashboard.")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, order_id: str) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _reload(self, order: Order) -> Order:
        return self._order_repo.get_by_id(str(order.id)) or order

    def _mutate(
        self,
        order_id: str,
        operation: Callable[[Order, List[OrderItem]], R],
        log,
    ) -> tuple[R, Order]:
        """Read, decide and compare-and-swap, retrying lost races.

        Each attempt works on a fresh read, so the decision is re-validated
        against whatever the competing writer left behind.
        """
        for attempt in range(1, self._max_attempts + 1):
            order = self._load(order_id)
            items = self._order_repo.items_of(order)
            result = operation(order, items)
            try:
                self._order_repo.persist(order, items)
            except ConcurrentModification:
                log.warning("order.write_retry", attempt=attempt)
                continue
            self._publish(order)
            return result, order

        log.error("order.write_conflict", attempts=self._max_attempts)
        raise OrderConflict(
            "The order was modified by another request. Please retry."
        )

    def _publish(self, order: Order) -> None:
        for event in order.domain_events:
            try:
                self._event_bus.publish(event)
            except Exception:
                logger.exception(
                    "order.event_publish_failed",
                    order_id=str(order.id),
                    event_name=event.event_name,
                )
        order.clear_domain_events()

"""Event handlers for Orders domain events.

Subscribed on the in-memory bus by ``OrdersConfig.ready``.  They run
after the order write has been persisted: the activity log entry is
appended in-process and the buyer notification is handed to Celery.
"""

from __future__ import annotations

import structlog

from modules.activity.constants import ActivityType, TargetType
from modules.activity.sink import ActivityEntry, append_activity
from modules.notifications.models import NotificationKind
from modules.notifications.tasks import dispatch_notification
from modules.orders.constants import OrderStatus
from modules.orders.events import (
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    OrderStatusChanged,
)
from modules.products.repositories import IProductRepository, ProductDjangoRepository
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


def _short_ref(event) -> str:
    return event.order_number or str(event.aggregate_id)[-6:].upper()


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


class OrderPlacedActivityHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        product_names = ", ".join(event.product_names)
        append_activity(
            ActivityEntry(
                actor_id=event.actor_id,
                role=event.actor_role,
                type=ActivityType.ORDER_PLACED,
                target_type=TargetType.ORDER,
                target_id=str(event.aggregate_id),
                description=(
                    f"Placed a new order #{_short_ref(event)} for {product_names}"
                ),
                details={
                    "order_id": str(event.aggregate_id),
                    "product_names": product_names,
                    "amount": event.total_price,
                    "seller_ids": list(event.seller_ids),
                },
                seller_ids=event.seller_ids,
            )
        )


class OrderStatusChangedActivityHandler(IEventHandler[OrderStatusChanged]):
    """Tags the sellers owning the updated items, whoever made the change."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._products = product_repository

    def handle(self, event: OrderStatusChanged) -> None:
        seller_ids = tuple(self._products.seller_ids_for(event.product_ids))
        append_activity(
            ActivityEntry(
                actor_id=event.actor_id,
                role=event.actor_role,
                type=ActivityType.ORDER_STATUS_CHANGE,
                target_type=TargetType.ORDER,
                target_id=str(event.aggregate_id),
                description=(
                    f"Status updated: {event.old_status} → "
                    f"{event.requested_status} ({event.actor_role})"
                ),
                details={
                    "order_id": str(event.aggregate_id),
                    "old_status": event.old_status,
                    "new_status": event.requested_status,
                    "order_status": event.new_status,
                    "updated_items_count": len(event.item_ids),
                    "item_ids": list(event.item_ids),
                    "actor_name": event.actor_name,
                    "is_admin_override": event.is_admin_override,
                    "seller_ids": list(seller_ids),
                },
                seller_ids=seller_ids,
            )
        )


class OrderCancelledActivityHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        product_names = ", ".join(event.product_names)
        if event.item_id:
            description = (
                f"Cancelled item: {product_names} in Order #{_short_ref(event)}"
            )
        else:
            description = (
                f"Order #{_short_ref(event)} was officially cancelled "
                f"by {event.actor_role}."
            )
        append_activity(
            ActivityEntry(
                actor_id=event.actor_id,
                role=event.actor_role,
                type=ActivityType.ORDER_CANCELLED,
                target_type=TargetType.ORDER,
                target_id=str(event.aggregate_id),
                description=description,
                details={
                    "order_id": str(event.aggregate_id),
                    "item_id": event.item_id,
                    "status": OrderStatus.CANCELLED.value,
                    "product_names": product_names,
                    "user_name": event.actor_name,
                    "seller_ids": list(event.seller_ids),
                },
                seller_ids=event.seller_ids,
            )
        )


class OrderPaidActivityHandler(IEventHandler[OrderPaid]):
    def handle(self, event: OrderPaid) -> None:
        append_activity(
            ActivityEntry(
                actor_id=event.actor_id,
                role=event.actor_role,
                type=ActivityType.PAYMENT_RECORDED,
                target_type=TargetType.ORDER,
                target_id=str(event.aggregate_id),
                description=(
                    f"Payment of {event.total_price} recorded for "
                    f"order #{_short_ref(event)}"
                ),
                details={
                    "order_id": str(event.aggregate_id),
                    "amount": event.total_price,
                    "seller_ids": list(event.seller_ids),
                },
                seller_ids=event.seller_ids,
            )
        )


# ---------------------------------------------------------------------------
# Buyer notifications
# ---------------------------------------------------------------------------


def _notify_buyer(event, title: str, body: str, status: str) -> None:
    if event.buyer_id is None:
        logger.info(
            "order.notification_skipped",
            order_id=str(event.aggregate_id),
            reason="buyer_deleted",
        )
        return
    payload = {
        "order_id": str(event.aggregate_id),
        "order_number": event.order_number,
        "item_ids": list(event.item_ids),
        "dedupe_key": f"{event.aggregate_id}:{status}:{event.event_id}",
    }
    try:
        dispatch_notification.delay(
            event.buyer_id,
            title,
            body,
            NotificationKind.ORDER_UPDATE.value,
            payload,
            status,
        )
    except Exception:
        logger.exception(
            "order.notification_enqueue_failed",
            order_id=str(event.aggregate_id),
            buyer_id=event.buyer_id,
        )


class OrderStatusChangedNotificationHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        if not event.changed_item_ids and event.old_status == event.new_status:
            logger.info(
                "order.notification_skipped",
                order_id=str(event.aggregate_id),
                reason="unchanged",
            )
            return
        status = event.requested_status
        if event.whole_order:
            body = f"Your order #{_short_ref(event)} is now {status}."
        else:
            names = ", ".join(event.item_names)
            body = f"{names} in order #{_short_ref(event)} is now {status}."
        _notify_buyer(event, f"Order {status}", body, status)


class OrderCancelledNotificationHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        if event.item_id:
            names = ", ".join(event.product_names)
            body = f"{names} was cancelled from order #{_short_ref(event)}."
        else:
            body = f"Your order #{_short_ref(event)} has been cancelled."
        _notify_buyer(event, "Order Cancelled", body, OrderStatus.CANCELLED.value)


order_placed_activity_handler = OrderPlacedActivityHandler()
order_status_changed_activity_handler = OrderStatusChangedActivityHandler(
    ProductDjangoRepository()
)
order_cancelled_activity_handler = OrderCancelledActivityHandler()
order_paid_activity_handler = OrderPaidActivityHandler()
order_status_changed_notification_handler = OrderStatusChangedNotificationHandler()
order_cancelled_notification_handler = OrderCancelledNotificationHandler()

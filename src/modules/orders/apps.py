from django.apps import AppConfig


class OrdersConfig(AppConfig):
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCancelled,
            OrderPaid,
            OrderPlaced,
            OrderStatusChanged,
        )
        from modules.orders.handlers import (
            order_cancelled_activity_handler,
            order_cancelled_notification_handler,
            order_paid_activity_handler,
            order_placed_activity_handler,
            order_status_changed_activity_handler,
            order_status_changed_notification_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderPlaced, order_placed_activity_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_activity_handler)
        event_bus.subscribe(
            OrderStatusChanged, order_status_changed_notification_handler
        )
        event_bus.subscribe(OrderCancelled, order_cancelled_activity_handler)
        event_bus.subscribe(OrderCancelled, order_cancelled_notification_handler)
        event_bus.subscribe(OrderPaid, order_paid_activity_handler)

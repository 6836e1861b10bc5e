"""Activity log vocabularies."""

from django.db import models


class ActivityType(models.TextChoices):
    ORDER_PLACED = "order_placed", "Order placed"
    ORDER_STATUS_CHANGE = "order_status_change", "Order status change"
    ORDER_CANCELLED = "order_cancelled", "Order cancelled"
    PAYMENT_RECORDED = "payment_recorded", "Payment recorded"
    SYSTEM_ACTION = "system_action", "System action"


class TargetType(models.TextChoices):
    ORDER = "Order", "Order"
    PRODUCT = "Product", "Product"
    USER = "User", "User"
    SYSTEM = "System", "System"


MY_ACTIVITY_LIMIT = 50

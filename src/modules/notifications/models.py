"""In-app notifications addressed to a single user.

A notification carrying a ``dedupe_key`` is unique per
``(user, kind, dedupe_key)``: replaying the same order event never shows
the buyer the same message twice.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class NotificationKind(models.TextChoices):
    ORDER_UPDATE = "order_update", "Order update"
    PROMOTION = "promotion", "Promotion"
    SYSTEM = "system", "System"


class Notification(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    title = models.CharField(max_length=255)
    body = models.TextField()
    kind = models.CharField(max_length=20, choices=NotificationKind.choices)
    reference_id = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(max_length=32, blank=True, default="")
    dedupe_key = models.CharField(max_length=255, null=True, blank=True)  # noqa: DJ01
    payload = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="notifications_user_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "kind", "dedupe_key"],
                condition=models.Q(dedupe_key__isnull=False),
                name="notifications_dedupe_unique",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} -> {self.user_id}"

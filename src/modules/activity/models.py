"""Append-only audit log.

Rows are written by ``modules.activity.sink.append_activity`` and never
updated, except for the per-reader ``is_read`` flag.  ``sellers`` tags
the sellers whose products an action touched, which is what lets an
order placed by a buyer show up in each involved seller's feed.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.accounts.models import Role
from modules.activity.constants import ActivityType, TargetType
from modules.core.models import BaseModel


class Activity(BaseModel):
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activities",
    )
    role = models.CharField(max_length=20, choices=Role.choices)
    type = models.CharField(max_length=40, choices=ActivityType.choices)
    target_type = models.CharField(max_length=20, choices=TargetType.choices)
    target_id = models.CharField(max_length=64, blank=True, default="")
    description = models.TextField()
    details = models.JSONField(default=dict, blank=True)
    sellers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="tagged_activities",
    )
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "activities"
        ordering = ["-created_at"]
        verbose_name_plural = "activities"
        indexes = [
            models.Index(fields=["actor", "-created_at"], name="activities_actor_idx"),
            models.Index(fields=["type"], name="activities_type_idx"),
        ]

    def __str__(self) -> str:
        return f"[{self.type}] {self.description}"

"""User accounts with marketplace roles.

Authentication, registration and verification flows live upstream; this
module only carries what the order engines need from a principal: its
id, its role and the contact details snapshotted onto orders.
"""

from __future__ import annotations

import uuid6
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class Role(models.TextChoices):
    USER = "user", "Buyer"
    SELLER = "seller", "Seller"
    ADMIN = "admin", "Admin"


class User(AbstractUser):
    """Marketplace principal.

    ``role`` drives order authorisation.  Users are soft-deleted
    (``deleted_at`` + ``is_active=False``) so that orders referencing them
    keep a valid FK; the order's buyer snapshot remains the display
    source of truth either way.
    """

    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)
    phone_number = models.CharField(max_length=32, blank=True, default="")
    fcm_token = models.CharField(max_length=512, blank=True, default="", db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "users"
        indexes = [
            models.Index(fields=["role"], name="users_role_idx"),
        ]

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.get_username()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        """Retire the account without breaking references to it."""
        if self.is_deleted:
            return
        self.deleted_at = timezone.now()
        self.is_active = False
        self.fcm_token = ""
        self.save(update_fields=["deleted_at", "is_active", "fcm_token"])

    def __str__(self) -> str:
        return f"{self.display_name} ({self.role})"

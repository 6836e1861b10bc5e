"""Django ORM implementation of the User repository."""

from __future__ import annotations

from typing import Optional

import structlog

from django.core.exceptions import ValidationError

from modules.accounts.models import User
from modules.accounts.repositories.interfaces import IUserRepository

logger = structlog.get_logger(__name__)


class UserDjangoRepository(IUserRepository):
    """Concrete User repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[User]:
        try:
            return User.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_active(self, id: str) -> Optional[User]:
        try:
            return User.objects.filter(
                id=id, is_active=True, deleted_at__isnull=True
            ).first()
        except (ValueError, ValidationError):
            return None

    def count_by_role(self, role: str) -> int:
        return User.objects.filter(
            role=role, is_active=True, deleted_at__isnull=True
        ).count()

    def save(self, entity: User) -> User:
        entity.save()
        logger.info("user.saved", user_id=str(entity.id), role=entity.role)
        return entity

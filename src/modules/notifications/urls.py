"""Notification URL configuration."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.notifications.views import NotificationViewSet

router = SimpleRouter(trailing_slash=True)
router.register("notifications", NotificationViewSet, basename="notification")

urlpatterns = router.urls

"""Activity URL configuration."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.activity.views import ActivityViewSet

router = SimpleRouter(trailing_slash=True)
router.register("activity", ActivityViewSet, basename="activity")

urlpatterns = router.urls

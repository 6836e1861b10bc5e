"""Activity API views.

``GET /api/v1/activity/`` is the role-scoped audit feed (sellers and
admins); ``GET /api/v1/activity/me/`` lists the caller's own actions.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.activity.filters import ActivityFilter
from modules.activity.models import Activity
from modules.activity.serializers import ActivitySerializer
from modules.activity.services import ActivityService
from modules.orders.actors import actor_for
from modules.orders.exceptions import OrderError


class ActivityViewSet(GenericViewSet):
    queryset = Activity.objects.none()
    serializer_class = ActivitySerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ActivityService()

    def list(self, request: Request) -> Response:
        """GET /api/v1/activity/

        Filters: ``user``, ``role`` (admins only), ``type``,
        ``target_type``, ``start_date``, ``end_date``.  Paginated.
        """
        filterset = ActivityFilter(request.query_params)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            queryset = self._service.feed(
                actor_for(request.user), filterset.form.cleaned_data
            )
        except OrderError as exc:
            return Response({"detail": str(exc)}, status=exc.http_status)

        page = self.paginate_queryset(queryset)
        serializer = ActivitySerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=["get"])
    def me(self, request: Request) -> Response:
        """GET /api/v1/activity/me/"""
        try:
            activities = self._service.mine(actor_for(request.user))
        except OrderError as exc:
            return Response({"detail": str(exc)}, status=exc.http_status)
        return Response(ActivitySerializer(activities, many=True).data)

"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into HTTP status codes via
``OrderError.http_status``; the view never swallows generic exceptions.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.repositories import UserDjangoRepository
from modules.orders.actors import actor_for
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.exceptions import OrderError
from modules.orders.filters import OrderFilter, OrderStatsFilter
from modules.orders.models import Order
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.serializers import (
    CancelSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatsSerializer,
    PlaceOrderSerializer,
    SellerOrderViewSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories import ProductDjangoRepository

logger = structlog.get_logger(__name__)


def _error_response(exc: OrderError) -> Response:
    logger.info(
        "order.request_rejected",
        error=type(exc).__name__,
        http_status=exc.http_status,
        detail=str(exc),
    )
    return Response({"detail": str(exc)}, status=exc.http_status)


def _optional_id(value) -> str | None:
    return str(value) if value else None


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            user_repository=UserDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "seller_view", "stats"}:
            throttle_scope = "order_listing"
        elif self.action in {"update_status", "cancel", "pay"}:
            throttle_scope = "order_status"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header: a replay
        returns the order created by the first request.
        """
        place_serializer = PlaceOrderSerializer(data=request.data)
        place_serializer.is_valid(raise_exception=True)

        try:
            dto = PlaceOrderDTO(
                **place_serializer.validated_data,
                idempotency_key=request.headers.get("Idempotency-Key") or None,
            )
        except DTOValidationError as exc:
            return Response(
                {
                    "detail": exc.errors(
                        include_url=False, include_context=False, include_input=False
                    )
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.place_order(actor_for(request.user), dto)
        except OrderError as exc:
            return _error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Role-scoped: buyers see their orders, sellers the orders holding
        their products, admins everything.  Filters: ``status``,
        ``active``, ``start_date``, ``end_date`` and, for admins,
        ``seller`` and ``buyer``.  Results are paginated.
        """
        filterset = OrderFilter(request.query_params)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            queryset = self._service.list_orders(
                actor_for(request.user), filterset.form.cleaned_data
            )
        except OrderError as exc:
            return _error_response(exc)

        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/orders/stats/

        Dashboard totals.  Filters: ``start_date``, ``end_date``, and
        ``seller`` for admins or ``product`` for sellers.
        """
        filterset = OrderStatsFilter(request.query_params)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            stats = self._service.stats(
                actor_for(request.user), filterset.form.cleaned_data
            )
        except OrderError as exc:
            return _error_response(exc)
        return Response(OrderStatsSerializer(stats).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(actor_for(request.user), pk)
        except OrderError as exc:
            return _error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"], url_path="seller-view")
    def seller_view(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/seller-view/

        The order restricted to the caller's own items, with their total.
        """
        try:
            view = self._service.get_seller_view(actor_for(request.user), pk)
        except OrderError as exc:
            return _error_response(exc)
        return Response(SellerOrderViewSerializer(view).data)

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put", "patch"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/

        Body: ``{"status": "...", "item_id": "..."}``.  Without
        ``item_id`` the status applies to every item the caller may touch.
        """
        status_serializer = UpdateStatusSerializer(data=request.data)
        status_serializer.is_valid(raise_exception=True)
        data = status_serializer.validated_data

        try:
            order = self._service.update_order_status(
                actor_for(request.user),
                pk,
                data["status"],
                item_id=_optional_id(data.get("item_id")),
            )
        except OrderError as exc:
            return _error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel / Pay
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post", "put"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Body (optional): ``{"item_id": "..."}`` to cancel a single item.
        """
        cancel_serializer = CancelSerializer(data=request.data)
        cancel_serializer.is_valid(raise_exception=True)

        try:
            order = self._service.cancel_order(
                actor_for(request.user),
                pk,
                item_id=_optional_id(cancel_serializer.validated_data.get("item_id")),
            )
        except OrderError as exc:
            return _error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["put", "post"])
    def pay(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/pay/"""
        try:
            order = self._service.mark_paid(actor_for(request.user), pk)
        except OrderError as exc:
            return _error_response(exc)
        return Response(OrderSerializer(order).data)

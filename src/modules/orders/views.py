"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into the standard error
envelope; the view never swallows generic exceptions.

- ``OrderViewSet``: the signed-in customer's checkout and order history.
- ``AdminOrderViewSet``: staff listing and fulfilment transitions.
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.core.exceptions import error_response, pydantic_error_response
from modules.core.identity import resolve_actor_id, resolve_owner_key
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import AddressDTO, CreateOrderDTO, UpdateOrderStatusDTO
from modules.orders.exceptions import (
    CheckoutFailed,
    EmptyCart,
    InvalidTransition,
    NotCancellable,
    OrderNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdminOrderSerializer,
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    TrackingSerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderService
from modules.products.exceptions import InsufficientStock, ProductUnavailable

# Exception class -> (error code, HTTP status).  Order matters: subclasses
# must come before their parents.
_DOMAIN_ERRORS: Dict[Type[Exception], Tuple[str, int]] = {
    OrderNotFound: ("not_found", status.HTTP_404_NOT_FOUND),
    EmptyCart: ("empty_cart", status.HTTP_400_BAD_REQUEST),
    ProductUnavailable: ("product_unavailable", status.HTTP_400_BAD_REQUEST),
    InsufficientStock: ("insufficient_stock", status.HTTP_409_CONFLICT),
    NotCancellable: ("not_cancellable", status.HTTP_400_BAD_REQUEST),
    InvalidTransition: ("invalid_transition", status.HTTP_400_BAD_REQUEST),
    CheckoutFailed: ("checkout_failed", status.HTTP_500_INTERNAL_SERVER_ERROR),
}
_HANDLED = tuple(_DOMAIN_ERRORS)


def domain_error_response(exc: Exception) -> Response:
    for exc_type, (code, status_code) in _DOMAIN_ERRORS.items():
        if isinstance(exc, exc_type):
            return error_response(str(exc), code=code, status_code=status_code)
    raise exc


def _order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
    )


class OrderViewSet(GenericViewSet):
    """Customer orders, scoped to the requesting owner.

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.none()
    permission_classes = [IsAuthenticated]
    ordering = ["-created_at", "-id"]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "checkout" if self.action == "create" else None
        return super().get_throttles()

    def get_queryset(self):
        owner_key = resolve_owner_key(self.request)
        return OrderDjangoRepository().queryset({"owner_key": owner_key})

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/ converts the caller's cart into an order."""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = CreateOrderDTO(
                owner_key=resolve_owner_key(request),
                payment_method=data["payment_method"],
                shipping_address=AddressDTO(**data["shipping_address"]),
                billing_address=AddressDTO(**data["billing_address"]),
                customer_notes=data["customer_notes"],
                coupon_code=data["coupon_code"],
                actor_id=resolve_actor_id(request),
            )
            order = self._service.create_order(dto)
        except PydanticValidationError as exc:
            return pydantic_error_response(exc)
        except _HANDLED as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/ (paginated, newest first)."""
        queryset = self.get_queryset().order_by(*self.ordering)
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk, owner_key=resolve_owner_key(request))
        except OrderNotFound as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def tracking(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/tracking/"""
        try:
            tracking = self._service.get_tracking(
                pk, owner_key=resolve_owner_key(request)
            )
        except OrderNotFound as exc:
            return domain_error_response(exc)
        return Response(TrackingSerializer(tracking.model_dump()).data)


class AdminOrderViewSet(GenericViewSet):
    """Staff order management.

    Filtering (status, payment status/method, order number, date range) is
    handled by ``OrderFilter``; ordering by ``OrderingFilter``.
    """

    queryset = Order.objects.none()
    permission_classes = [IsAdminUser]
    filterset_class = OrderFilter
    search_fields = ["order_number"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _order_service()

    def get_queryset(self):
        return OrderDjangoRepository().queryset()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/"""
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/admin/orders/{pk}/"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound as exc:
            return domain_error_response(exc)
        return Response(AdminOrderSerializer(order).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/status/

        Cancellations are accepted here too; they go through the same
        state machine edge and restock hook as ``/cancel/``.
        """
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = UpdateOrderStatusDTO(**serializer.validated_data)
            order = self._service.apply_status_update(
                pk, dto, actor_id=resolve_actor_id(request)
            )
        except PydanticValidationError as exc:
            return pydantic_error_response(exc)
        except _HANDLED as exc:
            return domain_error_response(exc)
        return Response(AdminOrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/admin/orders/{pk}/cancel/ (restocks every line)."""
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = self._service.cancel_order(
                pk,
                reason=serializer.validated_data["reason"],
                actor_id=resolve_actor_id(request),
            )
        except _HANDLED as exc:
            return domain_error_response(exc)
        return Response(AdminOrderSerializer(order).data)

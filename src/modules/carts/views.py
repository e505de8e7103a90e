"""Cart API views.

Carts are open to anonymous visitors: the owner is the authenticated user
when there is one, otherwise the visitor's session.  Domain exceptions are
translated into the standard error envelope.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
from modules.carts.exceptions import CartItemNotFound
from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.serializers import (
    AddCartItemSerializer,
    CartSerializer,
    UpdateCartItemSerializer,
)
from modules.carts.services import CartService
from modules.core.exceptions import error_response, pydantic_error_response
from modules.core.identity import resolve_owner_key
from modules.products.exceptions import InsufficientStock, ProductUnavailable
from modules.products.repositories.django_repository import ProductDjangoRepository


def _cart_service() -> CartService:
    return CartService(
        cart_repository=CartDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


def _catalog_error(exc: Exception) -> Response:
    if isinstance(exc, InsufficientStock):
        return error_response(
            str(exc),
            code="insufficient_stock",
            status_code=status.HTTP_409_CONFLICT,
        )
    return error_response(
        str(exc),
        code="product_unavailable",
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def _item_not_found(exc: CartItemNotFound) -> Response:
    return error_response(
        str(exc), code="not_found", status_code=status.HTTP_404_NOT_FOUND
    )


class CartViewSet(ViewSet):
    """GET/DELETE /api/v1/cart/"""

    permission_classes = [AllowAny]
    throttle_scope = "cart"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _cart_service()

    def retrieve(self, request: Request) -> Response:
        cart = self._service.get_cart(resolve_owner_key(request))
        return Response(CartSerializer(cart).data)

    def clear(self, request: Request) -> Response:
        cart = self._service.clear(resolve_owner_key(request))
        return Response(CartSerializer(cart).data)


class CartItemViewSet(ViewSet):
    """POST /api/v1/cart/items/, PATCH/DELETE /api/v1/cart/items/{id}/"""

    permission_classes = [AllowAny]
    throttle_scope = "cart"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _cart_service()

    def create(self, request: Request) -> Response:
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = AddCartItemDTO(**serializer.validated_data)
            cart = self._service.add_item(resolve_owner_key(request), dto)
        except PydanticValidationError as exc:
            return pydantic_error_response(exc)
        except (ProductUnavailable, InsufficientStock) as exc:
            return _catalog_error(exc)
        return Response(CartSerializer(cart).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = UpdateCartItemDTO(**serializer.validated_data)
            cart = self._service.update_item(resolve_owner_key(request), pk, dto)
        except PydanticValidationError as exc:
            return pydantic_error_response(exc)
        except CartItemNotFound as exc:
            return _item_not_found(exc)
        except (ProductUnavailable, InsufficientStock) as exc:
            return _catalog_error(exc)
        return Response(CartSerializer(cart).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            cart = self._service.remove_item(resolve_owner_key(request), pk)
        except CartItemNotFound as exc:
            return _item_not_found(exc)
        return Response(CartSerializer(cart).data)

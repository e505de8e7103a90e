"""Cart URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.carts.views import CartItemViewSet, CartViewSet

router = DefaultRouter(trailing_slash=True)
router.register("cart/items", CartItemViewSet, basename="cart-item")

urlpatterns = [
    path(
        "cart/",
        CartViewSet.as_view({"get": "retrieve", "delete": "clear"}),
        name="cart-detail",
    ),
    *router.urls,
]

"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError

from modules.carts.models import Cart, CartItem
from modules.carts.repositories.interfaces import ICartRepository
from modules.products.models import Product, ProductVariant


class CartDjangoRepository(ICartRepository):
    """Concrete Cart repository backed by Django ORM."""

    def get_or_create(self, owner_key: str) -> Cart:
        cart, _ = Cart.objects.get_or_create(owner_key=owner_key)
        return cart

    def get_for_update(self, owner_key: str) -> Cart:
        """Lock the cart row, creating the cart first if needed.

        Must run inside a transaction.
        """
        self.get_or_create(owner_key)
        return Cart.objects.select_for_update().get(owner_key=owner_key)

    def get_with_items(self, owner_key: str) -> Optional[Cart]:
        return (
            Cart.objects.prefetch_related("items__product", "items__variant")
            .filter(owner_key=owner_key)
            .first()
        )

    def get_item(self, cart: Cart, item_id: str) -> Optional[CartItem]:
        """Returns ``None`` for unknown, foreign or malformed IDs."""
        try:
            return CartItem.objects.filter(id=item_id, cart=cart).first()
        except (ValueError, ValidationError):
            return None

    def find_line(
        self, cart: Cart, product_id: str, variant_id: Optional[str]
    ) -> Optional[CartItem]:
        queryset = CartItem.objects.filter(cart=cart, product_id=product_id)
        if variant_id is None:
            queryset = queryset.filter(variant__isnull=True)
        else:
            queryset = queryset.filter(variant_id=variant_id)
        return queryset.first()

    def add_line(
        self,
        cart: Cart,
        product: Product,
        variant: Optional[ProductVariant],
        quantity: int,
        unit_price: Decimal,
    ) -> CartItem:
        item = CartItem(
            cart=cart,
            product=product,
            variant=variant,
            quantity=quantity,
            unit_price=unit_price,
        )
        item.save()
        return item

    def clear(self, cart: Cart) -> int:
        deleted, _ = CartItem.objects.filter(cart=cart).delete()
        return deleted

"""Cart repository interface.

The Service Layer depends on this contract only; the Django ORM
implementation lives in ``django_repository``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modules.carts.models import Cart, CartItem
    from modules.products.models import Product, ProductVariant


class ICartRepository(ABC):
    """Persistence contract for the Cart aggregate."""

    @abstractmethod
    def get_or_create(self, owner_key: str) -> Cart:
        """Return the owner's cart, creating an empty one on first access."""

    @abstractmethod
    def get_for_update(self, owner_key: str) -> Cart:
        """Return the owner's cart with its row locked (``SELECT FOR UPDATE``)."""

    @abstractmethod
    def get_with_items(self, owner_key: str) -> Optional[Cart]:
        """Return the cart with items, products and variants eager-loaded."""

    @abstractmethod
    def get_item(self, cart: Cart, item_id: str) -> Optional[CartItem]:
        """Return a line of *cart*, or ``None`` if it belongs elsewhere."""

    @abstractmethod
    def find_line(
        self, cart: Cart, product_id: str, variant_id: Optional[str]
    ) -> Optional[CartItem]:
        """Return the existing line for a ``(product, variant)`` pair."""

    @abstractmethod
    def add_line(
        self,
        cart: Cart,
        product: Product,
        variant: Optional[ProductVariant],
        quantity: int,
        unit_price: Decimal,
    ) -> CartItem:
        """Create a new cart line."""

    @abstractmethod
    def clear(self, cart: Cart) -> int:
        """Delete every line of *cart*.  Returns the number removed."""

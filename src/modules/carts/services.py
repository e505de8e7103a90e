"""Cart service layer (Use Cases).

Every mutation runs in one transaction with the cart row locked, then
recomputes the cart totals from the database.  Additions and quantity
changes re-validate the line against the live catalog; removals never do,
so a customer can always drop an item that went out of stock.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple

import structlog
from django.db import transaction

from modules.carts.exceptions import CartItemNotFound
from modules.products.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
)

if TYPE_CHECKING:
    from uuid import UUID

    from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
    from modules.carts.models import Cart
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.products.models import Product, ProductVariant
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class CartService:
    """Application service for the Cart aggregate."""

    def __init__(
        self,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._cart_repo = cart_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cart(self, owner_key: str) -> Cart:
        """Return the owner's cart with items, creating it lazily."""
        self._cart_repo.get_or_create(owner_key)
        return self._cart_repo.get_with_items(owner_key)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, owner_key: str, dto: AddCartItemDTO) -> Cart:
        """Add units of a product, merging into an existing line.

        Raises:
            ProductUnavailable: product/variant missing, inactive or mismatched.
            InsufficientStock: the merged quantity exceeds live stock.
        """
        cart = self._cart_repo.get_for_update(owner_key)
        product, variant = self._resolve_sellable(dto.product_id, dto.variant_id)

        line = self._cart_repo.find_line(
            cart, str(product.id), str(variant.id) if variant else None
        )
        existing_quantity = line.quantity if line else 0
        self._ensure_stock(product, variant, existing_quantity + dto.quantity)

        unit_price = variant.price if variant else product.price
        if line:
            line.quantity = existing_quantity + dto.quantity
            line.unit_price = unit_price
            line.save(update_fields=["quantity", "unit_price"])
        else:
            line = self._cart_repo.add_line(
                cart, product, variant, dto.quantity, unit_price
            )

        logger.info(
            "cart.item_added",
            owner_key=owner_key,
            item_id=str(line.id),
            product_id=str(product.id),
            variant_id=str(variant.id) if variant else None,
            quantity=line.quantity,
        )
        return self._refresh(cart)

    @transaction.atomic
    def update_item(
        self, owner_key: str, item_id: UUID | str, dto: UpdateCartItemDTO
    ) -> Cart:
        """Set a line's quantity; zero removes the line.

        Raises:
            CartItemNotFound: the line is unknown or belongs to another owner.
            ProductUnavailable: the product/variant is no longer sellable.
            InsufficientStock: the new quantity exceeds live stock.
        """
        cart = self._cart_repo.get_for_update(owner_key)
        line = self._get_line(cart, item_id)

        if dto.quantity == 0:
            line.delete()
            logger.info("cart.item_removed", owner_key=owner_key, item_id=str(item_id))
            return self._refresh(cart)

        product, variant = self._resolve_sellable(line.product_id, line.variant_id)
        self._ensure_stock(product, variant, dto.quantity)

        line.quantity = dto.quantity
        line.save(update_fields=["quantity"])
        logger.info(
            "cart.item_updated",
            owner_key=owner_key,
            item_id=str(item_id),
            quantity=dto.quantity,
        )
        return self._refresh(cart)

    @transaction.atomic
    def remove_item(self, owner_key: str, item_id: UUID | str) -> Cart:
        """Raises ``CartItemNotFound`` for unknown or foreign lines."""
        cart = self._cart_repo.get_for_update(owner_key)
        self._get_line(cart, item_id).delete()
        logger.info("cart.item_removed", owner_key=owner_key, item_id=str(item_id))
        return self._refresh(cart)

    @transaction.atomic
    def clear(self, owner_key: str) -> Cart:
        cart = self._cart_repo.get_for_update(owner_key)
        removed = self._cart_repo.clear(cart)
        logger.info("cart.cleared", owner_key=owner_key, removed=removed)
        return self._refresh(cart)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_line(self, cart: Cart, item_id: UUID | str):
        line = self._cart_repo.get_item(cart, str(item_id))
        if not line:
            raise CartItemNotFound(f"Cart item {item_id} not found.")
        return line

    def _resolve_sellable(
        self, product_id: UUID | str, variant_id: Optional[UUID | str]
    ) -> Tuple[Product, Optional[ProductVariant]]:
        product = self._product_repo.get_by_id(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        if not product.is_available:
            raise ProductUnavailable(f"Product '{product.name}' is not available.")
        if variant_id is None:
            return product, None

        variant = self._product_repo.get_variant(str(product.id), str(variant_id))
        if not variant:
            raise ProductUnavailable(
                f"Variant {variant_id} does not belong to product '{product.name}'."
            )
        if not variant.is_available:
            raise ProductUnavailable(
                f"Product '{product.name}' ({variant.name}) is not available."
            )
        return product, variant

    @staticmethod
    def _ensure_stock(
        product: Product, variant: Optional[ProductVariant], quantity: int
    ) -> None:
        stock = variant.stock_quantity if variant else product.stock_quantity
        if quantity > stock:
            label = f"{product.name} ({variant.name})" if variant else product.name
            raise InsufficientStock(
                f"Insufficient stock for '{label}': requested {quantity}, "
                f"available {stock}."
            )

    def _refresh(self, cart: Cart) -> Cart:
        cart.recalculate_totals()
        return self._cart_repo.get_with_items(cart.owner_key)

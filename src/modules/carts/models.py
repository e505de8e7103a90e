"""Cart and CartItem models.

Rules implemented:
- One cart per owner (``owner_key`` is ``user:<id>`` or ``session:<key>``).
- One line per ``(product, variant)`` pair; adding again merges quantities.
- ``CartItem.total_price`` is always ``unit_price * quantity`` (set on save).
- ``Cart.total_amount`` / ``total_items`` are derived: recomputed from the
  items with a database aggregate after every mutation, never patched.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Sum

from modules.core.models import BaseModel


class Cart(BaseModel):
    """Mutable pre-order aggregate.  Emptied, never destroyed, at checkout."""

    owner_key = models.CharField(max_length=255, unique=True)
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    total_items = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "carts"

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0

    def recalculate_totals(self) -> None:
        """Recompute both totals from the current items and persist them."""
        totals = self.items.aggregate(
            amount=Sum("total_price"),
            count=Sum("quantity"),
        )
        self.total_amount = totals["amount"] or Decimal("0.00")
        self.total_items = totals["count"] or 0
        self.save(update_fields=["total_amount", "total_items"])

    def __str__(self) -> str:
        return f"Cart {self.owner_key} ({self.total_items} items)"


class CartItem(BaseModel):
    """One cart line.  ``unit_price`` is the catalog price at add-time."""

    cart = models.ForeignKey(
        "carts.Cart",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    variant = models.ForeignKey(
        "products.ProductVariant",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2, editable=False)

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="cart_items_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["cart", "product"],
                condition=models.Q(variant__isnull=True),
                name="cart_items_unique_product",
            ),
            models.UniqueConstraint(
                fields=["cart", "product", "variant"],
                condition=models.Q(variant__isnull=False),
                name="cart_items_unique_variant",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.total_price = self.unit_price * self.quantity
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "total_price" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["total_price"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} (${self.total_price})"

"""Catalog models read by the storefront core.

The catalog (admin CRUD, images, categories) is owned elsewhere; checkout
only reads ``price`` / ``is_active`` / ``stock_quantity`` and moves stock
through :class:`modules.products.stock.StockLedger`.

Rules mirrored at the storage layer:
- SKU is unique and normalised to uppercase.
- Price must be greater than zero.
- Stock quantity cannot be negative (``PositiveIntegerField`` + check).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class Product(SoftDeleteModel):
    """Sellable product.  Stock lives here unless a variant is chosen."""

    sku = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="products_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info("product_created", product_id=str(self.id), sku=self.sku)

    @property
    def is_available(self) -> bool:
        return self.is_active and not self.is_deleted

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class ProductVariant(SoftDeleteModel):
    """A purchasable variation (size, volume...) with its own price and stock."""

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="variants",
    )
    sku = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=100)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "product_variants"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="variants_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="variants_stock_non_negative",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    @property
    def is_available(self) -> bool:
        return self.is_active and not self.is_deleted

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"

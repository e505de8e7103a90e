"""Product repository interface.

The storefront reads the catalog but never writes it, so the contract
extends ``IReadRepository`` only.  Stock writes go through ``StockLedger``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IReadRepository

if TYPE_CHECKING:
    from modules.products.models import Product, ProductVariant


class IProductRepository(IReadRepository["Product"]):
    """Read contract for the catalog collaborator."""

    @abstractmethod
    def get_variant(self, product_id: str, variant_id: str) -> Optional[ProductVariant]:
        """Retrieve a live variant that belongs to *product_id*."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a live product by SKU."""

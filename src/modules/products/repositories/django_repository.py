"""Django ORM implementation of the Product repository.

Error handling follows the Null Object pattern: methods return ``None``
instead of raising; the Service Layer decides how to translate a missing
entity into a domain error.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError

from modules.products.models import Product, ProductVariant
from modules.products.repositories.interfaces import IProductRepository


class ProductDjangoRepository(IProductRepository):
    """Concrete read-only Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Returns ``None`` for non-existent, deleted or malformed IDs."""
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_variant(self, product_id: str, variant_id: str) -> Optional[ProductVariant]:
        try:
            return (
                ProductVariant.objects.alive()
                .select_related("product")
                .filter(id=variant_id, product_id=product_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return Product.objects.alive().filter(sku=sku.strip().upper()).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List live products with optional Django ORM look-ups.

        Examples of valid filters::

            {"is_active": True}
            {"name__icontains": "serum"}
        """
        queryset = Product.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

"""Stock ledger: the concurrency-safe source of truth for availability.

Stock is held on the variant row when the line item names a variant,
otherwise on the product row.  There is no reservation step: stock only
moves when an order commits (decrement) or is cancelled (release).

``decrement_if_available`` is a single conditional ``UPDATE``::

    UPDATE ... SET stock_quantity = stock_quantity - :q
    WHERE id = :id AND stock_quantity >= :q

The database evaluates the guard and the write atomically per row, so two
concurrent checkouts can never both take the last unit.  Zero affected rows
means the stock moved underneath the caller and the decrement is refused.
"""

from __future__ import annotations

from typing import Optional, Tuple, Type, Union
from uuid import UUID

import structlog
from django.db.models import F
from django.utils import timezone

from modules.products.exceptions import InsufficientStock
from modules.products.models import Product, ProductVariant

logger = structlog.get_logger(__name__)

StockRow = Union[Product, ProductVariant]
Id = Union[str, UUID]


class StockLedger:
    """Atomic stock operations over product / variant rows."""

    @staticmethod
    def _target(
        product_id: Id, variant_id: Optional[Id]
    ) -> Tuple[Type[StockRow], Id]:
        if variant_id is not None:
            return ProductVariant, variant_id
        return Product, product_id

    def available(self, product_id: Id, variant_id: Optional[Id] = None) -> int:
        """Current stock figure (no lock).  Missing rows report zero."""
        model, pk = self._target(product_id, variant_id)
        quantity = (
            model.objects.alive()
            .filter(pk=pk)
            .values_list("stock_quantity", flat=True)
            .first()
        )
        return quantity or 0

    def lock(self, product_id: Id, variant_id: Optional[Id] = None) -> Optional[StockRow]:
        """Read the stock row with ``SELECT ... FOR UPDATE``.

        Must run inside a transaction.  Backends without row locks (SQLite)
        ignore the clause; the conditional decrement still protects them.
        """
        model, pk = self._target(product_id, variant_id)
        return model.objects.select_for_update().alive().filter(pk=pk).first()

    def decrement_if_available(
        self,
        product_id: Id,
        quantity: int,
        variant_id: Optional[Id] = None,
        *,
        label: Optional[str] = None,
    ) -> int:
        """Take *quantity* units or raise ``InsufficientStock``.

        Returns the remaining stock.  *label* names the product in the error
        message (defaults to the row id).
        """
        if quantity < 1:
            raise ValueError("Quantity to decrement must be at least 1.")

        model, pk = self._target(product_id, variant_id)
        updated = (
            model.objects.alive()
            .filter(pk=pk, stock_quantity__gte=quantity)
            .update(
                stock_quantity=F("stock_quantity") - quantity,
                updated_at=timezone.now(),
            )
        )
        log = logger.bind(
            stock_row=model._meta.label, row_id=str(pk), quantity=quantity
        )
        if updated == 0:
            log.warning("stock.decrement_refused")
            raise InsufficientStock(
                f"Insufficient stock for '{label or pk}': requested {quantity}, "
                f"available {self.available(product_id, variant_id)}."
            )

        remaining = self.available(product_id, variant_id)
        log.info("stock.decremented", remaining=remaining)
        return remaining

    def release(
        self, product_id: Id, quantity: int, variant_id: Optional[Id] = None
    ) -> bool:
        """Return *quantity* units to stock.  ``False`` if the row is gone."""
        model, pk = self._target(product_id, variant_id)
        updated = (
            model.objects.alive()
            .filter(pk=pk)
            .update(
                stock_quantity=F("stock_quantity") + quantity,
                updated_at=timezone.now(),
            )
        )
        logger.info(
            "stock.released",
            stock_row=model._meta.label,
            row_id=str(pk),
            quantity=quantity,
            applied=bool(updated),
        )
        return bool(updated)

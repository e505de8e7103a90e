"""Cart domain exceptions.

Catalog violations (inactive product, insufficient stock) reuse the
exceptions of ``modules.products``; this module only adds cart look-ups.
"""

from __future__ import annotations


class CartItemNotFound(Exception):
    """The cart line does not exist or belongs to another owner."""

"""Catalog and stock exceptions.

Raised by the cart and checkout services when a catalog rule is violated.
Messages always name the offending product (and variant) so the customer
can correct the cart.  The API layer translates them into HTTP responses.
"""

from __future__ import annotations


class ProductUnavailable(Exception):
    """The product or variant is inactive, deleted, or not part of the product."""


class ProductNotFound(ProductUnavailable):
    """The requested product does not exist or has been soft-deleted."""


class InsufficientStock(Exception):
    """Live stock is lower than the requested quantity."""

"""Order domain exceptions.

Raised by the Service Layer and the state machine when business rules are
violated.  The API layer (Views) catches these and translates them into
appropriate HTTP responses.  Catalog violations during checkout reuse
``modules.products.exceptions``.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist, is soft-deleted, or is not yours."""


class EmptyCart(Exception):
    """Checkout was attempted with no items in the cart."""


class InvalidTransition(Exception):
    """The requested status is unknown or not reachable from the current one."""


class NotCancellable(InvalidTransition):
    """The order's current status has no edge to CANCELLED."""


class CheckoutFailed(Exception):
    """Checkout could not be committed; nothing was persisted."""

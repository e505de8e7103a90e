"""Cart DTOs for the Service Layer.

Immutable pydantic models passed from the API layer to ``CartService``.
Quantity bounds are enforced here so the service never sees an
out-of-range request.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from modules.carts.constants import CART_MAX_ITEM_QUANTITY


class AddCartItemDTO(BaseModel):
    """Add *quantity* units of a product (or one of its variants)."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: int = Field(default=1, ge=1, le=CART_MAX_ITEM_QUANTITY)


class UpdateCartItemDTO(BaseModel):
    """Set a line's quantity.  Zero removes the line."""

    model_config = ConfigDict(frozen=True)

    quantity: int = Field(ge=0, le=CART_MAX_ITEM_QUANTITY)

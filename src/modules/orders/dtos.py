"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``AddressDTO``: a shipping or billing address, copied onto the order.
- ``CreateOrderDTO``: checkout input for one owner's cart.
- ``UpdateOrderStatusDTO``: admin status change with optional tracking data.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import OrderStatus, PaymentMethod

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class AddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    company: str = Field(default="", max_length=100)
    address_line_1: str = Field(min_length=1, max_length=255)
    address_line_2: str = Field(default="", max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    phone: str = Field(default="", max_length=20)

    def as_fields(self, prefix: str) -> Dict[str, str]:
        """Flatten into ``<prefix>_<field>`` model columns."""
        return {f"{prefix}_{name}": value for name, value in self.model_dump().items()}


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    ``owner_key`` identifies whose cart is converted; ``actor_id`` is who
    pressed the button (recorded on the first history row).
    """

    model_config = ConfigDict(frozen=True)

    owner_key: str = Field(min_length=1)
    payment_method: PaymentMethod
    shipping_address: AddressDTO
    billing_address: AddressDTO
    customer_notes: str = Field(default="", max_length=1000)
    coupon_code: str = Field(default="", max_length=50)
    actor_id: Optional[str] = None


class UpdateOrderStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    notes: str = Field(default="", max_length=1000)
    admin_notes: Optional[str] = None
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    carrier: Optional[str] = Field(default=None, max_length=50)

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: str) -> str:
        value = v.strip().upper()
        if value not in OrderStatus.values:
            raise ValueError(f"Unknown order status '{v}'.")
        return value

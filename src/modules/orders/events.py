"""Domain events for the Orders bounded context.

Extra fields carry plain strings so the outbox payload round-trips through
JSON unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when checkout commits a new order."""

    order_number: str = ""
    owner_key: str = ""
    total_amount: str = "0.00"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every lifecycle transition except cancellation."""

    old_status: str = ""
    new_status: str = ""
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order moves to CANCELLED."""

    old_status: str = ""
    reason: str = ""
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    """Raised when an order's payment is recorded as received."""

    payment_method: str = ""

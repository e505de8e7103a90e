"""Customer-facing tracking projection.

Flattens an order's status/payment timeline into display rows, most
recent first.  Labels and descriptions are presentation text only; the
timeline itself is never modified.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict

from modules.orders.constants import (
    PAYMENT_DESCRIPTIONS,
    STATUS_DESCRIPTIONS,
    HistoryEventType,
    OrderStatus,
    PaymentStatus,
)

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class TrackingEventDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime
    event_type: str
    status: str
    label: str
    description: str
    notes: str

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> TrackingEventDTO:
        if history.event_type == HistoryEventType.PAYMENT:
            payment_label = PaymentStatus(history.payment_status).label
            label = f"Payment {payment_label}"
            description = PAYMENT_DESCRIPTIONS.get(history.payment_status, "")
        else:
            label = OrderStatus(history.status).label
            description = STATUS_DESCRIPTIONS.get(history.status, "")
        return cls(
            date=history.created_at,
            event_type=history.event_type,
            status=history.status,
            label=label,
            description=description,
            notes=history.notes,
        )


class TrackingDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_number: str
    status: str
    status_label: str
    payment_status: str
    carrier: Optional[str]
    tracking_number: Optional[str]
    events: List[TrackingEventDTO]


def build_tracking(order: Order) -> TrackingDTO:
    """Project *order*'s history, newest first.

    Rows sharing a timestamp keep insertion order (UUIDv7 ids are
    time-ordered), newest first.
    """
    history = sorted(
        order.status_history.all(),
        key=lambda row: (row.created_at, row.id),
        reverse=True,
    )
    return TrackingDTO(
        order_number=order.order_number,
        status=order.status,
        status_label=OrderStatus(order.status).label,
        payment_status=order.payment_status,
        carrier=order.carrier or None,
        tracking_number=order.tracking_number or None,
        events=[TrackingEventDTO.from_entity(row) for row in history],
    )

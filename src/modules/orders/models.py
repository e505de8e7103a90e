"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- An order is a priced, immutable snapshot of a cart at checkout time.
- ``status`` only moves along ``ORDER_TRANSITIONS``; the state machine is
  the only writer, ``signals.guard_status_change`` rejects any other path
  and a database check restricts the column to known statuses.
- Shipping and billing addresses are copied onto the order, never linked.
- ``OrderItem`` copies product name/SKU/variant so catalog edits never
  rewrite history; items are immutable once saved.
- ``OrderStatusHistory`` is an append-only timeline of status and payment
  events.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

import secrets
import string
from decimal import Decimal
from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import (
    ORDER_NUMBER_SUFFIX_LENGTH,
    ORDER_TRANSITIONS,
    TERMINAL_STATES,
    HistoryEventType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "postal_code",
    "country",
    "phone",
)

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def _money_field(**kwargs: Any) -> models.DecimalField:
    return models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00"), **kwargs
    )


class Order(DomainEventMixin, SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` is the human-readable identifier
    (``<PREFIX>-YYYYMMDD-XXXX``); the UUIDv7 ``id`` is used for all internal
    references and API look-ups.  ``owner_key`` is the opaque identity the
    cart belonged to.
    """

    order_number = models.CharField(max_length=32, unique=True, editable=False)
    owner_key = models.CharField(max_length=255, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    currency = models.CharField(max_length=3, default="USD")

    # Pricing breakdown
    subtotal = _money_field()
    discount_amount = _money_field()
    shipping_amount = _money_field()
    tax_amount = _money_field()
    total_amount = _money_field()

    # Shipping address snapshot
    shipping_first_name = models.CharField(max_length=100)
    shipping_last_name = models.CharField(max_length=100)
    shipping_company = models.CharField(max_length=100, blank=True, default="")
    shipping_address_line_1 = models.CharField(max_length=255)
    shipping_address_line_2 = models.CharField(max_length=255, blank=True, default="")
    shipping_city = models.CharField(max_length=100)
    shipping_state = models.CharField(max_length=100)
    shipping_postal_code = models.CharField(max_length=20)
    shipping_country = models.CharField(max_length=100)
    shipping_phone = models.CharField(max_length=20, blank=True, default="")

    # Billing address snapshot
    billing_first_name = models.CharField(max_length=100)
    billing_last_name = models.CharField(max_length=100)
    billing_company = models.CharField(max_length=100, blank=True, default="")
    billing_address_line_1 = models.CharField(max_length=255)
    billing_address_line_2 = models.CharField(max_length=255, blank=True, default="")
    billing_city = models.CharField(max_length=100)
    billing_state = models.CharField(max_length=100)
    billing_postal_code = models.CharField(max_length=20)
    billing_country = models.CharField(max_length=100)
    billing_phone = models.CharField(max_length=20, blank=True, default="")

    customer_notes = models.TextField(blank=True, default="")
    admin_notes = models.TextField(blank=True, default="")
    coupon_code = models.CharField(max_length=50, blank=True, default="")

    # Fulfilment tracking
    tracking_number = models.CharField(max_length=100, blank=True, default="")
    carrier = models.CharField(max_length=100, blank=True, default="")
    shipped_at = models.DateTimeField(null=True, blank=True, default=None)
    delivered_at = models.DateTimeField(null=True, blank=True, default=None)
    paid_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(
                fields=["owner_key", "-created_at"], name="orders_owner_created_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(status__in=OrderStatus.values),
                name="orders_status_valid",
            ),
            models.CheckConstraint(
                condition=models.Q(payment_status__in=PaymentStatus.values),
                name="orders_payment_status_valid",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_cancellable(self) -> bool:
        return self.can_transition_to(OrderStatus.CANCELLED)

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether ``(status, new_status)`` is an edge of the machine."""
        return (self.status, new_status) in ORDER_TRANSITIONS

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    def address(self, kind: str) -> Dict[str, str]:
        """Return the ``"shipping"`` or ``"billing"`` snapshot as a dict."""
        return {name: getattr(self, f"{kind}_{name}") for name in ADDRESS_FIELDS}

    @property
    def shipping_address(self) -> Dict[str, str]:
        return self.address("shipping")

    @property
    def billing_address(self) -> Dict[str, str]:
        return self.address("billing")

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number(prefix: str = "VP") -> str:
        """Generate a human-readable order number: ``VP-YYYYMMDD-XXXX``."""
        suffix = "".join(
            secrets.choice(_ORDER_NUMBER_ALPHABET)
            for _ in range(ORDER_NUMBER_SUFFIX_LENGTH)
        )
        return f"{prefix}-{timezone.now():%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Immutable line snapshot.

    Product and variant references are kept for reporting and restocking
    but are nullable: the order keeps its own copy of every displayed value.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    variant = models.ForeignKey(
        "products.ProductVariant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=255)
    product_sku = models.CharField(max_length=100)
    variant_name = models.CharField(max_length=100, null=True, blank=True)  # noqa: DJ01
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    tax_amount = _money_field()
    total_price = models.DecimalField(max_digits=10, decimal_places=2, editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    @property
    def stock_target_lost(self) -> bool:
        """``True`` when the variant this line was sold from no longer exists."""
        return self.variant_name is not None and self.variant_id is None

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ValidationError("Order items are immutable once created.")
        self.total_price = self.unit_price * self.quantity
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} (${self.total_price})"


class OrderStatusHistory(BaseModel):
    """Append-only order timeline.

    ``STATUS`` rows record a lifecycle transition (``previous_status`` ->
    ``status``).  ``PAYMENT`` rows record a payment-status change in
    ``payment_status``; their ``status`` is the order status at that moment.
    ``actor_id`` is ``None`` when the system acted.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    event_type = models.CharField(
        max_length=10,
        choices=HistoryEventType.choices,
        default=HistoryEventType.STATUS,
    )
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    previous_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    payment_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=PaymentStatus.choices,
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True, default="")
    actor_id = models.CharField(max_length=255, null=True, blank=True)  # noqa: DJ01

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ValidationError("Order history is append-only.")
        super().save(*args, **kwargs)

    @property
    def is_payment_event(self) -> bool:
        return self.event_type == HistoryEventType.PAYMENT

    def __str__(self) -> str:
        if self.is_payment_event:
            return f"{self.order_id} : payment -> {self.payment_status}"
        previous: Optional[str] = self.previous_status
        return f"{self.order_id} : {previous} -> {self.status}"

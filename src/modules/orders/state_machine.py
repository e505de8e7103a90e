"""Order lifecycle state machine.

Transitions are checked against the frozen edge set in
``constants.ORDER_TRANSITIONS`` before anything is mutated.  Side effects
of reaching a status are post-transition hooks registered under
``(target_status, payment_method)``; a ``None`` payment method matches
every order.  Built-in hooks:

- ``(OUT_FOR_DELIVERY, *)``: stamp ``shipped_at``, store tracking details.
- ``(DELIVERED, *)``: stamp ``delivered_at``.
- ``(DELIVERED, cash_on_delivery)``: payment collected on the doorstep.
- ``(CANCELLED, *)``: return every line's units to stock.

The caller owns the transaction and must hold the order row lock.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, DefaultDict, List, Optional, Tuple

import structlog
from django.utils import timezone

from modules.orders.constants import (
    ORDER_TRANSITIONS,
    HistoryEventType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from modules.orders.events import OrderCancelled, OrderPaid, OrderStatusChanged
from modules.orders.exceptions import InvalidTransition, NotCancellable
from modules.products.stock import StockLedger

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

COD_PAYMENT_NOTE = "Payment received - Cash on delivery"


@dataclass(frozen=True)
class TransitionContext:
    previous_status: str
    target: str
    notes: str = ""
    actor_id: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None


Hook = Callable[["Order", TransitionContext], None]
HookKey = Tuple[str, Optional[str]]


class OrderStateMachine:
    """Validates and applies order status transitions."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        stock_ledger: Optional[StockLedger] = None,
    ) -> None:
        self._order_repo = order_repository
        self._stock = stock_ledger or StockLedger()
        self._hooks: DefaultDict[HookKey, List[Hook]] = defaultdict(list)

        self.register(OrderStatus.OUT_FOR_DELIVERY, self._mark_shipped)
        self.register(OrderStatus.DELIVERED, self._mark_delivered)
        self.register(
            OrderStatus.DELIVERED,
            self._collect_cash_payment,
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
        )
        self.register(OrderStatus.CANCELLED, self._restock)

    # ------------------------------------------------------------------
    # Edge set
    # ------------------------------------------------------------------

    @staticmethod
    def can_transition(current: str, target: str) -> bool:
        return (current, target) in ORDER_TRANSITIONS

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def register(
        self, target: str, hook: Hook, payment_method: Optional[str] = None
    ) -> None:
        self._hooks[(target, payment_method)].append(hook)

    def hooks_for(self, target: str, payment_method: str) -> List[Hook]:
        """Method-agnostic hooks first, then the method-specific ones."""
        return [*self._hooks[(target, None)], *self._hooks[(target, payment_method)]]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition_to(
        self,
        order: Order,
        target: str,
        *,
        notes: str = "",
        actor_id: Optional[str] = None,
        tracking_number: Optional[str] = None,
        carrier: Optional[str] = None,
    ) -> Order:
        """Move *order* to *target*, run hooks, persist, and record events.

        Raises:
            InvalidTransition: *target* is unknown or not reachable.
        """
        log = logger.bind(
            order_id=str(order.id), current_status=order.status, new_status=target
        )
        if target not in OrderStatus.values:
            log.warning("order.unknown_status")
            raise InvalidTransition(f"Unknown order status '{target}'.")
        if not self.can_transition(order.status, target):
            log.warning("order.invalid_transition")
            raise InvalidTransition(
                f"Cannot transition from {order.status} to {target}."
            )

        notes = notes.strip() or f"Status changed from {order.status} to {target}"
        context = TransitionContext(
            previous_status=order.status,
            target=target,
            notes=notes,
            actor_id=actor_id,
            tracking_number=tracking_number,
            carrier=carrier,
        )
        order.status = target
        self._order_repo.add_history(
            order,
            target,
            previous_status=context.previous_status,
            notes=notes,
            actor_id=actor_id,
        )

        if target == OrderStatus.CANCELLED:
            event = OrderCancelled(
                aggregate_id=order.id,
                old_status=context.previous_status,
                reason=notes,
                actor_id=actor_id,
            )
        else:
            event = OrderStatusChanged(
                aggregate_id=order.id,
                old_status=context.previous_status,
                new_status=target,
                actor_id=actor_id,
            )
        order.add_domain_event(event)

        for hook in self.hooks_for(target, order.payment_method):
            hook(order, context)

        self._order_repo.save(order)
        log.info("order.status_updated")
        return order

    def cancel(
        self, order: Order, reason: str = "", actor_id: Optional[str] = None
    ) -> Order:
        """Raises ``NotCancellable`` when CANCELLED is not reachable."""
        if not self.can_transition(order.status, OrderStatus.CANCELLED):
            logger.warning(
                "order.cancel_not_allowed",
                order_id=str(order.id),
                current_status=order.status,
            )
            raise NotCancellable(f"Cannot cancel order in status {order.status}.")
        notes = f"Cancelled: {reason}" if reason else "Cancelled"
        return self.transition_to(
            order, OrderStatus.CANCELLED, notes=notes, actor_id=actor_id
        )

    # ------------------------------------------------------------------
    # Built-in hooks
    # ------------------------------------------------------------------

    @staticmethod
    def _mark_shipped(order: Order, context: TransitionContext) -> None:
        order.shipped_at = timezone.now()
        if context.tracking_number:
            order.tracking_number = context.tracking_number
        if context.carrier:
            order.carrier = context.carrier

    @staticmethod
    def _mark_delivered(order: Order, context: TransitionContext) -> None:
        order.delivered_at = timezone.now()

    def _collect_cash_payment(self, order: Order, context: TransitionContext) -> None:
        order.payment_status = PaymentStatus.PAID
        order.paid_at = timezone.now()
        self._order_repo.add_history(
            order,
            order.status,
            event_type=HistoryEventType.PAYMENT,
            payment_status=PaymentStatus.PAID,
            notes=COD_PAYMENT_NOTE,
            actor_id=context.actor_id,
        )
        order.add_domain_event(
            OrderPaid(aggregate_id=order.id, payment_method=order.payment_method)
        )
        logger.info("order.payment_collected", order_id=str(order.id))

    def _restock(self, order: Order, context: TransitionContext) -> None:
        """Release stock in a stable row order to avoid deadlocks."""
        items = sorted(
            order.items.all(),
            key=lambda item: (str(item.product_id), str(item.variant_id)),
        )
        for item in items:
            if item.product_id is None or item.stock_target_lost:
                logger.info(
                    "order.restock_skipped",
                    order_id=str(order.id),
                    item_id=str(item.id),
                )
                continue
            self._stock.release(item.product_id, item.quantity, item.variant_id)

"""Order service layer (Use Cases).

Orchestrates checkout, status management and cancellation.  All write
operations are atomic; the service defines the unit-of-work boundary.

Checkout guarantees:
- Every cart line is re-validated against locked stock rows before any
  write; a violation aborts with nothing persisted.
- Stock is decremented exactly once per line, in the same transaction
  that creates the order.  A late race on the conditional decrement
  rolls the whole checkout back.
- The cart is emptied only when the order commits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import DatabaseError, transaction

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.events import OrderCreated
from modules.orders.exceptions import CheckoutFailed, EmptyCart, OrderNotFound
from modules.orders.pricing import PricingPolicy
from modules.orders.state_machine import OrderStateMachine
from modules.orders.tracking import TrackingDTO, build_tracking
from modules.products.exceptions import InsufficientStock, ProductUnavailable
from modules.products.stock import StockLedger

if TYPE_CHECKING:
    from modules.carts.models import CartItem
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.orders.dtos import CreateOrderDTO, UpdateOrderStatusDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def _line_label(item: CartItem) -> str:
    if item.variant_id:
        return f"{item.product.name} ({item.variant.name})"
    return item.product.name


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and policies via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        stock_ledger: Optional[StockLedger] = None,
        pricing_policy: Optional[PricingPolicy] = None,
        state_machine: Optional[OrderStateMachine] = None,
    ) -> None:
        self._order_repo = order_repository
        self._cart_repo = cart_repository
        self._stock = stock_ledger or StockLedger()
        self._pricing = pricing_policy or PricingPolicy.from_settings()
        self._state_machine = state_machine or OrderStateMachine(
            order_repository, self._stock
        )

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Convert the owner's cart into a PENDING order.

        Steps:
        1. Lock the cart and load its lines; empty carts are refused.
        2. Lock each stock row (sorted, to avoid deadlocks) and re-validate
           availability and quantity.
        3. Price the cart with the injected ``PricingPolicy``.
        4. Create order, item snapshots, stock decrements, initial history
           and the ``OrderCreated`` outbox row, then empty the cart.

        Raises:
            EmptyCart: the cart has no lines.
            ProductUnavailable: a line's product/variant is no longer sellable.
            InsufficientStock: live stock is below a line's quantity.
            CheckoutFailed: the database refused the commit; nothing persisted.
        """
        log = logger.bind(
            owner_key=dto.owner_key, payment_method=str(dto.payment_method)
        )
        log.info("checkout.started")
        try:
            order = self._checkout(dto, log)
        except DatabaseError as exc:
            log.exception("checkout.failed")
            raise CheckoutFailed(
                "Checkout could not be completed. Please try again."
            ) from exc

        log.info(
            "checkout.completed",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def _checkout(self, dto: CreateOrderDTO, log: Any) -> Order:
        # 1. Cart
        cart = self._cart_repo.get_for_update(dto.owner_key)
        items = list(cart.items.select_related("product", "variant"))
        if not items:
            log.warning("checkout.empty_cart")
            raise EmptyCart("Your cart is empty.")

        # 2. Re-validate against locked stock rows
        items.sort(key=lambda i: (str(i.product_id), str(i.variant_id)))
        for item in items:
            self._revalidate(item, log)

        # 3. Pricing
        breakdown = self._pricing.price(item.total_price for item in items)

        # 4. Commit
        order = self._order_repo.create(
            {
                "owner_key": dto.owner_key,
                "status": OrderStatus.PENDING,
                "payment_method": dto.payment_method,
                "currency": breakdown.currency,
                "subtotal": breakdown.subtotal,
                "discount_amount": breakdown.discount_amount,
                "shipping_amount": breakdown.shipping_amount,
                "tax_amount": breakdown.tax_amount,
                "total_amount": breakdown.total_amount,
                "customer_notes": dto.customer_notes,
                "coupon_code": dto.coupon_code,
                **dto.shipping_address.as_fields("shipping"),
                **dto.billing_address.as_fields("billing"),
            }
        )

        for item in items:
            self._order_repo.add_item(
                order,
                {
                    "product": item.product,
                    "variant": item.variant,
                    "product_name": item.product.name,
                    "product_sku": item.product.sku,
                    "variant_name": item.variant.name if item.variant_id else None,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "tax_amount": self._pricing.tax_for(item.total_price),
                },
            )
            remaining = self._stock.decrement_if_available(
                item.product_id,
                item.quantity,
                item.variant_id,
                label=_line_label(item),
            )
            log.info(
                "checkout.stock_decremented",
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
                remaining=remaining,
            )

        self._order_repo.add_history(
            order,
            OrderStatus.PENDING,
            notes=f"Order created - {PaymentMethod(dto.payment_method).label}",
            actor_id=dto.actor_id,
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                owner_key=order.owner_key,
                total_amount=str(order.total_amount),
            )
        )
        self._order_repo.save(order)

        self._cart_repo.clear(cart)
        cart.recalculate_totals()
        return order

    def _revalidate(self, item: CartItem, log: Any) -> None:
        label = _line_label(item)
        row = self._stock.lock(item.product_id, item.variant_id)
        if row is None or not row.is_available or not item.product.is_available:
            log.warning("checkout.product_unavailable", product=label)
            raise ProductUnavailable(f"Product '{label}' is no longer available.")
        if row.stock_quantity < item.quantity:
            log.warning(
                "checkout.insufficient_stock",
                product=label,
                requested=item.quantity,
                available=row.stock_quantity,
            )
            raise InsufficientStock(
                f"Insufficient stock for '{label}': requested {item.quantity}, "
                f"available {row.stock_quantity}."
            )

    # ------------------------------------------------------------------
    # Status management
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(
        self,
        order_id: UUID | str,
        new_status: str,
        notes: str = "",
        actor_id: Optional[str] = None,
        tracking_number: Optional[str] = None,
        carrier: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> Order:
        """Transition an order along the state machine.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating the transition.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: *new_status* is unknown or unreachable.
        """
        order = self._locked(order_id)
        if admin_notes is not None:
            order.admin_notes = admin_notes
        self._state_machine.transition_to(
            order,
            new_status,
            notes=notes,
            actor_id=actor_id,
            tracking_number=tracking_number,
            carrier=carrier,
        )
        return self._order_repo.get_by_id(str(order.id))

    def apply_status_update(
        self, order_id: UUID | str, dto: UpdateOrderStatusDTO, actor_id: Optional[str]
    ) -> Order:
        return self.update_status(
            order_id,
            dto.status,
            notes=dto.notes,
            actor_id=actor_id,
            tracking_number=dto.tracking_number,
            carrier=dto.carrier,
            admin_notes=dto.admin_notes,
        )

    @transaction.atomic
    def cancel_order(
        self, order_id: UUID | str, reason: str = "", actor_id: Optional[str] = None
    ) -> Order:
        """Cancel an order and return its stock.

        Raises:
            OrderNotFound: order does not exist.
            NotCancellable: the current status cannot be cancelled.
        """
        order = self._locked(order_id)
        self._state_machine.cancel(order, reason, actor_id=actor_id)
        return self._order_repo.get_by_id(str(order.id))

    def _locked(self, order_id: UUID | str) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: UUID | str, owner_key: Optional[str] = None) -> Order:
        """Retrieve a single order, scoped to *owner_key* when given.

        Raises:
            OrderNotFound: absent, soft-deleted, or owned by someone else.
        """
        if owner_key is None:
            order = self._order_repo.get_by_id(str(order_id))
        else:
            order = self._order_repo.get_for_owner(str(order_id), owner_key)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self, owner_key: Optional[str] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[Order]:
        filters = dict(filters or {})
        if owner_key is not None:
            filters["owner_key"] = owner_key
        return self._order_repo.list(filters)

    def get_tracking(
        self, order_id: UUID | str, owner_key: Optional[str] = None
    ) -> TrackingDTO:
        return build_tracking(self.get_order(order_id, owner_key))

"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Write methods
do not open their own transaction: the service defines the unit of work,
so a failed stock decrement rolls back the order, its items, its history
and its outbox rows together.

Every read filters with ``.alive()``; soft-deleted orders are invisible.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, transaction
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.orders.constants import ORDER_NUMBER_MAX_RETRIES, HistoryEventType
from modules.orders.exceptions import CheckoutFailed
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_RELATIONS = ("items", "status_history")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Order:
        """Insert an order, retrying on ``order_number`` collisions.

        Each attempt runs in a savepoint so a unique-constraint violation
        leaves the surrounding checkout transaction usable.

        Raises:
            CheckoutFailed: no free order number after the retry budget.
        """
        prefix = getattr(settings, "ORDER_NUMBER_PREFIX", "VP")
        for attempt in range(1, ORDER_NUMBER_MAX_RETRIES + 1):
            candidate = Order.generate_order_number(prefix)
            if Order.objects.filter(order_number=candidate).exists():
                logger.warning("order.number_collision", attempt=attempt)
                continue
            try:
                with transaction.atomic():
                    order = Order(order_number=candidate, **data)
                    order.save()
            except IntegrityError:
                if not Order.objects.filter(order_number=candidate).exists():
                    raise
                logger.warning("order.number_collision", attempt=attempt)
                continue
            return order

        raise CheckoutFailed(
            f"Failed to generate a unique order number after "
            f"{ORDER_NUMBER_MAX_RETRIES} attempts."
        )

    def add_item(self, order: Order, data: Dict[str, Any]) -> OrderItem:
        item = OrderItem(order=order, **data)
        item.save()
        return item

    def add_history(
        self,
        order: Order,
        status: str,
        *,
        event_type: str = HistoryEventType.STATUS,
        previous_status: Optional[str] = None,
        payment_status: Optional[str] = None,
        notes: str = "",
        actor_id: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Append a status or payment row to the order's timeline."""
        history = OrderStatusHistory(
            order=order,
            event_type=event_type,
            status=status,
            previous_status=previous_status,
            payment_status=payment_status,
            notes=notes,
            actor_id=actor_id,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=str(order.id),
            event_type=event_type,
            previous_status=previous_status,
            status=status,
            payment_status=payment_status,
        )
        return history

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def queryset(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = Order.objects.alive().prefetch_related(*_RELATIONS)
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with items and history prefetched.

        Returns ``None`` for non-existent, soft-deleted or invalid IDs.
        """
        try:
            return self.queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_owner(self, id: str, owner_key: str) -> Optional[Order]:
        try:
            return self.queryset().filter(id=id, owner_key=owner_key).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items so the caller can restock them while the row is
        locked.  Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .alive()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List live orders, newest first.

        Examples of valid filters::

            {"owner_key": "user:42"}
            {"status": "PENDING", "payment_method": "cash_on_delivery"}
        """
        return list(self.queryset(filters))

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        """Persist the order and move its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic="orders",
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    # Decimal amounts become strings, datetimes ISO-8601.
    return json.loads(json.dumps(asdict(event), cls=DjangoJSONEncoder))

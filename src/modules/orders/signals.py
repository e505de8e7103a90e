"""Model-level guard for Order status changes.

Whatever path saves an ``Order`` (service, admin, shell), a status change
that is not an edge of the state machine is refused before it reaches the
database.
"""

from __future__ import annotations

import structlog
from django.db.models.signals import pre_save
from django.dispatch import receiver

from modules.orders.constants import ORDER_TRANSITIONS, OrderStatus
from modules.orders.exceptions import InvalidTransition
from modules.orders.models import Order

logger = structlog.get_logger(__name__)


@receiver(pre_save, sender=Order)
def guard_status_change(sender, instance: Order, **kwargs) -> None:
    update_fields = kwargs.get("update_fields")
    if update_fields is not None and "status" not in update_fields:
        return

    if instance._state.adding:
        if instance.status != OrderStatus.PENDING:
            raise InvalidTransition(
                f"New orders must start as {OrderStatus.PENDING}, got {instance.status}."
            )
        return

    previous = (
        sender.objects.filter(pk=instance.pk).values_list("status", flat=True).first()
    )
    if previous is None or previous == instance.status:
        return

    if (previous, instance.status) not in ORDER_TRANSITIONS:
        logger.warning(
            "order.status_bypass_blocked",
            order_id=str(instance.pk),
            previous_status=previous,
            new_status=instance.status,
        )
        raise InvalidTransition(
            f"Cannot transition from {previous} to {instance.status}."
        )

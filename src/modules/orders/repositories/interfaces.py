"""Order repository interface.

Extends ``IRepository[Order]`` with the operations the checkout
orchestrator and the state machine need: creation with a unique order
number, immutable item snapshots, the history timeline, and row locking.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderStatusHistory
    records.  Mutations must run inside the caller's transaction.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Insert a PENDING order with a freshly generated unique number."""

    @abstractmethod
    def add_item(self, order: Order, data: Dict[str, Any]) -> OrderItem:
        """Insert one immutable line snapshot."""

    @abstractmethod
    def add_history(
        self,
        order: Order,
        status: str,
        *,
        event_type: str = "STATUS",
        previous_status: Optional[str] = None,
        payment_status: Optional[str] = None,
        notes: str = "",
        actor_id: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Append a row to the order's timeline."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve a live order with its row locked."""

    @abstractmethod
    def get_for_owner(self, id: str, owner_key: str) -> Optional[Order]:
        """Retrieve a live order only if *owner_key* placed it."""

    @abstractmethod
    def queryset(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Live orders as a lazy queryset, for filtering and pagination."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List live orders with optional filters."""

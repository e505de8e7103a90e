"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, Iterable, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    Handlers run synchronously in subscription order.  A handler error
    propagates to the publisher, which is the outbox relay in production.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]:
        return list(self._handlers.get(event_class, []))

    def publish(self, event: DomainEvent) -> int:
        handlers = self._handlers.get(type(event), [])
        for handler in handlers:
            handler.handle(event)
        if not handlers:
            logger.debug("event_bus.unrouted", event_name=event.event_name)
        return len(handlers)

    def publish_all(self, events: Iterable[DomainEvent]) -> int:
        return sum(self.publish(event) for event in events)


# Global bus instance (singleton)

event_bus = InMemoryEventBus()

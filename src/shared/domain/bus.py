"""Domain bus interfaces for in-process event handling."""

from __future__ import annotations

from typing import Generic, Iterable, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    """Handler interface for domain events."""

    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    """Event bus interface.

    ``publish`` returns the number of handlers that received the event so
    the outbox relay can tell delivered events from unrouted ones.
    """

    def publish(self, event: DomainEvent) -> int: ...

    def publish_all(self, events: Iterable[DomainEvent]) -> int: ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

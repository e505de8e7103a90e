"""Generic repository interfaces (Dependency Inversion Principle).

Service-layer code depends on these abstractions, never on the Django ORM
directly.  The catalog is read-only from the storefront's point of view, so
the read contract is split from the write contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

from django.db import models

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Queryable(Protocol[T_co]):
    def filter(self, **kwargs: Any) -> models.QuerySet: ...


class IReadRepository(ABC, Generic[T]):
    """Read-only repository contract.

    Type parameter ``T`` is the entity managed by the repository
    (e.g. ``Product``, ``Order``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve a live entity by primary key, ``None`` if absent."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Queryable[T]:
        """List live entities with optional filters."""


class IRepository(IReadRepository[T]):
    """Read/write repository contract."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""

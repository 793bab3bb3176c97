"""
Entity loading abstraction.

Access checks that depend on ownership load the target entity through
this interface. Implementations wrap whatever persistence the
application uses (SQL, document store, remote service) without the
access control layer knowing about it.

Contract:
- ``load`` returns the entity, or None if no entity has that id
- failures (timeouts, connection errors) raise; they are never
  reported as "not found"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TypeVar

T = TypeVar("T")


class EntityLoader(ABC):
    """
    Loads entities by type and 64-bit integer id.
    
    The returned entity is only inspected for its ownership fields and
    is handed to the operation body on success, so the loader should
    fetch whatever relations the ownership path walks (e.g. ``user``).
    """
    
    @abstractmethod
    async def load(self, entity_type: type[T], entity_id: int) -> T | None:
        """Load an entity, or return None if it does not exist."""
        pass


class EntityStore(EntityLoader):
    """An entity loader that can also list and delete (used by the example API)."""
    
    @abstractmethod
    async def list(self, entity_type: type[T]) -> list[T]:
        """All entities of a type."""
        pass
    
    @abstractmethod
    async def delete(self, entity_type: type[T], entity_id: int) -> bool:
        """Delete an entity, return whether it existed."""
        pass


class Entities:
    """Standard entity collection names."""
    
    USERS = "users"
    ORDERS = "orders"
    ADDRESSES = "addresses"
    REVIEWS = "reviews"
    GIFT_CARDS = "gift_cards"


def collection_name(entity_type: Any) -> str:
    """Collection key for an entity type (``__collection__`` or lowercased name)."""
    return getattr(entity_type, "__collection__", None) or getattr(
        entity_type, "__name__", str(entity_type)
    ).lower()

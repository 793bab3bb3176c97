"""
Local entity storage for development and tests.

An in-memory implementation that works without any external services.
"""

from __future__ import annotations

import asyncio
from typing import Any, TypeVar

from warden.storage.base import EntityStore, collection_name

T = TypeVar("T")


class InMemoryEntityLoader(EntityStore):
    """In-memory entity store keyed by collection and id."""
    
    def __init__(self, latency: float = 0.0):
        self._data: dict[str, dict[int, Any]] = {}
        self.latency = latency
    
    def add(self, entity: Any, entity_type: Any = None) -> Any:
        """Store an entity under its ``id``."""
        entity_type = entity_type or type(entity)
        entity_id = entity["id"] if isinstance(entity, dict) else entity.id
        self._data.setdefault(collection_name(entity_type), {})[entity_id] = entity
        return entity
    
    def add_all(self, *entities: Any) -> None:
        for entity in entities:
            self.add(entity)
    
    async def load(self, entity_type: type[T], entity_id: int) -> T | None:
        if self.latency:
            await asyncio.sleep(self.latency)
        return self._data.get(collection_name(entity_type), {}).get(entity_id)
    
    async def list(self, entity_type: type[T]) -> list[T]:
        return list(self._data.get(collection_name(entity_type), {}).values())
    
    async def delete(self, entity_type: type[T], entity_id: int) -> bool:
        collection = self._data.get(collection_name(entity_type), {})
        return collection.pop(entity_id, None) is not None

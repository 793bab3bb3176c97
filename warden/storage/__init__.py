"""
Storage abstractions.

- EntityLoader -> whatever persistence the application uses
- InMemoryEntityLoader -> development and tests
"""

from warden.storage.base import EntityLoader, EntityStore, Entities, collection_name
from warden.storage.local import InMemoryEntityLoader

__all__ = [
    "EntityLoader",
    "EntityStore",
    "Entities",
    "collection_name",
    "InMemoryEntityLoader",
]

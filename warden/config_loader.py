"""
Ownership configuration loader.

Loads ownership descriptors from YAML and registers them with the
access registry, for entity types whose ownership is configured rather
than declared in code.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from warden.auth.errors import ConfigurationError
from warden.auth.ownership import OwnershipDescriptor
from warden.core.registry import AccessRegistry, get_registry

logger = logging.getLogger(__name__)


class OwnershipConfigLoader:
    """
    Loads ownership descriptors and registers them.
    
    Entity types are matched by class name against the types the
    registry already knows (referenced by a rule or declared in code),
    plus any passed in explicitly.
    """
    
    def __init__(
        self,
        registry: AccessRegistry | None = None,
        entity_types: list[Any] | None = None,
    ):
        self.registry = registry or get_registry()
        self.entity_types = list(entity_types or [])
    
    def _types_by_name(self) -> dict[str, Any]:
        types = self.registry.entity_types() + self.entity_types
        return {getattr(t, "__name__", str(t)): t for t in types}
    
    def load_file(self, path: Path | str) -> int:
        """Load descriptors from a YAML file, return how many were registered."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        
        count = self.load_dict(data, source=str(path))
        logger.info(f"Loaded {count} ownership descriptors from {path}")
        return count
    
    def load_dict(self, data: dict[str, Any], source: str = "<dict>") -> int:
        """Register descriptors from an already-parsed mapping."""
        entries = data.get("ownership") or {}
        if not isinstance(entries, dict):
            raise ConfigurationError(f"{source}: 'ownership' must be a mapping")
        
        types = self._types_by_name()
        count = 0
        for name, entry in entries.items():
            if name not in types:
                raise ConfigurationError(f"{source}: unknown entity type '{name}'")
            self.registry.register_ownership(types[name], self._descriptor(name, entry, source))
            count += 1
        return count
    
    @staticmethod
    def _descriptor(name: str, entry: Any, source: str) -> OwnershipDescriptor:
        if not isinstance(entry, dict) or ("path" in entry) == ("accessor" in entry):
            raise ConfigurationError(
                f"{source}: '{name}' needs exactly one of 'path' or 'accessor'"
            )
        if "accessor" in entry:
            return OwnershipDescriptor.from_accessor(str(entry["accessor"]))
        return OwnershipDescriptor.from_path(str(entry["path"] or ""))


def default_config_path() -> Path:
    """config/ownership.yaml next to the package."""
    return Path(__file__).parent.parent / "config" / "ownership.yaml"


def load_ownership_config(
    path: Path | str | None = None,
    registry: AccessRegistry | None = None,
) -> int:
    """
    Convenience function to load ownership configuration.
    
    A missing file is not an error: everything may be declared in code.
    
    Returns:
        Number of descriptors registered
    """
    path = Path(path) if path else default_config_path()
    if not path.exists():
        logger.info(f"No ownership config at {path}")
        return 0
    return OwnershipConfigLoader(registry).load_file(path)

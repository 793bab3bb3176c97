"""
Registry for access rules and ownership descriptors.

The registry is the central place where every operation's access rule
and every entity type's ownership descriptor is registered. It is built
once at startup, validated as a whole, then frozen; after that it is
read-only and safe to share across concurrent requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from warden.auth.errors import ConfigurationError
from warden.auth.ownership import (
    CompiledOwnership,
    OwnershipDescriptor,
    compile_ownership,
    infer_ownership,
)

if TYPE_CHECKING:
    from warden.auth.rules import AccessRule

logger = logging.getLogger(__name__)


class RegistryError(ConfigurationError):
    """Raised when there's an error with the registry."""
    pass


@dataclass(frozen=True)
class RegisteredOperation:
    """An operation id bound to its access rule."""

    operation_id: str
    rule: AccessRule
    endpoint: Callable[..., Any] | None = None
    parameters: tuple[str, ...] | None = None


def _type_name(entity_type: Any) -> str:
    return getattr(entity_type, "__name__", str(entity_type))


class AccessRegistry:
    """
    Central registry for access control configuration.

    Operations register by id, entity types register their ownership
    descriptor. ``validate()`` checks every rule against the descriptors
    of the entity types it protects.
    """

    def __init__(self):
        # operation_id -> registered operation
        self._operations: dict[str, RegisteredOperation] = {}

        # endpoint function -> operation_id
        self._by_endpoint: dict[Callable[..., Any], str] = {}

        # entity type -> declared descriptor
        self._descriptors: dict[Any, OwnershipDescriptor] = {}

        # entity type -> compiled descriptor (filled by validate)
        self._compiled: dict[Any, CompiledOwnership] = {}

        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_writable(self, what: str) -> None:
        if self._frozen:
            raise RegistryError(f"Registry is frozen; cannot register {what}")

    # =========================================================================
    # Operations
    # =========================================================================

    def register_operation(
        self,
        operation_id: str,
        rule: AccessRule,
        endpoint: Callable[..., Any] | None = None,
        parameters: tuple[str, ...] | None = None,
    ) -> RegisteredOperation:
        """
        Register an operation's access rule.

        Raises:
            RegistryError: The id is taken or the registry is frozen
            ConfigurationError: The rule's id parameter is not one of the
                operation's parameters
        """
        self._check_writable(f"operation '{operation_id}'")

        if operation_id in self._operations:
            raise RegistryError(f"Operation '{operation_id}' is already registered")

        if (
            rule.requires_entity
            and parameters is not None
            and rule.entity_id_param not in parameters
        ):
            raise ConfigurationError(
                f"Operation '{operation_id}' has no parameter '{rule.entity_id_param}' "
                f"(parameters: {', '.join(parameters) or 'none'})"
            )

        operation = RegisteredOperation(operation_id, rule, endpoint, parameters)
        self._operations[operation_id] = operation
        if endpoint is not None:
            self._by_endpoint[endpoint] = operation_id

        logger.debug(f"Registered access rule {rule.level.name} for {operation_id}")
        return operation

    def get_operation(self, operation_id: str) -> RegisteredOperation:
        """Get an operation by ID."""
        if operation_id not in self._operations:
            raise RegistryError(f"No access rule registered for operation '{operation_id}'")
        return self._operations[operation_id]

    def operation_for(self, endpoint: Callable[..., Any] | None) -> RegisteredOperation | None:
        """Look up an operation by its endpoint function."""
        operation_id = self._by_endpoint.get(endpoint) if endpoint is not None else None
        return self._operations.get(operation_id) if operation_id else None

    def list_operations(self) -> list[str]:
        """List all registered operation IDs."""
        return list(self._operations.keys())

    # =========================================================================
    # Ownership
    # =========================================================================

    def register_ownership(self, entity_type: Any, descriptor: OwnershipDescriptor) -> None:
        """
        Declare how to find the owner of ``entity_type``.

        Re-registering the same descriptor is a no-op; a different one is
        an error (exactly one descriptor per entity type).
        """
        existing = self._descriptors.get(entity_type)
        if existing == descriptor:
            return
        if existing is not None:
            raise RegistryError(
                f"{_type_name(entity_type)} already declares ownership '{existing}'"
            )
        self._check_writable(f"ownership for {_type_name(entity_type)}")
        self._descriptors[entity_type] = descriptor

    def get_ownership(self, entity_type: Any) -> OwnershipDescriptor | None:
        """The declared descriptor for a type or its nearest base class."""
        for klass in getattr(entity_type, "__mro__", (entity_type,)):
            if klass in self._descriptors:
                return self._descriptors[klass]
        return None

    def ownership_for(self, entity_type: Any) -> CompiledOwnership:
        """
        Compiled ownership for an entity type.

        Falls back to conventional field names when nothing is declared.

        Raises:
            ConfigurationError: No descriptor declared or inferable
            InvalidOwnershipPath: The descriptor does not fit the type
        """
        compiled = self._compiled.get(entity_type)
        if compiled is not None:
            return compiled

        descriptor = self.get_ownership(entity_type)
        if descriptor is None:
            descriptor = infer_ownership(entity_type)
            if descriptor is None:
                raise ConfigurationError(
                    f"{_type_name(entity_type)} declares no ownership and none "
                    "could be inferred from its fields"
                )
            logger.info(f"Inferred ownership '{descriptor}' for {_type_name(entity_type)}")

        compiled = compile_ownership(entity_type, descriptor)
        if not self._frozen:
            self._compiled[entity_type] = compiled
        return compiled

    def entity_types(self) -> list[Any]:
        """Entity types referenced by rules or ownership declarations."""
        seen: list[Any] = list(self._descriptors)
        for operation in self._operations.values():
            entity_type = operation.rule.entity_type
            if entity_type is not None and entity_type not in seen:
                seen.append(entity_type)
        return seen

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> list[str]:
        """
        Validate all rules against their entity types' ownership.

        Returns a list of error messages (empty if valid).
        """
        errors: list[str] = []

        for entity_type in self._descriptors:
            try:
                self.ownership_for(entity_type)
            except ConfigurationError as e:
                errors.append(str(e))

        for operation in self._operations.values():
            rule = operation.rule
            if not rule.requires_entity:
                continue
            try:
                self.ownership_for(rule.entity_type)
            except ConfigurationError as e:
                message = f"{operation.operation_id}: {e}"
                if message not in errors and str(e) not in errors:
                    errors.append(message)

        return errors

    def check(self) -> None:
        """Validate and raise a single ConfigurationError listing every problem."""
        errors = self.validate()
        if errors:
            for error in errors:
                logger.error(f"Access control configuration error: {error}")
            raise ConfigurationError("; ".join(errors))

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    def describe(self) -> list[dict[str, Any]]:
        """Summary of every registered operation, for docs and tooling."""
        rows = []
        for operation in self._operations.values():
            rule = operation.rule
            row: dict[str, Any] = {
                "operation": operation.operation_id,
                "level": rule.level.value,
                "skip": rule.skip,
            }
            if rule.requires_entity:
                row["entity"] = rule.entity_name
                row["entity_id_param"] = rule.entity_id_param
                descriptor = self.get_ownership(rule.entity_type) or infer_ownership(rule.entity_type)
                row["ownership"] = str(descriptor) if descriptor else None
            rows.append(row)
        return rows


# Singleton registry for the application
_default_registry: AccessRegistry | None = None


def get_registry() -> AccessRegistry:
    """Get the default registry instance."""
    global _default_registry
    if _default_registry is None:
        _default_registry = AccessRegistry()
    return _default_registry


def reset_registry() -> None:
    """Reset the default registry (useful for testing)."""
    global _default_registry
    _default_registry = None

"""
Access rules - the declaration attached to each operation.

Usage:
    @router.get("/orders/{order_id}")
    @access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=Order, entity_id_param="order_id")
    async def get_order(order_id: int, grant: AccessGrant = Depends(enforce)):
        ...

Declaring a rule registers it with the access registry immediately, so
wiring mistakes (missing entity type, an id parameter the operation
does not have, a second rule on the same function) fail at import time
rather than on the first request.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from warden.auth.errors import ConfigurationError
from warden.auth.levels import AccessLevel

if TYPE_CHECKING:
    from warden.core.registry import AccessRegistry

F = TypeVar("F", bound=Callable[..., Any])

ACCESS_RULE_ATTR = "__access_rule__"


@dataclass(frozen=True)
class AccessRule:
    """Immutable authorization rule for one operation."""

    level: AccessLevel = AccessLevel.AUTHENTICATED
    entity_id_param: str = "id"
    entity_type: Any = None
    denied_message: str | None = None
    skip: bool = False

    def __post_init__(self):
        if not isinstance(self.level, AccessLevel):
            try:
                object.__setattr__(self, "level", AccessLevel(self.level))
            except ValueError:
                raise ConfigurationError(f"Unknown access level {self.level!r}")

        if self.skip:
            return

        if self.level.requires_entity:
            if self.entity_type is None:
                raise ConfigurationError(
                    f"{self.level.name} rule needs an entity_type"
                )
            if not self.entity_id_param:
                raise ConfigurationError(
                    f"{self.level.name} rule needs an entity_id_param"
                )

    @property
    def requires_entity(self) -> bool:
        return not self.skip and self.level.requires_entity

    @property
    def entity_name(self) -> str | None:
        if self.entity_type is None:
            return None
        return getattr(self.entity_type, "__name__", str(self.entity_type))


def default_operation_id(func: Callable[..., Any]) -> str:
    """Operation id for a function: ``module.qualname``."""
    return f"{func.__module__}.{func.__qualname__}"


def access_control(
    level: AccessLevel | str = AccessLevel.AUTHENTICATED,
    *,
    entity_id_param: str = "id",
    entity_type: Any = None,
    denied_message: str | None = None,
    skip: bool = False,
    operation_id: str | None = None,
    registry: AccessRegistry | None = None,
) -> Callable[[F], F]:
    """
    Declare the access rule for an operation.

    Args:
        level: Access level required
        entity_id_param: Name of the parameter carrying the entity id
        entity_type: Entity type protected by OWNER_OR_ADMIN rules
        denied_message: Replaces the default denial message
        skip: Bypass evaluation entirely (bespoke checks in the body)
        operation_id: Registry key (defaults to module.qualname)
        registry: Registry to declare into (defaults to the global one)

    Raises:
        ConfigurationError: The rule is malformed or does not fit the
            operation's parameters
    """
    rule = AccessRule(
        level=level,
        entity_id_param=entity_id_param,
        entity_type=entity_type,
        denied_message=denied_message,
        skip=skip,
    )

    def decorator(func: F) -> F:
        from warden.core.registry import get_registry

        if getattr(func, ACCESS_RULE_ATTR, None) is not None:
            raise ConfigurationError(
                f"{default_operation_id(func)} already declares an access rule"
            )

        parameters = tuple(inspect.signature(func).parameters)
        (registry or get_registry()).register_operation(
            operation_id or default_operation_id(func),
            rule,
            endpoint=func,
            parameters=parameters,
        )
        setattr(func, ACCESS_RULE_ATTR, rule)
        return func

    return decorator


def get_access_rule(func: Callable[..., Any]) -> AccessRule | None:
    """The rule declared on a function, if any."""
    return getattr(func, ACCESS_RULE_ATTR, None)

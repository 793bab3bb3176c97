"""
Access decision engine.

Turns (rule, caller identity, target entity) into ALLOW or DENY(kind).

Evaluation per level:
- PUBLIC          always allow, nothing is loaded
- AUTHENTICATED   allow iff a caller is present
- ADMIN_ONLY      allow iff a caller is present and is an admin
- OWNER_OR_ADMIN  anonymous -> UNAUTHENTICATED; admin -> allow without
                  loading; otherwise load the entity, resolve its owner
                  and allow iff it is the caller

Admin bypass is checked before ownership resolution so a missing or
unresolvable owner never blocks an admin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from warden.auth.context import IdentityContext
from warden.auth.errors import (
    DENIAL_ERRORS,
    AccessDenied,
    AccessError,
    ConfigurationError,
    EntityLoadError,
    ErrorKind,
    OwnershipUnresolvable,
)
from warden.auth.levels import AccessLevel
from warden.auth.ownership import CompiledOwnership
from warden.auth.rules import AccessRule

if TYPE_CHECKING:
    from warden.core.registry import AccessRegistry
    from warden.storage.base import EntityLoader

logger = logging.getLogger(__name__)


DEFAULT_MESSAGES: dict[tuple[AccessLevel, ErrorKind], str] = {
    (AccessLevel.AUTHENTICATED, ErrorKind.UNAUTHENTICATED): "Authentication required",
    (AccessLevel.ADMIN_ONLY, ErrorKind.UNAUTHENTICATED): "Authentication required",
    (AccessLevel.ADMIN_ONLY, ErrorKind.FORBIDDEN): "Admin access required",
    (AccessLevel.OWNER_OR_ADMIN, ErrorKind.UNAUTHENTICATED): "Authentication required",
    (AccessLevel.OWNER_OR_ADMIN, ErrorKind.FORBIDDEN): "Access denied: not the owner of this entity",
    (AccessLevel.OWNER_OR_ADMIN, ErrorKind.ENTITY_NOT_FOUND): "Entity not found",
}


@dataclass(frozen=True)
class Decision:
    """Outcome of one access evaluation."""

    allowed: bool
    kind: ErrorKind | None = None
    message: str | None = None
    entity: Any = None

    @classmethod
    def allow(cls, entity: Any = None) -> Decision:
        return cls(allowed=True, entity=entity)

    @classmethod
    def deny(cls, rule: AccessRule, kind: ErrorKind, detail: str | None = None) -> Decision:
        """Deny with the rule's custom message, or a level-appropriate default."""
        message = rule.denied_message or detail or DEFAULT_MESSAGES.get(
            (rule.level, kind), "Access denied"
        )
        return cls(allowed=False, kind=kind, message=message)

    def to_error(self) -> AccessDenied:
        """The exception a denied decision is raised as."""
        if self.allowed:
            raise ValueError("Allowed decision has no error")
        return DENIAL_ERRORS[self.kind](self.message)


def evaluate(
    rule: AccessRule,
    identity: IdentityContext,
    entity: Any = None,
    ownership: CompiledOwnership | None = None,
) -> Decision:
    """
    Pure decision for an already-loaded entity.

    ``entity=None`` means the entity does not exist. For OWNER_OR_ADMIN
    with a non-admin caller, ``ownership`` is required.
    """
    if rule.skip or rule.level is AccessLevel.PUBLIC:
        return Decision.allow(entity)

    if identity.is_anonymous:
        return Decision.deny(rule, ErrorKind.UNAUTHENTICATED)

    if rule.level is AccessLevel.AUTHENTICATED:
        return Decision.allow(entity)

    if rule.level is AccessLevel.ADMIN_ONLY:
        if identity.is_admin:
            return Decision.allow(entity)
        return Decision.deny(rule, ErrorKind.FORBIDDEN)

    # OWNER_OR_ADMIN
    if identity.is_admin:
        return Decision.allow(entity)

    if entity is None:
        return Decision.deny(rule, ErrorKind.ENTITY_NOT_FOUND)

    if ownership is None:
        raise ConfigurationError(f"No ownership configured for {rule.entity_name}")

    try:
        owner_id = ownership.resolve(entity)
    except OwnershipUnresolvable as e:
        logger.warning(f"Ownership of {rule.entity_name} unresolvable: {e.message}")
        return Decision.deny(rule, ErrorKind.FORBIDDEN)

    if owner_id != identity.caller_id:
        return Decision.deny(rule, ErrorKind.FORBIDDEN)
    return Decision.allow(entity)


class AccessDecisionEngine:
    """
    Evaluates rules, loading the target entity only when needed.

    Holds no per-request state; one engine serves all requests.
    """

    def __init__(self, loader: EntityLoader, registry: AccessRegistry | None = None):
        from warden.core.registry import get_registry

        self.loader = loader
        self.registry = registry or get_registry()

    async def decide(
        self,
        rule: AccessRule,
        identity: IdentityContext,
        entity_id: int | None = None,
    ) -> Decision:
        """
        Decide whether ``identity`` may run an operation guarded by ``rule``.

        Raises:
            ConfigurationError: OWNER_OR_ADMIN without an entity id, or the
                entity type has no usable ownership descriptor
            EntityLoadError: The loader failed
        """
        needs_load = (
            rule.requires_entity
            and identity.is_authenticated
            and not identity.is_admin
        )
        if not needs_load:
            return evaluate(rule, identity)

        if entity_id is None:
            raise ConfigurationError(
                f"{rule.level.name} rule on {rule.entity_name} evaluated without an entity id"
            )

        ownership = self.registry.ownership_for(rule.entity_type)
        entity = await self._load(rule, entity_id)
        if entity is None:
            return Decision.deny(
                rule,
                ErrorKind.ENTITY_NOT_FOUND,
                f"{rule.entity_name} with id {entity_id} not found",
            )
        return evaluate(rule, identity, entity, ownership)

    async def _load(self, rule: AccessRule, entity_id: int) -> Any:
        try:
            return await self.loader.load(rule.entity_type, entity_id)
        except AccessError:
            raise
        except Exception as e:
            logger.error(f"Loading {rule.entity_name}#{entity_id} for access check failed: {e}")
            raise EntityLoadError() from e

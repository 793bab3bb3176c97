"""
Enforcement point - runs the access check before an operation body.

Framework neutral: give it an operation id, the caller identity and the
operation's arguments, get back an ``AccessGrant`` or an exception. The
FastAPI dependency in policies.py is a thin adapter over this.

Per invocation the check moves PENDING -> ALLOWED | DENIED | CONFIG_ERROR
exactly once; denials are final and never retried.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from warden.auth.context import IdentityContext
from warden.auth.decision import AccessDecisionEngine
from warden.auth.errors import AccessDenied, ConfigurationError
from warden.auth.rules import AccessRule
from warden.core.utils import coerce_identifier

if TYPE_CHECKING:
    from warden.core.registry import AccessRegistry
    from warden.storage.base import EntityLoader

logger = logging.getLogger(__name__)


class EnforcementState(str, Enum):
    """Terminal states of one access check."""

    PENDING = "pending"
    ALLOWED = "allowed"
    DENIED = "denied"
    CONFIG_ERROR = "config_error"


@dataclass(frozen=True)
class AccessGrant:
    """
    Proof that the access check passed, handed to the operation body.

    ``entity`` is the entity loaded for the ownership check, so the body
    does not load it again. It is None when nothing was loaded (admin
    bypass, or levels that need no entity).
    """

    operation_id: str
    identity: IdentityContext
    rule: AccessRule
    entity_id: int | None = None
    entity: Any = None

    @property
    def state(self) -> EnforcementState:
        return EnforcementState.ALLOWED


def extract_entity_id(rule: AccessRule, arguments: Mapping[str, Any]) -> int | None:
    """
    Pull the entity id out of an operation's arguments.

    Raises:
        ConfigurationError: The rule needs an entity and the argument is
            missing or not a 64-bit integer
    """
    raw = arguments.get(rule.entity_id_param)
    entity_id = coerce_identifier(raw) if raw is not None else None

    if entity_id is None and rule.requires_entity:
        if raw is None:
            detail = f"parameter '{rule.entity_id_param}' is missing"
        else:
            detail = f"parameter '{rule.entity_id_param}'={raw!r} is not an identifier"
        raise ConfigurationError(f"{rule.level.name} check on {rule.entity_name}: {detail}")
    return entity_id


class AccessEnforcer:
    """Evaluates registered rules for incoming invocations."""

    def __init__(self, registry: AccessRegistry, loader: EntityLoader):
        self.registry = registry
        self.loader = loader
        self.engine = AccessDecisionEngine(loader, registry)

    async def enforce(
        self,
        operation_id: str,
        identity: IdentityContext,
        arguments: Mapping[str, Any] | None = None,
    ) -> AccessGrant:
        """
        Check access for one invocation of ``operation_id``.

        Returns:
            AccessGrant carrying the loaded entity, if any

        Raises:
            AccessDenied: Unauthenticated, Forbidden or EntityNotFound
            ConfigurationError: The operation is wired incorrectly
            EntityLoadError: The entity could not be loaded
        """
        try:
            rule = self.registry.get_operation(operation_id).rule
            if rule.skip:
                logger.debug(f"Skipping access validation for {operation_id}")
                return AccessGrant(operation_id, identity, rule)

            entity_id = extract_entity_id(rule, arguments or {})
            decision = await self.engine.decide(rule, identity, entity_id)
        except ConfigurationError as e:
            logger.error(f"Access control misconfigured for {operation_id}: {e.message}")
            raise

        if not decision.allowed:
            logger.warning(
                f"Access denied for {operation_id}: caller={identity.caller_id} "
                f"kind={decision.kind.value} entity={rule.entity_name}#{entity_id}"
            )
            raise decision.to_error()

        logger.debug(
            f"Access granted for {operation_id}: caller={identity.caller_id} "
            f"level={rule.level.name}"
        )
        return AccessGrant(operation_id, identity, rule, entity_id, decision.entity)

    async def check(
        self,
        operation_id: str,
        identity: IdentityContext,
        arguments: Mapping[str, Any] | None = None,
    ) -> EnforcementState:
        """Like ``enforce`` but reports the terminal state instead of raising denials."""
        try:
            await self.enforce(operation_id, identity, arguments)
        except AccessDenied:
            return EnforcementState.DENIED
        except ConfigurationError:
            return EnforcementState.CONFIG_ERROR
        return EnforcementState.ALLOWED

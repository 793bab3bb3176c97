"""
Policies - the FastAPI side of access control.

Routes declare their rule with ``@access_control`` and depend on
``enforce``:

    @router.get("/orders/{order_id}")
    @access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=Order, entity_id_param="order_id")
    async def get_order(order_id: int, grant: AccessGrant = Depends(enforce)):
        return grant.entity

Design:
- `get_identity` turns the bearer token into an IdentityContext
- `enforce` finds the rule for the matched endpoint and runs the check
  before the route body is called, reading the entity id from the path
  or query parameter the route itself declares
- Denials raise AccessError subclasses; api/errors.py maps them to
  401 / 403 / 404
- `configure_access_control` validates every route at startup
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from fastapi import Depends, FastAPI, Request
from fastapi.dependencies.models import Dependant
from fastapi.routing import APIRoute
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from warden.auth.context import IdentityContext
from warden.auth.enforcement import AccessEnforcer, AccessGrant
from warden.auth.errors import ConfigurationError
from warden.config import get_settings
from warden.core.utils import coerce_identifier

if TYPE_CHECKING:
    from warden.core.registry import AccessRegistry
    from warden.storage.base import EntityLoader

logger = logging.getLogger(__name__)


# =============================================================================
# Identity (pluggable)
# =============================================================================


# Optional bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)


def _dev_identity(token: str) -> IdentityContext | None:
    """Dev tokens: "dev:<id>" or "dev:<id>:admin"."""
    parts = token.split(":")
    if len(parts) not in (2, 3) or parts[0] != "dev":
        return None
    if len(parts) == 3 and parts[2] != "admin":
        return None
    caller_id = coerce_identifier(parts[1])
    if caller_id is None:
        return None
    return IdentityContext.user(caller_id, is_admin=len(parts) == 3)


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> IdentityContext:
    """
    Resolve the caller identity from the Authorization header.

    Missing or invalid tokens give an anonymous identity; whether that is
    acceptable is the access rule's decision, not ours.
    """
    if not credentials:
        return IdentityContext.anonymous()

    token = credentials.credentials

    from warden.auth.jwt import TokenError, decode_token

    try:
        payload = decode_token(token, expected_type="access")
        return IdentityContext.user(payload.user_id, is_admin=payload.is_admin)
    except TokenError as e:
        logger.debug(f"Bearer token rejected: {e}")

    # Dev mode: accept simple tokens like "dev:5" - never in production
    if get_settings().dev_tokens_enabled:
        identity = _dev_identity(token)
        if identity is not None:
            return identity

    logger.warning("Invalid bearer token; treating request as anonymous")
    return IdentityContext.anonymous()


# =============================================================================
# Enforcement dependency
# =============================================================================


# Where an entity id parameter is read from
PATH = "path"
QUERY = "query"


def get_enforcer(request: Request) -> AccessEnforcer:
    enforcer = getattr(request.app.state, "access_enforcer", None)
    if enforcer is None:
        raise ConfigurationError("Access control is not configured on this app")
    return enforcer


async def enforce(
    request: Request,
    identity: IdentityContext = Depends(get_identity),
) -> AccessGrant:
    """
    Run the matched endpoint's access rule.

    Resolves to an AccessGrant if allowed; raises otherwise, so the route
    body never starts for a denied caller.
    """
    enforcer = get_enforcer(request)
    endpoint = request.scope.get("endpoint")
    operation = enforcer.registry.operation_for(endpoint)
    if operation is None:
        raise ConfigurationError(
            f"No access rule declared for {request.method} {request.url.path}"
        )

    arguments: dict[str, Any] = {}
    rule = operation.rule
    if rule.requires_entity:
        source = getattr(request.app.state, "entity_id_sources", {}).get(endpoint)
        if source is None:
            raise ConfigurationError(
                f"No entity id source for {request.method} {request.url.path}"
            )
        # Read only where the route itself reads the parameter
        location, key = source
        values = request.path_params if location == PATH else request.query_params
        if key in values:
            arguments[rule.entity_id_param] = values[key]

    return await enforcer.enforce(operation.operation_id, identity, arguments)


def get_loader(request: Request) -> EntityLoader:
    return get_enforcer(request).loader


# =============================================================================
# Startup validation
# =============================================================================


def _depends_on_enforce(dependant: Dependant) -> bool:
    for dependency in dependant.dependencies:
        if dependency.call is enforce or _depends_on_enforce(dependency):
            return True
    return False


def entity_id_source(route: APIRoute, param: str) -> tuple[str, str] | None:
    """
    Where a route reads ``param`` from: (PATH | QUERY, request key).

    None if the parameter comes from the body, a header, a cookie or a
    dependency; the enforcement point cannot see those values.
    """
    for location, fields in ((PATH, route.dependant.path_params), (QUERY, route.dependant.query_params)):
        for field in fields:
            if field.name == param:
                return location, field.alias
    return None


def _entity_id_sources(
    app: FastAPI, registry: AccessRegistry
) -> tuple[dict[Callable[..., Any], tuple[str, str]], list[str]]:
    sources: dict[Callable[..., Any], tuple[str, str]] = {}
    errors: list[str] = []
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        operation = registry.operation_for(route.endpoint)
        if operation is None or not operation.rule.requires_entity:
            continue

        param = operation.rule.entity_id_param
        methods = ",".join(sorted(route.methods or []))
        source = entity_id_source(route, param)
        if source is None:
            errors.append(
                f"{methods} {route.path}: entity id parameter '{param}' must be a path or query parameter"
            )
        elif sources.setdefault(route.endpoint, source) != source:
            errors.append(
                f"{methods} {route.path}: entity id parameter '{param}' is read from different "
                "places by routes sharing this endpoint"
            )
    return sources, errors


def validate_routes(app: FastAPI, registry: AccessRegistry) -> list[str]:
    """
    Check that rules and the enforce dependency always come together,
    and that every entity id comes from the path or the query string.

    Returns a list of error messages (empty if valid).
    """
    errors: list[str] = []
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        has_rule = registry.operation_for(route.endpoint) is not None
        enforced = _depends_on_enforce(route.dependant)
        methods = ",".join(sorted(route.methods or []))
        if has_rule and not enforced:
            errors.append(f"{methods} {route.path} declares an access rule but does not depend on enforce")
        elif enforced and not has_rule:
            errors.append(f"{methods} {route.path} depends on enforce but declares no access rule")
    return errors + _entity_id_sources(app, registry)[1]


def configure_access_control(
    app: FastAPI,
    loader: EntityLoader,
    registry: AccessRegistry | None = None,
) -> AccessEnforcer:
    """
    Validate all access configuration and attach the enforcer to the app.

    Call once at startup. The registry is frozen afterwards.

    Raises:
        ConfigurationError: Any rule, descriptor or route is miswired
    """
    from warden.core.registry import get_registry

    registry = registry or get_registry()
    errors = registry.validate() + validate_routes(app, registry)
    if errors:
        for error in errors:
            logger.error(f"Access control configuration error: {error}")
        raise ConfigurationError("; ".join(errors))

    registry.freeze()
    enforcer = AccessEnforcer(registry, loader)
    app.state.entity_id_sources = _entity_id_sources(app, registry)[0]
    app.state.access_enforcer = enforcer
    logger.info(f"Access control ready: {len(registry.list_operations())} operations")
    return enforcer

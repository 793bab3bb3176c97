"""
Access control - declarative, per-operation, fail closed.

Design principles:
1. One declaration per operation (`@access_control`)
2. One descriptor per entity type for ownership (`@user_owned`)
3. All wiring validated at startup, never discovered per request
4. Zero authorization code in route handlers
"""

from warden.auth.context import IdentityContext
from warden.auth.decision import AccessDecisionEngine, Decision, evaluate
from warden.auth.enforcement import (
    AccessEnforcer,
    AccessGrant,
    EnforcementState,
    extract_entity_id,
)
from warden.auth.errors import (
    AccessDenied,
    AccessError,
    ConfigurationError,
    EntityLoadError,
    EntityNotFound,
    ErrorKind,
    Forbidden,
    InvalidOwnershipPath,
    OwnershipUnresolvable,
    Unauthenticated,
)
from warden.auth.levels import AccessLevel
from warden.auth.ownership import (
    CompiledOwnership,
    OwnershipDescriptor,
    compile_ownership,
    infer_ownership,
    resolve_owner_id,
    user_owned,
)
from warden.auth.policies import (
    configure_access_control,
    enforce,
    get_identity,
    get_loader,
    validate_routes,
)
from warden.auth.rules import AccessRule, access_control, get_access_rule

__all__ = [
    # Declaration
    "access_control",
    "user_owned",
    "AccessLevel",
    "AccessRule",
    "OwnershipDescriptor",
    "get_access_rule",
    # Evaluation
    "AccessDecisionEngine",
    "AccessEnforcer",
    "AccessGrant",
    "CompiledOwnership",
    "Decision",
    "EnforcementState",
    "IdentityContext",
    "compile_ownership",
    "evaluate",
    "extract_entity_id",
    "infer_ownership",
    "resolve_owner_id",
    # FastAPI
    "configure_access_control",
    "enforce",
    "get_identity",
    "get_loader",
    "validate_routes",
    # Errors
    "AccessDenied",
    "AccessError",
    "ConfigurationError",
    "EntityLoadError",
    "EntityNotFound",
    "ErrorKind",
    "Forbidden",
    "InvalidOwnershipPath",
    "OwnershipUnresolvable",
    "Unauthenticated",
]

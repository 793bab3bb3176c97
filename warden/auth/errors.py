"""
Access control errors.

Every failure the subsystem can produce is an ``AccessError`` carrying a
stable ``kind`` and the HTTP status it maps to. Denials (401/403/404) are
terminal outcomes for one invocation; configuration errors (500) are
deployment defects and should stop startup.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Stable, externally visible failure kinds."""
    
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    ENTITY_NOT_FOUND = "entity_not_found"
    CONFIGURATION_ERROR = "configuration_error"
    ENTITY_LOAD_FAILED = "entity_load_failed"


class AccessError(Exception):
    """Base exception for the access control subsystem."""
    
    kind: ErrorKind = ErrorKind.FORBIDDEN
    status_code: int = 403
    default_message: str = "Access denied"
    
    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# =============================================================================
# Denials
# =============================================================================


class AccessDenied(AccessError):
    """The caller may not run this operation."""
    pass


class Unauthenticated(AccessDenied):
    """No caller identity is present."""
    
    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AccessDenied):
    """The caller is known but not allowed."""
    
    kind = ErrorKind.FORBIDDEN
    status_code = 403
    default_message = "Access denied"


class OwnershipUnresolvable(Forbidden):
    """
    The owner of an entity could not be determined at request time.
    
    A null somewhere along the ownership path, or a failing accessor.
    Treated as Forbidden so evaluation fails closed.
    """
    
    default_message = "Could not determine entity ownership"


class EntityNotFound(AccessDenied):
    """The target entity does not exist."""
    
    kind = ErrorKind.ENTITY_NOT_FOUND
    status_code = 404
    default_message = "Entity not found"


# =============================================================================
# Internal faults
# =============================================================================


class ConfigurationError(AccessError):
    """Access rules or ownership descriptors are wired incorrectly."""
    
    kind = ErrorKind.CONFIGURATION_ERROR
    status_code = 500
    default_message = "Access control is misconfigured"


class InvalidOwnershipPath(ConfigurationError):
    """An ownership path or accessor does not exist on the entity type."""
    
    default_message = "Invalid ownership path"


class EntityLoadError(AccessError):
    """The entity loader failed (timeout, backend error)."""
    
    kind = ErrorKind.ENTITY_LOAD_FAILED
    status_code = 503
    default_message = "Could not load entity for access check"


DENIAL_ERRORS: dict[ErrorKind, type[AccessDenied]] = {
    ErrorKind.UNAUTHENTICATED: Unauthenticated,
    ErrorKind.FORBIDDEN: Forbidden,
    ErrorKind.ENTITY_NOT_FOUND: EntityNotFound,
}

"""
Ownership resolution - "who owns this entity".

Each entity type declares once how to find the id of its owning user:

- a dotted path of fields, e.g. ``user.id`` or ``owner.id``
- the empty path, meaning the entity IS the user (its own ``id``)
- a named zero-argument accessor, e.g. ``owner_user_id``

Descriptors are compiled per entity type at startup. Compilation checks
the path against the type's declared shape (pydantic fields, dataclass
fields or annotations) so a typo fails startup instead of denying
every request. At request time the compiled path is walked read-only.

Usage:
    @user_owned(path="user.id")
    class Order(BaseModel):
        id: int
        user: User | None = None
"""

from __future__ import annotations

import dataclasses
import logging
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from pydantic import BaseModel

from warden.auth.errors import (
    ConfigurationError,
    InvalidOwnershipPath,
    OwnershipUnresolvable,
)
from warden.core.utils import coerce_identifier

if TYPE_CHECKING:
    from warden.core.registry import AccessRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()

# Field that holds an entity's own identifier ("self" ownership)
ID_FIELD = "id"

# Conventional ownership fields, tried in order when a type declares none
CONVENTIONAL_PATHS: tuple[str, ...] = (
    "user_id",
    "user.id",
    "owner.id",
    "owner_id",
    "created_by.id",
    "created_by_id",
    "customer.id",
    "customer_id",
)


# =============================================================================
# Descriptor
# =============================================================================


@dataclass(frozen=True)
class OwnershipDescriptor:
    """
    How to locate the owner id of an entity type.

    Exactly one of ``path`` and ``accessor`` is set. An empty path means
    the entity's own id is the owner id.
    """

    path: tuple[str, ...] | None = None
    accessor: str | None = None

    def __post_init__(self):
        if (self.path is None) == (self.accessor is None):
            raise ConfigurationError(
                "Ownership descriptor needs exactly one of path or accessor"
            )
        if self.path is not None and any(not part for part in self.path):
            raise InvalidOwnershipPath(f"Empty segment in ownership path {self.path!r}")
        if self.accessor is not None and not self.accessor.isidentifier():
            raise InvalidOwnershipPath(f"Invalid accessor name {self.accessor!r}")

    @classmethod
    def from_path(cls, path: str) -> OwnershipDescriptor:
        """Build from a dotted path ("" for self-owned entities)."""
        parts = tuple(path.split(".")) if path else ()
        return cls(path=parts)

    @classmethod
    def from_accessor(cls, name: str) -> OwnershipDescriptor:
        return cls(accessor=name)

    @classmethod
    def self_owned(cls) -> OwnershipDescriptor:
        return cls(path=())

    @property
    def is_self(self) -> bool:
        return self.path == ()

    def __str__(self) -> str:
        if self.accessor is not None:
            return f"{self.accessor}()"
        return ".".join(self.path) or "<self>"


# =============================================================================
# Shape inspection (startup only)
# =============================================================================


def _unwrap_optional(annotation: Any) -> Any:
    """``User | None`` -> ``User``; anything ambiguous -> None."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        return args[0] if len(args) == 1 else None
    return annotation


def _field_types(entity_type: Any) -> dict[str, Any] | None:
    """
    Declared fields of a type, name -> annotation (None if unknown).

    Returns None when the type has no inspectable shape (dicts, Any,
    plain classes without annotations).
    """
    if not isinstance(entity_type, type) or issubclass(entity_type, Mapping):
        return None

    if issubclass(entity_type, BaseModel):
        return {name: f.annotation for name, f in entity_type.model_fields.items()}

    try:
        hints = typing.get_type_hints(entity_type)
    except Exception:
        # Unresolvable forward references: fall back to raw names
        hints = {}
        for klass in reversed(entity_type.__mro__):
            hints.update({k: None for k in getattr(klass, "__annotations__", {})})

    if dataclasses.is_dataclass(entity_type):
        return {f.name: hints.get(f.name) for f in dataclasses.fields(entity_type)}

    return hints or None


def _member_type(owner_type: Any, name: str, dotted: str) -> tuple[Any, bool]:
    """
    Look up one path segment on a type.

    Returns (segment type or None, verified). Raises InvalidOwnershipPath
    if the type has a known shape and the segment is not part of it.
    """
    fields = _field_types(owner_type)
    if fields is None:
        return None, False

    if name in fields:
        return _unwrap_optional(fields[name]), True

    # Properties count as fields
    attr = getattr(owner_type, name, None)
    if isinstance(attr, property):
        try:
            hints = typing.get_type_hints(attr.fget) if attr.fget else {}
        except Exception:
            hints = {}
        return _unwrap_optional(hints.get("return")), True

    raise InvalidOwnershipPath(
        f"{owner_type.__name__} has no field '{name}' (ownership path '{dotted}')"
    )


def _check_path(entity_type: Any, steps: tuple[str, ...]) -> bool:
    """
    Validate a path against the declared shape.

    Returns True if every segment was verified, False if checking stopped
    at a type without an inspectable shape.
    """
    dotted = ".".join(steps)
    current: Any = entity_type
    for name in steps:
        current, verified = _member_type(current, name, dotted)
        if not verified:
            return False
    return True


def _check_accessor(entity_type: Any, name: str) -> None:
    if not isinstance(entity_type, type) or issubclass(entity_type, Mapping):
        return
    attr = getattr(entity_type, name, None)
    if attr is None or isinstance(attr, property) or not callable(attr):
        raise InvalidOwnershipPath(
            f"{getattr(entity_type, '__name__', entity_type)} has no accessor '{name}()'"
        )


# =============================================================================
# Request-time resolution
# =============================================================================


def _lookup(current: Any, name: str, dotted: str) -> Any:
    if isinstance(current, Mapping):
        value = current.get(name, _MISSING)
    else:
        value = getattr(current, name, _MISSING)
    if value is _MISSING:
        raise InvalidOwnershipPath(
            f"{type(current).__name__} has no field '{name}' (ownership path '{dotted}')"
        )
    return value


def _as_owner_id(value: Any, where: str) -> int:
    owner_id = coerce_identifier(value)
    if owner_id is None:
        raise OwnershipUnresolvable(f"Owner id at '{where}' is {value!r}")
    return owner_id


def _walk(entity: Any, steps: tuple[str, ...]) -> int:
    dotted = ".".join(steps)
    current = entity
    for index, name in enumerate(steps):
        if current is None:
            raise OwnershipUnresolvable(
                f"'{'.'.join(steps[:index])}' is null (ownership path '{dotted}')"
            )
        current = _lookup(current, name, dotted)
    return _as_owner_id(current, dotted)


def _call_accessor(entity: Any, name: str) -> int:
    method = _lookup(entity, name, f"{name}()")
    if not callable(method):
        raise InvalidOwnershipPath(f"'{name}' on {type(entity).__name__} is not callable")
    try:
        value = method()
    except Exception as e:
        raise OwnershipUnresolvable(f"Accessor '{name}()' failed: {e}") from e
    return _as_owner_id(value, f"{name}()")


@dataclass(frozen=True)
class CompiledOwnership:
    """An ownership descriptor validated against one entity type."""

    entity_type: Any
    descriptor: OwnershipDescriptor
    steps: tuple[str, ...]
    verified: bool = True

    def resolve(self, entity: Any) -> int:
        """Return the owner id of ``entity`` (read-only)."""
        if self.descriptor.accessor is not None:
            return _call_accessor(entity, self.descriptor.accessor)
        return _walk(entity, self.steps)


def compile_ownership(entity_type: Any, descriptor: OwnershipDescriptor) -> CompiledOwnership:
    """
    Validate ``descriptor`` against ``entity_type`` and precompile it.

    Raises:
        InvalidOwnershipPath: a path segment or accessor does not exist
    """
    if descriptor.accessor is not None:
        _check_accessor(entity_type, descriptor.accessor)
        return CompiledOwnership(entity_type, descriptor, steps=())

    steps = descriptor.path if not descriptor.is_self else (ID_FIELD,)
    verified = _check_path(entity_type, steps)
    if not verified:
        logger.debug(
            f"Ownership path '{descriptor}' on {getattr(entity_type, '__name__', entity_type)} "
            "only partially checked (no declared shape)"
        )
    return CompiledOwnership(entity_type, descriptor, steps=steps, verified=verified)


def resolve_owner_id(entity: Any, descriptor: OwnershipDescriptor) -> int:
    """
    Resolve the owner id of an entity without a precompiled descriptor.

    Raises:
        OwnershipUnresolvable: a null along the path, or the accessor failed
        InvalidOwnershipPath: the path or accessor does not exist
    """
    if descriptor.accessor is not None:
        return _call_accessor(entity, descriptor.accessor)
    return _walk(entity, descriptor.path or (ID_FIELD,))


def infer_ownership(entity_type: Any) -> OwnershipDescriptor | None:
    """
    Guess a descriptor from conventional field names.

    Only paths fully verified against the declared shape are accepted,
    so types without an inspectable shape never get one.
    """
    for candidate in CONVENTIONAL_PATHS:
        descriptor = OwnershipDescriptor.from_path(candidate)
        try:
            if _check_path(entity_type, descriptor.path):
                return descriptor
        except InvalidOwnershipPath:
            continue
    return None


# =============================================================================
# Declaration
# =============================================================================


def user_owned(
    path: str | None = None,
    accessor: str | None = None,
    registry: AccessRegistry | None = None,
) -> Callable[[type[T]], type[T]]:
    """
    Class decorator declaring how to find an entity type's owner.

    Usage:
        @user_owned(path="user.id")
        class Order(BaseModel): ...

        @user_owned(path="")             # the entity is the user
        class User(BaseModel): ...

        @user_owned(accessor="owner_user_id")
        class GiftCard(BaseModel): ...
    """
    if accessor is not None:
        descriptor = OwnershipDescriptor.from_accessor(accessor)
    else:
        descriptor = OwnershipDescriptor.from_path(path if path is not None else "user.id")

    def decorator(cls: type[T]) -> type[T]:
        from warden.core.registry import get_registry

        (registry or get_registry()).register_ownership(cls, descriptor)
        return cls

    return decorator

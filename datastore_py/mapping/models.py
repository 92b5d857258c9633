"""Declarative field markers and class decorators for mapped models."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, TypeVar, get_args, get_origin, overload

if TYPE_CHECKING:
    from datastore_py.mapping.converters import Converter
    from datastore_py.mapping.indexers import Indexer

T = TypeVar("T", bound=type)

ENTITY_OPTIONS_ATTR = "__datastore_entity__"
EMBEDDABLE_OPTIONS_ATTR = "__datastore_embeddable__"


class StorageStrategy(Enum):
    """How an embedded object is laid out in the native entity."""

    EXPLODED = "exploded"  # Flatten into the parent's property namespace
    IMPLODED = "imploded"  # Nest as a single ENTITY value


# Convenience aliases
EXPLODED = StorageStrategy.EXPLODED
IMPLODED = StorageStrategy.IMPLODED


# --- Field markers (used inside typing.Annotated) ---


@dataclass(frozen=True, slots=True)
class Identifier:
    """
    Marks the identity field of an entity.

    The field type is ``int`` or ``str``, or a wrapper class built from one
    argument that exposes the raw value as ``value`` or ``get_value()``.

    Attributes:
        autogenerated: Whether a missing numeric id is allocated by the store

    """

    autogenerated: bool = True
    reader: str | None = None
    writer: str | None = None


@dataclass(frozen=True, slots=True)
class EntityKey:
    """Marks a ``DatastoreKey`` field receiving the entity's full key."""

    reader: str | None = None
    writer: str | None = None


@dataclass(frozen=True, slots=True)
class ParentKey:
    """Marks a ``DatastoreKey`` field holding the parent key."""

    reader: str | None = None
    writer: str | None = None


@dataclass(frozen=True, slots=True)
class Property:
    """
    Explicit mapping of a persistable field.

    Attributes:
        name: Stored name (defaults to the field name)
        indexed: Whether the stored value is indexed
        optional: Skip the property entirely when the value is None
        converter: A Converter instance, or a Converter class instantiated
            once for this field
        reader: Name of the read method, overriding the convention
        writer: Name of the write method, overriding the convention
        secondary_index: Indexer deriving an extra indexed value
        secondary_index_name: Stored name of the derived value (defaults to
            the configured prefix plus the stored name)

    """

    name: str | None = None
    indexed: bool = True
    optional: bool = False
    converter: Converter | type[Converter] | None = None
    reader: str | None = None
    writer: str | None = None
    secondary_index: Indexer | type[Indexer] | None = None
    secondary_index_name: str | None = None


@dataclass(frozen=True, slots=True)
class Embedded:
    """
    Marks a field holding an embedded object.

    Attributes:
        name: Stored name of the nested value (IMPLODED only)
        storage: EXPLODED or IMPLODED
        indexed: Whether the nested value is indexed (IMPLODED only)
        optional: Skip a None object instead of storing NULL (IMPLODED only)

    """

    name: str | None = None
    storage: StorageStrategy = StorageStrategy.EXPLODED
    indexed: bool = True
    optional: bool = False
    reader: str | None = None
    writer: str | None = None


@dataclass(frozen=True, slots=True)
class Version:
    """Marks an ``int`` optimistic-locking version field."""

    name: str | None = None
    reader: str | None = None
    writer: str | None = None


@dataclass(frozen=True, slots=True)
class Ignore:
    """Excludes a field from mapping."""


FieldMarker = Identifier | EntityKey | ParentKey | Property | Embedded | Version | Ignore
_MARKER_TYPES = (Identifier, EntityKey, ParentKey, Property, Embedded, Version, Ignore)


def field_markers(annotation: Any) -> list[FieldMarker]:
    """Return the markers attached to an ``Annotated`` annotation."""
    if get_origin(annotation) is not Annotated:
        return []
    return [m for m in get_args(annotation)[1:] if isinstance(m, _MARKER_TYPES)]


# --- Class decorators ---


@dataclass(frozen=True, slots=True)
class EntityOptions:
    kind: str
    builder: type | None = None


@dataclass(frozen=True, slots=True)
class EmbeddableOptions:
    builder: type | None = None


@overload
def entity(cls: T, /) -> T: ...


@overload
def entity(*, kind: str | None = None, builder: type | None = None) -> Callable[[T], T]: ...


def entity(
    cls: T | None = None,
    /,
    *,
    kind: str | None = None,
    builder: type | None = None,
) -> T | Callable[[T], T]:
    """
    Mark a class as a persistable entity.

    Args:
        kind: The native entity kind (defaults to the class name)
        builder: Builder type used to construct instances

    Usage:
        @entity(kind="people")
        class Person:
            id: Annotated[int, Identifier()] = None
            name: str = ""

    Returns:
        The class unchanged, apart from its mapping options

    """

    def decorate(target: T) -> T:
        options = EntityOptions(kind=kind or target.__name__, builder=builder)
        setattr(target, ENTITY_OPTIONS_ATTR, options)
        return target

    if cls is not None:
        return decorate(cls)
    return decorate


@overload
def embeddable(cls: T, /) -> T: ...


@overload
def embeddable(*, builder: type | None = None) -> Callable[[T], T]: ...


def embeddable(cls: T | None = None, /, *, builder: type | None = None) -> T | Callable[[T], T]:
    """Mark a class as embeddable, usable in Embedded fields and as a property value."""

    def decorate(target: T) -> T:
        setattr(target, EMBEDDABLE_OPTIONS_ATTR, EmbeddableOptions(builder=builder))
        return target

    if cls is not None:
        return decorate(cls)
    return decorate


def entity_options(cls: type) -> EntityOptions | None:
    """Return options declared on ``cls`` itself (not inherited)."""
    return vars(cls).get(ENTITY_OPTIONS_ATTR)


def embeddable_options(cls: type) -> EmbeddableOptions | None:
    return vars(cls).get(EMBEDDABLE_OPTIONS_ATTR)


def is_embeddable(cls: Any) -> bool:
    return isinstance(cls, type) and EMBEDDABLE_OPTIONS_ATTR in vars(cls)

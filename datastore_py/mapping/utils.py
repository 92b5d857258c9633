"""Helpers built on the marshaller and unmarshaller."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from datastore_py.exceptions import EntityManagerError
from datastore_py.mapping.marshaller import Intent, marshal
from datastore_py.mapping.metadata import EntityMetadata, IdentifierType
from datastore_py.mapping.registry import MetadataRegistry, metadata_registry
from datastore_py.mapping.unmarshaller import unmarshal
from datastore_py.native.entity import Entity
from datastore_py.native.types import Value

T = TypeVar("T")


def to_entities(
    native_entities: Iterable[Entity | None],
    model: type[T],
    registry: MetadataRegistry | None = None,
) -> list[T | None]:
    """
    Unmarshal a batch of native entities into model instances.

    None entries (missing lookups) stay None in the result.

    Args:
        native_entities: The native entities
        model: The model class
        registry: Registry used to look up metadata

    Returns:
        Instances in input order

    """
    metadata = (registry or metadata_registry).describe(model)
    return [unmarshal(native, metadata) for native in native_entities]


def to_native_entities(
    instances: Iterable[Any],
    intent: Intent = Intent.UPSERT,
    registry: MetadataRegistry | None = None,
) -> list[Entity]:
    """Marshal a batch of model instances, which may be of different types."""
    registry = registry or metadata_registry
    return [marshal(instance, intent=intent, registry=registry) for instance in instances]


def increment_version(native_entity: Entity, metadata: EntityMetadata) -> Entity:
    """
    Return a copy of ``native_entity`` with its version property incremented.

    Raises:
        EntityManagerError: If the entity type has no version field or the
            entity holds no numeric version

    """
    version = metadata.version
    if version is None:
        raise EntityManagerError(
            f"Class {metadata.entity_type.__qualname__} has no Version field"
        )
    name = version.mapped_name
    try:
        current = native_entity.get_long(name)
    except (KeyError, TypeError) as e:
        raise EntityManagerError(f"Cannot increment version {name}: {e}") from e
    value = Value.long(current + 1).with_exclude_from_indexes(
        native_entity.get_value(name).exclude_from_indexes
    )
    return Entity.new_builder_from(native_entity).set(name, value).build()


def validate_deferred_id_allocation(
    instance: Any, registry: MetadataRegistry | None = None
) -> None:
    """
    Check that the store can allocate an id for ``instance`` later.

    Raises:
        EntityManagerError: If the identifier is a string, or is not
            autogenerated

    """
    identifier = (registry or metadata_registry).describe(type(instance)).identifier
    if identifier.data_type is IdentifierType.STRING:
        raise EntityManagerError(
            f"Deferred id allocation is not applicable for {type(instance).__qualname__}: "
            f"identifier {identifier.field_name} is a string"
        )
    if not identifier.autogenerated:
        raise EntityManagerError(
            f"Deferred id allocation is not applicable for {type(instance).__qualname__}: "
            f"identifier {identifier.field_name} is not autogenerated"
        )

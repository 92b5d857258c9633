"""Unmarshalling of native entities into model instances."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from datastore_py.exceptions import EntityManagerError, MappingError
from datastore_py.mapping.keys import DatastoreKey
from datastore_py.mapping.metadata import (
    EmbeddedMetadata,
    EntityMetadata,
    IdentifierType,
    PropertyMetadata,
)
from datastore_py.mapping.models import StorageStrategy
from datastore_py.native.entity import Entity
from datastore_py.native.types import ValueType

if TYPE_CHECKING:
    from datastore_py.mapping.registry import MetadataRegistry


def unmarshal_fields(
    properties: tuple[PropertyMetadata, ...],
    embedded: tuple[EmbeddedMetadata, ...],
    source: Entity,
    target: Any,
    storage: StorageStrategy | None = None,
) -> None:
    """
    Populate ``target`` from the properties of ``source``.

    Properties missing from ``source`` leave their field untouched.
    ``target`` is an instance or, for builder-style types, the builder.
    ``storage`` is the strategy inherited from the top-level embedded field;
    at the top level each embedded field uses its own.
    """
    for prop in properties:
        if not source.contains(prop.mapped_name):
            continue
        prop.writer(target, prop.converter.to_host(source.get_value(prop.mapped_name)))

    for emb in embedded:
        strategy = storage or emb.storage
        if strategy is StorageStrategy.EXPLODED:
            emb.writer(target, _build_embedded(emb, source, strategy))
            continue
        if not source.contains(emb.mapped_name):
            continue
        value = source.get_value(emb.mapped_name)
        if value.is_null:
            emb.writer(target, None)
            continue
        if value.type is not ValueType.ENTITY:
            raise MappingError(
                f"Expecting ENTITY for embedded field {emb.field_name}, "
                f"but found {value.type.name}"
            )
        emb.writer(target, _build_embedded(emb, value.get(), strategy))


def _build_embedded(emb: EmbeddedMetadata, source: Entity, storage: StorageStrategy) -> Any:
    constructor = emb.constructor
    nested = constructor.new_instance()
    unmarshal_fields(emb.properties, emb.embedded, source, nested, storage)
    return constructor.finish(nested)


class Unmarshaller:
    """
    Converts one native entity to a model instance.

    The instance (or its builder) is created first, then the identity
    fields are taken from the entity key, then properties and embedded
    fields are written. Builder-style types are finished last, so the
    builder never escapes.
    """

    __slots__ = ("_entity", "_metadata")

    def __init__(self, native_entity: Entity, metadata: EntityMetadata):
        self._entity = native_entity
        self._metadata = metadata

    def unmarshal(self) -> Any:
        metadata = self._metadata
        try:
            instance = metadata.constructor.new_instance()
            self._unmarshal_key(instance)
            unmarshal_fields(metadata.properties, metadata.embedded, self._entity, instance)
            return metadata.constructor.finish(instance)
        except EntityManagerError:
            raise
        except Exception as e:
            raise EntityManagerError(
                f"Failed to unmarshal {metadata.entity_type.__qualname__}: {e}"
            ) from e

    def _unmarshal_key(self, instance: Any) -> None:
        metadata = self._metadata
        key = self._entity.key
        if key is None:
            raise MappingError("Native entity has no key")

        raw = key.name_or_id
        if raw is not None:
            identifier = metadata.identifier
            expected = int if identifier.data_type is IdentifierType.LONG else str
            if not isinstance(raw, expected):
                raise MappingError(
                    f"Identifier {identifier.field_name} expects {expected.__name__}, "
                    f"but the key holds {type(raw).__name__}"
                )
            identifier.write_raw(instance, raw)

        if metadata.key is not None:
            metadata.key.writer(instance, DatastoreKey(key))
        if metadata.parent_key is not None and key.parent is not None:
            metadata.parent_key.writer(instance, DatastoreKey(key.parent))


def unmarshal(
    native_entity: Entity | None,
    model: type | EntityMetadata,
    *,
    registry: MetadataRegistry | None = None,
) -> Any:
    """
    Unmarshal a native entity into an instance of ``model``.

    Args:
        native_entity: The native entity, or None
        model: The model class, or its metadata
        registry: Registry used to look up metadata (the process-wide one
            by default)

    Returns:
        The populated instance, or None when ``native_entity`` is None

    Raises:
        EntityManagerError: If the entity cannot be unmarshalled

    """
    if native_entity is None:
        return None
    if isinstance(model, EntityMetadata):
        metadata = model
    else:
        metadata = _registry(registry).describe(model)
    return Unmarshaller(native_entity, metadata).unmarshal()


def _registry(registry: MetadataRegistry | None) -> MetadataRegistry:
    if registry is not None:
        return registry
    from datastore_py.mapping.registry import metadata_registry

    return metadata_registry

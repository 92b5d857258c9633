"""Marshalling of model instances into native entities."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from datastore_py.exceptions import EntityManagerError, MappingError
from datastore_py.mapping.metadata import (
    EmbeddedMetadata,
    EntityMetadata,
    IdentifierType,
    PropertyMetadata,
)
from datastore_py.mapping.models import StorageStrategy
from datastore_py.native.entity import Entity, EntityBuilder, Key
from datastore_py.native.types import Value

if TYPE_CHECKING:
    from datastore_py.mapping.registry import MetadataRegistry


class Intent(Enum):
    """Why an entity is being marshalled."""

    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"


def marshal_property(prop: PropertyMetadata, value: Any, builder: EntityBuilder) -> None:
    """Convert one host value and set it, plus its secondary index, on ``builder``."""
    if value is None and prop.optional:
        return
    native = prop.converter.to_native(value)
    # LIST values keep the store's default indexing
    if native.type.supports_index_exclusion:
        native = native.with_exclude_from_indexes(not prop.indexed)
    builder.set(prop.mapped_name, native)
    if prop.secondary_indexer is not None:
        builder.set(prop.secondary_index_name, prop.secondary_indexer.index(native))


def marshal_fields(
    properties: tuple[PropertyMetadata, ...],
    embedded: tuple[EmbeddedMetadata, ...],
    source: Any,
    builder: EntityBuilder,
    *,
    version: PropertyMetadata | None = None,
    intent: Intent = Intent.UPSERT,
    storage: StorageStrategy | None = None,
) -> None:
    """
    Marshal properties and embedded fields of ``source`` into ``builder``.

    ``source`` may be None for an absent EXPLODED object; its properties are
    then marshalled as None.

    ``storage`` is the strategy of the top-level embedded field being
    walked; it applies to every embedded field below it. At the top level
    (None) each embedded field uses its own strategy.
    """
    for prop in properties:
        if prop is version and intent is Intent.INSERT:
            value: Any = 1
        else:
            value = prop.reader(source) if source is not None else None
        marshal_property(prop, value, builder)

    for emb in embedded:
        nested = emb.reader(source) if source is not None else None
        strategy = storage or emb.storage
        if strategy is StorageStrategy.EXPLODED:
            marshal_fields(emb.properties, emb.embedded, nested, builder, storage=strategy)
            continue
        if nested is None:
            if not emb.optional:
                builder.set(emb.mapped_name, Value.null())
            continue
        sub_builder = Entity.new_builder()
        marshal_fields(emb.properties, emb.embedded, nested, sub_builder, storage=strategy)
        value = Value.entity(sub_builder.build()).with_exclude_from_indexes(not emb.indexed)
        builder.set(emb.mapped_name, value)


class Marshaller:
    """
    Converts one model instance to a native entity.

    A Marshaller is created per call and holds no state beyond the walk.
    Failures of any kind surface as a single :class:`EntityManagerError`;
    nothing is returned unless the whole entity was produced.
    """

    __slots__ = ("_instance", "_metadata", "_intent")

    def __init__(self, instance: Any, metadata: EntityMetadata, intent: Intent = Intent.UPSERT):
        self._instance = instance
        self._metadata = metadata
        self._intent = intent

    def marshal(self) -> Entity:
        try:
            builder = Entity.new_builder(self._key())
            marshal_fields(
                self._metadata.properties,
                self._metadata.embedded,
                self._instance,
                builder,
                version=self._metadata.version,
                intent=self._intent,
            )
            return builder.build()
        except EntityManagerError:
            raise
        except Exception as e:
            raise EntityManagerError(f"Failed to marshal {self._describe()}: {e}") from e

    def marshal_key(self) -> Key:
        try:
            return self._key()
        except EntityManagerError:
            raise
        except Exception as e:
            raise EntityManagerError(f"Failed to marshal key of {self._describe()}: {e}") from e

    def _key(self) -> Key:
        metadata = self._metadata
        identifier = metadata.identifier
        parent = None
        if metadata.parent_key is not None:
            parent_key = metadata.parent_key.reader(self._instance)
            if parent_key is not None:
                parent = parent_key.native_key()

        id_value = identifier.read_raw(self._instance)
        if identifier.data_type is IdentifierType.LONG:
            if id_value is not None and (
                isinstance(id_value, bool) or not isinstance(id_value, int)
            ):
                raise MappingError(f"Identifier must be int, found {type(id_value).__name__}")
            if id_value == 0:
                id_value = None
        elif id_value is not None and not isinstance(id_value, str):
            raise MappingError(f"Identifier must be str, found {type(id_value).__name__}")

        if id_value is None or id_value == "":
            if not identifier.autogenerated or identifier.data_type is IdentifierType.STRING:
                raise EntityManagerError(
                    f"Identifier {identifier.field_name} of {self._describe()} is required"
                )
            if self._intent is Intent.UPDATE:
                raise EntityManagerError(
                    f"Cannot update {self._describe()} without an identifier"
                )
            return Key(metadata.kind, parent=parent)
        return Key.of(metadata.kind, id_value, parent=parent)

    def _describe(self) -> str:
        return self._metadata.entity_type.__qualname__


def marshal(
    instance: Any,
    metadata: EntityMetadata | None = None,
    *,
    intent: Intent = Intent.UPSERT,
    registry: MetadataRegistry | None = None,
) -> Entity:
    """
    Marshal a model instance into a native entity.

    Args:
        instance: The model instance
        metadata: Metadata of the instance's type (looked up when omitted)
        intent: INSERT, UPDATE or UPSERT
        registry: Registry used to look up metadata (the process-wide one
            by default)

    Returns:
        The native entity

    Raises:
        EntityManagerError: If the instance cannot be marshalled

    """
    if metadata is None:
        metadata = _registry(registry).describe(type(instance))
    return Marshaller(instance, metadata, intent).marshal()


def marshal_key(
    instance: Any,
    metadata: EntityMetadata | None = None,
    *,
    registry: MetadataRegistry | None = None,
) -> Key:
    """Build only the native key of a model instance."""
    if metadata is None:
        metadata = _registry(registry).describe(type(instance))
    return Marshaller(instance, metadata).marshal_key()


def _registry(registry: MetadataRegistry | None) -> MetadataRegistry:
    if registry is not None:
        return registry
    from datastore_py.mapping.registry import metadata_registry

    return metadata_registry

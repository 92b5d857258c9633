"""Structural metadata describing how a model type maps to native entities.

Instances are built once per type by the introspector and are immutable
afterwards; they are shared freely across threads and conversions.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from datastore_py.mapping.models import StorageStrategy

if TYPE_CHECKING:
    from datastore_py.mapping.converters import Converter
    from datastore_py.mapping.indexers import Indexer

# Read a field from an instance / write a field onto an instance or builder
Reader = Callable[[Any], Any]
Writer = Callable[[Any, Any], Any]


class ConstructionStrategy(Enum):
    DIRECT = "direct"  # No-argument constructor, then writers
    BUILDER = "builder"  # Builder object, writers on the builder, then build()


class IdentifierType(Enum):
    LONG = "long"
    STRING = "string"


@dataclass(frozen=True, slots=True)
class ConstructorMetadata:
    """
    How to obtain an instance of a model or embeddable type.

    Attributes:
        strategy: DIRECT or BUILDER
        target_type: The model type finally produced
        constructor: No-argument callable returning the instance (DIRECT)
            or the intermediate builder (BUILDER)
        build: Turns a populated builder into the final instance
        builder_type: The intermediate builder type (BUILDER only)

    """

    strategy: ConstructionStrategy
    target_type: type
    constructor: Callable[[], Any]
    build: Callable[[Any], Any] | None = None
    builder_type: type | None = None

    @property
    def is_builder(self) -> bool:
        return self.strategy is ConstructionStrategy.BUILDER

    def new_instance(self) -> Any:
        """Create the instance, or the builder for builder-style types."""
        return self.constructor()

    def finish(self, instance: Any) -> Any:
        """Run the build step for builder-style types."""
        if self.build is not None:
            return self.build(instance)
        return instance


@dataclass(frozen=True, slots=True)
class PropertyMetadata:
    """
    One persistable field.

    Attributes:
        field_name: The attribute name on the model
        declared_type: The declared host type (Annotated stripped)
        mapped_name: The stored property name
        converter: Converter resolved for the declared type
        reader: Reads the host value from an instance
        writer: Writes the host value onto an instance or builder
        indexed: Whether the stored value is indexed
        optional: Whether a None value is omitted instead of stored as NULL
        explicit: Whether the field carried a declaration
        secondary_indexer: Optional indexer for a derived index value
        secondary_index_name: Stored name of the derived index value

    """

    field_name: str
    declared_type: Any
    mapped_name: str
    converter: Converter
    reader: Reader
    writer: Writer
    indexed: bool = True
    optional: bool = False
    explicit: bool = False
    secondary_indexer: Indexer | None = None
    secondary_index_name: str | None = None


@dataclass(frozen=True, slots=True)
class IdentifierMetadata:
    """
    The identity field.

    Attributes:
        field_name: The attribute name on the model
        data_type: LONG or STRING
        autogenerated: Whether missing numeric ids are allocated by the store
        reader: Reads the (possibly wrapped) id from an instance
        writer: Writes the (possibly wrapped) id
        id_class: Wrapper type exposing the raw id, if any
        id_class_constructor: Builds a wrapper from the raw id
        id_class_reader: Extracts the raw id from a wrapper

    """

    field_name: str
    data_type: IdentifierType
    autogenerated: bool
    reader: Reader
    writer: Writer
    id_class: type | None = None
    id_class_constructor: Callable[[Any], Any] | None = None
    id_class_reader: Reader | None = None

    def read_raw(self, instance: Any) -> str | int | None:
        """Read the raw id, unwrapping it from its wrapper type."""
        value = self.reader(instance)
        if value is not None and self.id_class_reader is not None:
            value = self.id_class_reader(value)
        return value

    def write_raw(self, target: Any, raw: str | int) -> None:
        """Write a raw id, wrapping it first when the field uses a wrapper."""
        value = self.id_class_constructor(raw) if self.id_class_constructor is not None else raw
        self.writer(target, value)


@dataclass(frozen=True, slots=True)
class KeyMetadata:
    """The field receiving the full key."""

    field_name: str
    reader: Reader
    writer: Writer


@dataclass(frozen=True, slots=True)
class ParentKeyMetadata:
    """The field holding the parent key."""

    field_name: str
    reader: Reader
    writer: Writer


@dataclass(frozen=True, slots=True)
class EmbeddableMetadata:
    """Fields and construction of an embeddable type."""

    embeddable_type: type
    constructor: ConstructorMetadata
    properties: tuple[PropertyMetadata, ...] = ()
    embedded: tuple[EmbeddedMetadata, ...] = ()


@dataclass(frozen=True, slots=True)
class EmbeddedMetadata:
    """
    A field holding an embedded object.

    Attributes:
        field_name: The attribute name on the owner
        mapped_name: Stored name of the nested value (IMPLODED)
        storage: EXPLODED or IMPLODED
        metadata: Metadata of the embedded type
        reader: Reads the embedded object from the owner
        writer: Writes the embedded object onto the owner or its builder
        indexed: Whether the nested value is indexed (IMPLODED)
        optional: Whether a None object is omitted (IMPLODED)

    """

    field_name: str
    mapped_name: str
    storage: StorageStrategy
    metadata: EmbeddableMetadata
    reader: Reader
    writer: Writer
    indexed: bool = True
    optional: bool = False

    @property
    def constructor(self) -> ConstructorMetadata:
        return self.metadata.constructor

    @property
    def properties(self) -> tuple[PropertyMetadata, ...]:
        return self.metadata.properties

    @property
    def embedded(self) -> tuple[EmbeddedMetadata, ...]:
        return self.metadata.embedded


@dataclass(frozen=True, slots=True)
class EntityMetadata:
    """
    Complete mapping of an entity type.

    Attributes:
        entity_type: The model class
        kind: Native entity kind
        constructor: How instances are created
        identifier: The identity field
        key: Optional full-key field
        parent_key: Optional parent-key field
        version: Optional version property (also listed in ``properties``)
        properties: Properties in introspection order
        embedded: Embedded fields in introspection order

    """

    entity_type: type
    kind: str
    constructor: ConstructorMetadata
    identifier: IdentifierMetadata
    key: KeyMetadata | None = None
    parent_key: ParentKeyMetadata | None = None
    version: PropertyMetadata | None = None
    properties: tuple[PropertyMetadata, ...] = ()
    embedded: tuple[EmbeddedMetadata, ...] = ()
    _by_field: dict[str, PropertyMetadata] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._by_field.update((p.field_name, p) for p in self.properties)

    def get_property(self, field_name: str) -> PropertyMetadata | None:
        """Look up a top-level property by field name."""
        return self._by_field.get(field_name)

    def mapped_names(self) -> list[str]:
        """All stored names this entity may produce, flattening EXPLODED fields."""
        return collect_mapped_names(self.properties, self.embedded)


def collect_mapped_names(
    properties: tuple[PropertyMetadata, ...],
    embedded: tuple[EmbeddedMetadata, ...],
    storage: StorageStrategy | None = None,
) -> list[str]:
    """Stored names in one scope, in introspection order."""
    names: list[str] = []
    for prop in properties:
        names.append(prop.mapped_name)
        if prop.secondary_index_name is not None:
            names.append(prop.secondary_index_name)
    for emb in embedded:
        if (storage or emb.storage) is StorageStrategy.EXPLODED:
            names.extend(
                collect_mapped_names(emb.properties, emb.embedded, StorageStrategy.EXPLODED)
            )
        else:
            names.append(emb.mapped_name)
    return names

"""
Object mapping between model classes and native entities.

This module describes model classes once (their identity, properties,
embedded objects and construction) and uses that description to convert
instances to native entities and back.

Usage:
    from datastore_py.mapping import (
        # Declarations
        entity,
        embeddable,
        Identifier,
        Property,
        Embedded,
        EXPLODED,
        IMPLODED,

        # Conversion
        marshal,
        unmarshal,

        # Registry
        metadata_registry,
    )

Example:
    from typing import Annotated
    from datastore_py.mapping import Embedded, Identifier, IMPLODED, entity, embeddable

    @embeddable
    class Address:
        city: str = ""
        zip_code: str = ""

    @entity(kind="people")
    class Person:
        id: Annotated[int, Identifier()] = 0
        name: str = ""
        address: Annotated[Address, Embedded(storage=IMPLODED)] = None

    native = marshal(person)
    person = unmarshal(native, Person)
"""

from datastore_py.mapping.containers import ListConverter, MapConverter, SetConverter
from datastore_py.mapping.converters import (
    BooleanConverter,
    BytesConverter,
    Converter,
    ConverterRegistry,
    DateConverter,
    DateTimeConverter,
    DecimalConverter,
    EnumConverter,
    FloatConverter,
    IntegerConverter,
    KeyConverter,
    StringConverter,
    UUIDConverter,
    default_converters,
)
from datastore_py.mapping.embedded import EmbeddedObjectConverter
from datastore_py.mapping.indexers import (
    Indexer,
    LowerCaseStringIndexer,
    LowerCaseStringListIndexer,
    UpperCaseStringIndexer,
)
from datastore_py.mapping.introspection import Introspector
from datastore_py.mapping.keys import DatastoreKey
from datastore_py.mapping.marshaller import Intent, Marshaller, marshal, marshal_key
from datastore_py.mapping.metadata import (
    ConstructionStrategy,
    ConstructorMetadata,
    EmbeddableMetadata,
    EmbeddedMetadata,
    EntityMetadata,
    IdentifierMetadata,
    IdentifierType,
    KeyMetadata,
    ParentKeyMetadata,
    PropertyMetadata,
)
from datastore_py.mapping.models import (
    EXPLODED,
    IMPLODED,
    Embedded,
    EntityKey,
    Identifier,
    Ignore,
    ParentKey,
    Property,
    StorageStrategy,
    Version,
    embeddable,
    entity,
)
from datastore_py.mapping.registry import (
    MetadataRegistry,
    describe,
    metadata_registry,
    register_entity,
)
from datastore_py.mapping.unmarshaller import Unmarshaller, unmarshal
from datastore_py.mapping.utils import (
    increment_version,
    to_entities,
    to_native_entities,
    validate_deferred_id_allocation,
)

__all__ = [
    # Declarations
    "entity",
    "embeddable",
    "Identifier",
    "EntityKey",
    "ParentKey",
    "Property",
    "Embedded",
    "Version",
    "Ignore",
    "StorageStrategy",
    "EXPLODED",
    "IMPLODED",
    "DatastoreKey",
    # Converters
    "Converter",
    "ConverterRegistry",
    "default_converters",
    "StringConverter",
    "IntegerConverter",
    "BooleanConverter",
    "FloatConverter",
    "BytesConverter",
    "DateTimeConverter",
    "DateConverter",
    "DecimalConverter",
    "UUIDConverter",
    "EnumConverter",
    "KeyConverter",
    "ListConverter",
    "SetConverter",
    "MapConverter",
    "EmbeddedObjectConverter",
    # Secondary indexes
    "Indexer",
    "LowerCaseStringIndexer",
    "UpperCaseStringIndexer",
    "LowerCaseStringListIndexer",
    # Metadata
    "Introspector",
    "ConstructionStrategy",
    "ConstructorMetadata",
    "EntityMetadata",
    "EmbeddableMetadata",
    "EmbeddedMetadata",
    "IdentifierMetadata",
    "IdentifierType",
    "KeyMetadata",
    "ParentKeyMetadata",
    "PropertyMetadata",
    # Registry
    "MetadataRegistry",
    "metadata_registry",
    "describe",
    "register_entity",
    # Conversion
    "Intent",
    "Marshaller",
    "Unmarshaller",
    "marshal",
    "marshal_key",
    "unmarshal",
    "to_entities",
    "to_native_entities",
    "increment_version",
    "validate_deferred_id_allocation",
]

__version__ = "0.1.0"

from datastore_py.config import MapperConfig
from datastore_py.exceptions import (
    DatastorePyError,
    EntityManagerError,
    MappingError,
    MetadataError,
    NoAccessorMethodError,
    UnsupportedTypeError,
)
from datastore_py.mapping import (
    EXPLODED,
    IMPLODED,
    DatastoreKey,
    Embedded,
    EntityKey,
    Identifier,
    Ignore,
    Intent,
    MetadataRegistry,
    ParentKey,
    Property,
    Version,
    describe,
    embeddable,
    entity,
    marshal,
    marshal_key,
    metadata_registry,
    unmarshal,
)
from datastore_py.native import Entity, Key, Value, ValueType

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
    "EXPLODED",
    "IMPLODED",
    "DatastoreKey",
    # Conversion
    "Intent",
    "marshal",
    "marshal_key",
    "unmarshal",
    # Metadata
    "MetadataRegistry",
    "metadata_registry",
    "describe",
    # Native model
    "Entity",
    "Key",
    "Value",
    "ValueType",
    # Configuration
    "MapperConfig",
    # Exceptions
    "DatastorePyError",
    "EntityManagerError",
    "MetadataError",
    "NoAccessorMethodError",
    "MappingError",
    "UnsupportedTypeError",
    # Version
    "__version__",
]

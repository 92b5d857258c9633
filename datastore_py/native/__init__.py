"""Native value and entity model consumed by the mapping engine."""

from datastore_py.native.entity import Entity, EntityBuilder, Key
from datastore_py.native.types import LONG_MAX, LONG_MIN, Timestamp, Value, ValueType

__all__ = [
    "Entity",
    "EntityBuilder",
    "Key",
    "Timestamp",
    "Value",
    "ValueType",
    "LONG_MIN",
    "LONG_MAX",
]

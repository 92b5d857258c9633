"""Native value model of the document store.

Every stored property is a :class:`Value`: a tagged union over the kinds
listed in :class:`ValueType`. Values are immutable; the ``exclude_from_indexes``
flag is set by building a modified copy.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datastore_py.native.entity import Entity, Key

LONG_MIN = -(2**63)
LONG_MAX = 2**63 - 1

_MICROS_PER_SECOND = 1_000_000


class ValueType(Enum):
    """Kinds of native values."""

    NULL = "null"
    STRING = "string"
    LONG = "long"
    BOOLEAN = "boolean"
    DOUBLE = "double"
    BLOB = "blob"
    TIMESTAMP = "timestamp"
    KEY = "key"
    LIST = "list"
    ENTITY = "entity"

    @property
    def supports_index_exclusion(self) -> bool:
        """Whether values of this kind may be excluded from indexes.

        List values always keep the store's default indexing.
        """
        return self is not ValueType.LIST


@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """
    An instant with microsecond resolution.

    Attributes:
        microseconds: Microseconds since the Unix epoch (may be negative)

    """

    microseconds: int

    @classmethod
    def from_epoch(cls, seconds: int, nanos: int = 0) -> Timestamp:
        """
        Build a timestamp from epoch seconds plus nanosecond-of-second.

        Nanoseconds beyond microsecond resolution are truncated, not rounded.
        """
        if not 0 <= nanos < 1_000_000_000:
            raise ValueError(f"nanos must be within [0, 999999999], got {nanos}")
        return cls(seconds * _MICROS_PER_SECOND + nanos // 1000)

    @property
    def seconds(self) -> int:
        return self.microseconds // _MICROS_PER_SECOND

    @property
    def nanos(self) -> int:
        """Nanosecond-of-second; always a whole number of microseconds."""
        return (self.microseconds % _MICROS_PER_SECOND) * 1000


@dataclass(frozen=True, slots=True)
class Value:
    """
    A single native value.

    Use the classmethod builders rather than the constructor; they check
    that the payload matches the kind.

    Attributes:
        type: The value kind
        value: The payload (``None`` for NULL, a tuple of Values for LIST,
            an Entity for ENTITY)
        exclude_from_indexes: Whether the store should skip indexing it

    """

    type: ValueType
    value: Any = None
    exclude_from_indexes: bool = False

    def get(self) -> Any:
        """Return the payload."""
        return self.value

    @property
    def is_null(self) -> bool:
        return self.type is ValueType.NULL

    def with_exclude_from_indexes(self, exclude: bool) -> Value:
        """Return a copy with the index exclusion flag set."""
        if exclude and not self.type.supports_index_exclusion:
            raise ValueError(f"{self.type.name} values cannot be excluded from indexes")
        if exclude == self.exclude_from_indexes:
            return self
        return replace(self, exclude_from_indexes=exclude)

    # --- Builders ---

    @classmethod
    def null(cls) -> Value:
        return cls(ValueType.NULL)

    @classmethod
    def string(cls, value: str) -> Value:
        if not isinstance(value, str):
            raise TypeError(f"Expecting str, but found {type(value).__name__}")
        return cls(ValueType.STRING, value)

    @classmethod
    def long(cls, value: int) -> Value:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expecting int, but found {type(value).__name__}")
        if not LONG_MIN <= value <= LONG_MAX:
            raise ValueError(f"Value {value} is out of range for a 64-bit long")
        return cls(ValueType.LONG, value)

    @classmethod
    def boolean(cls, value: bool) -> Value:
        if not isinstance(value, bool):
            raise TypeError(f"Expecting bool, but found {type(value).__name__}")
        return cls(ValueType.BOOLEAN, value)

    @classmethod
    def double(cls, value: float) -> Value:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expecting float, but found {type(value).__name__}")
        return cls(ValueType.DOUBLE, float(value))

    @classmethod
    def blob(cls, value: bytes | bytearray | memoryview) -> Value:
        # Always an independent, immutable copy of the input
        return cls(ValueType.BLOB, bytes(value))

    @classmethod
    def timestamp(cls, value: Timestamp) -> Value:
        if not isinstance(value, Timestamp):
            raise TypeError(f"Expecting Timestamp, but found {type(value).__name__}")
        return cls(ValueType.TIMESTAMP, value)

    @classmethod
    def key(cls, value: Key) -> Value:
        from datastore_py.native.entity import Key

        if not isinstance(value, Key):
            raise TypeError(f"Expecting Key, but found {type(value).__name__}")
        return cls(ValueType.KEY, value)

    @classmethod
    def list_of(cls, values: Iterable[Value]) -> Value:
        items = tuple(values)
        for item in items:
            if not isinstance(item, Value):
                raise TypeError(f"List elements must be Values, found {type(item).__name__}")
        return cls(ValueType.LIST, items)

    @classmethod
    def entity(cls, value: Entity) -> Value:
        from datastore_py.native.entity import Entity

        if not isinstance(value, Entity):
            raise TypeError(f"Expecting Entity, but found {type(value).__name__}")
        return cls(ValueType.ENTITY, value)

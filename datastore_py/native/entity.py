"""Native keys and entities."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from datastore_py.native.types import Value, ValueType


@dataclass(frozen=True, slots=True)
class Key:
    """
    Path-qualified identity of a native entity.

    A key is complete once it carries either a name or a numeric id; an
    incomplete key asks the store to allocate an id.

    Attributes:
        kind: The entity kind
        name: String identity, mutually exclusive with ``id``
        id: Numeric identity, mutually exclusive with ``name``
        parent: The parent key, for entities that are not roots
        namespace: Optional namespace

    """

    kind: str
    name: str | None = None
    id: int | None = None
    parent: Key | None = None
    namespace: str | None = None

    def __post_init__(self) -> None:
        if self.name is not None and self.id is not None:
            raise ValueError("A key has either a name or an id, not both")

    @classmethod
    def of(
        cls,
        kind: str,
        name_or_id: str | int | None = None,
        *,
        parent: Key | None = None,
        namespace: str | None = None,
    ) -> Key:
        """Create a key from a name or an id, whichever is given."""
        if isinstance(name_or_id, str):
            return cls(kind, name=name_or_id, parent=parent, namespace=namespace)
        return cls(kind, id=name_or_id, parent=parent, namespace=namespace)

    @property
    def name_or_id(self) -> str | int | None:
        return self.name if self.name is not None else self.id

    @property
    def is_complete(self) -> bool:
        return self.name_or_id is not None

    def ancestors(self) -> list[Key]:
        """Return the parent chain, nearest first."""
        chain: list[Key] = []
        parent = self.parent
        while parent is not None:
            chain.append(parent)
            parent = parent.parent
        return chain


class Entity:
    """
    A native record: stored names mapped to Values, plus an optional key.

    Entities nested inside an ENTITY value carry no key.

    Example:
        entity = (
            Entity.new_builder(Key.of("Person", 42))
            .set("name", Value.string("Ada"))
            .build()
        )
        entity.contains("name")  # True

    """

    __slots__ = ("_key", "_properties")

    def __init__(self, key: Key | None = None, properties: Mapping[str, Value] | None = None):
        self._key = key
        self._properties: dict[str, Value] = dict(properties or {})

    @property
    def key(self) -> Key | None:
        return self._key

    @property
    def properties(self) -> Mapping[str, Value]:
        return MappingProxyType(self._properties)

    def names(self) -> list[str]:
        """Stored names in insertion order."""
        return list(self._properties)

    def contains(self, name: str) -> bool:
        return name in self._properties

    def get_value(self, name: str) -> Value:
        try:
            return self._properties[name]
        except KeyError:
            raise KeyError(f"No such property: {name}") from None

    def get_long(self, name: str) -> int:
        value = self.get_value(name)
        if value.type is not ValueType.LONG:
            raise TypeError(f"Property {name} is {value.type.name}, not LONG")
        return value.get()

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self._key == other._key and self._properties == other._properties

    def __hash__(self) -> int:
        return hash((self._key, tuple(self._properties.items())))

    def __repr__(self) -> str:
        return f"Entity(key={self._key!r}, properties={self._properties!r})"

    @staticmethod
    def new_builder(key: Key | None = None) -> EntityBuilder:
        return EntityBuilder(key)

    @staticmethod
    def new_builder_from(entity: Entity) -> EntityBuilder:
        """Start a builder pre-populated with a copy of ``entity``."""
        return EntityBuilder(entity.key, entity.properties)


class EntityBuilder:
    """Mutable builder producing an immutable :class:`Entity`."""

    __slots__ = ("_key", "_properties")

    def __init__(self, key: Key | None = None, properties: Mapping[str, Value] | None = None):
        self._key = key
        self._properties: dict[str, Value] = dict(properties or {})

    def set_key(self, key: Key | None) -> EntityBuilder:
        self._key = key
        return self

    def set(self, name: str, value: Value) -> EntityBuilder:
        if not isinstance(value, Value):
            raise TypeError(f"Property {name} must be a Value, found {type(value).__name__}")
        self._properties[name] = value
        return self

    def remove(self, name: str) -> EntityBuilder:
        self._properties.pop(name, None)
        return self

    def contains(self, name: str) -> bool:
        return name in self._properties

    def build(self) -> Entity:
        return Entity(self._key, self._properties)

    def __repr__(self) -> str:
        fields: dict[str, Any] = {"key": self._key, "properties": self._properties}
        return f"EntityBuilder({fields!r})"

"""Collection converters: lists, sets and string-keyed maps."""

from __future__ import annotations

import collections.abc
import inspect
from typing import TYPE_CHECKING, Any

from datastore_py.exceptions import MappingError
from datastore_py.mapping.converters import Converter, expect_kind
from datastore_py.native.entity import Entity
from datastore_py.native.types import Value, ValueType

if TYPE_CHECKING:
    from datastore_py.mapping.converters import ConverterRegistry

_ABSTRACT_SETS = (collections.abc.Set, collections.abc.MutableSet)


class ListConverter(Converter):
    """Sequences of element values, stored as a LIST value in order."""

    __slots__ = ("_registry",)
    native_type = ValueType.LIST

    def __init__(self, registry: ConverterRegistry) -> None:
        self._registry = registry

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        if isinstance(value, (str, bytes)) or not isinstance(value, collections.abc.Iterable):
            raise MappingError(f"Expecting a list, but found {type(value).__name__}")
        return Value.list_of(self._registry.element_to_native(item, "List") for item in value)

    def to_host(self, value: Value) -> list[Any] | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.LIST)
        return [self._registry.element_to_host(item, "List") for item in value.get()]


class SetConverter(Converter):
    """
    Sets, stored as a LIST value in iteration order.

    On read the declared set type is rebuilt: abstract declarations
    (``collections.abc.Set`` and friends) get ``default_set_type``, concrete
    ones are instantiated through their own no-argument constructor.
    """

    __slots__ = ("_registry", "_set_type")
    native_type = ValueType.LIST

    def __init__(
        self,
        registry: ConverterRegistry,
        set_type: type = set,
        default_set_type: type = set,
    ) -> None:
        self._registry = registry
        if set_type in _ABSTRACT_SETS or inspect.isabstract(set_type):
            set_type = default_set_type
        self._set_type = set_type

    @property
    def set_type(self) -> type:
        return self._set_type

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        if not isinstance(value, collections.abc.Set):
            raise MappingError(f"Expecting a set, but found {type(value).__name__}")
        return Value.list_of(self._registry.element_to_native(item, "Set") for item in value)

    def to_host(self, value: Value) -> collections.abc.Set[Any] | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.LIST)
        items = [self._registry.element_to_host(item, "Set") for item in value.get()]
        if issubclass(self._set_type, frozenset):
            return self._set_type(items)
        output = self._set_type()
        for item in items:
            output.add(item)
        return output

    def __repr__(self) -> str:
        return f"SetConverter({self._set_type.__name__})"


class MapConverter(Converter):
    """String-keyed maps, stored as an ENTITY value without a key."""

    __slots__ = ("_registry",)
    native_type = ValueType.ENTITY

    def __init__(self, registry: ConverterRegistry) -> None:
        self._registry = registry

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        if not isinstance(value, collections.abc.Mapping):
            raise MappingError(f"Expecting a map, but found {type(value).__name__}")
        builder = Entity.new_builder()
        for name, item in value.items():
            if not isinstance(name, str):
                raise MappingError(f"Map keys must be str, found {type(name).__name__}")
            builder.set(name, self._registry.element_to_native(item, "Map"))
        return Value.entity(builder.build())

    def to_host(self, value: Value) -> dict[str, Any] | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.ENTITY)
        entity: Entity = value.get()
        return {
            name: self._registry.element_to_host(item, "Map")
            for name, item in entity.properties.items()
        }

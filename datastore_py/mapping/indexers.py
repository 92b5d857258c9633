"""Secondary indexers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from datastore_py.exceptions import MappingError
from datastore_py.native.types import Value, ValueType


class Indexer(ABC):
    """Derives a secondary index value from a property's native value."""

    __slots__ = ()

    @abstractmethod
    def index(self, value: Value) -> Value:
        """Return the value stored under the secondary index name."""


class _StringCaseIndexer(Indexer):
    __slots__ = ()

    def _transform(self, text: str) -> str:
        raise NotImplementedError

    def index(self, value: Value) -> Value:
        if value.is_null:
            return Value.null()
        if value.type is not ValueType.STRING:
            raise MappingError(
                f"{self.__class__.__name__} expects STRING, but found {value.type.name}"
            )
        return Value.string(self._transform(value.get()))


class LowerCaseStringIndexer(_StringCaseIndexer):
    """Indexes a string property in lower case, for case-insensitive lookups."""

    __slots__ = ()

    def _transform(self, text: str) -> str:
        return text.lower()


class UpperCaseStringIndexer(_StringCaseIndexer):
    __slots__ = ()

    def _transform(self, text: str) -> str:
        return text.upper()


class LowerCaseStringListIndexer(Indexer):
    """Lower-cases every string in a LIST value."""

    __slots__ = ()

    def index(self, value: Value) -> Value:
        if value.is_null:
            return Value.null()
        if value.type is not ValueType.LIST:
            raise MappingError(
                f"LowerCaseStringListIndexer expects LIST, but found {value.type.name}"
            )
        items = []
        for item in value.get():
            if item.type is not ValueType.STRING:
                raise MappingError(f"Expecting STRING list elements, but found {item.type.name}")
            items.append(Value.string(item.get().lower()))
        return Value.list_of(items)

"""Converter storing an embeddable object as a nested native entity."""

from __future__ import annotations

from typing import Any

from datastore_py.mapping.converters import Converter, expect_host, expect_kind
from datastore_py.mapping.marshaller import marshal_fields
from datastore_py.mapping.metadata import EmbeddableMetadata
from datastore_py.mapping.unmarshaller import unmarshal_fields
from datastore_py.native.entity import Entity
from datastore_py.native.types import Value, ValueType


class EmbeddedObjectConverter(Converter):
    """
    Converts an embeddable object to a keyless ENTITY value and back.

    Used for plain properties whose declared type is an embeddable class.
    Unlike an IMPLODED Embedded field, the nested value follows the
    property's index and optional settings.

    Example:
        converter = EmbeddedObjectConverter(registry.describe_embeddable(Address))
        value = converter.to_native(Address(city="Paris"))

    """

    __slots__ = ("_metadata",)
    native_type = ValueType.ENTITY

    def __init__(self, metadata: EmbeddableMetadata) -> None:
        self._metadata = metadata

    @property
    def metadata(self) -> EmbeddableMetadata:
        return self._metadata

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, self._metadata.embeddable_type)
        builder = Entity.new_builder()
        marshal_fields(self._metadata.properties, self._metadata.embedded, value, builder)
        return Value.entity(builder.build())

    def to_host(self, value: Value) -> Any:
        if value.is_null:
            return None
        expect_kind(value, ValueType.ENTITY)
        constructor = self._metadata.constructor
        instance = constructor.new_instance()
        unmarshal_fields(self._metadata.properties, self._metadata.embedded, value.get(), instance)
        return constructor.finish(instance)

    def __repr__(self) -> str:
        return f"EmbeddedObjectConverter({self._metadata.embeddable_type.__name__})"

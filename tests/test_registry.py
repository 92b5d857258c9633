"""Tests for the metadata registry."""

from typing import Annotated

import pytest

from datastore_py.config import MapperConfig
from datastore_py.exceptions import EntityManagerError, MetadataError
from datastore_py.mapping import (
    ConverterRegistry,
    FloatConverter,
    Identifier,
    Indexer,
    MetadataRegistry,
    Property,
    describe,
    metadata_registry,
    register_entity,
)


class Person:
    id: Annotated[int, Identifier()] = 0
    name: str = ""


class Temperature(float):
    pass


class Reading:
    id: Annotated[int, Identifier()] = 0
    value: Temperature | None = None


class Unresolvable:
    id: Annotated[int, Identifier()] = 0
    owner: "MissingType" = None


class ExplodingIndexer(Indexer):
    def __init__(self) -> None:
        raise RuntimeError("indexer setup failed")

    def index(self, value):
        return value


class BadIndex:
    id: Annotated[int, Identifier()] = 0
    name: Annotated[str, Property(secondary_index=ExplodingIndexer)] = ""


class TestMetadataRegistry:
    """Tests for MetadataRegistry."""

    def test_describe_caches(self, registry):
        """Test that metadata is built once."""
        assert not registry.is_described(Person)
        metadata = registry.describe(Person)
        assert registry.is_described(Person)
        assert registry.describe(Person) is metadata

    def test_register_returns_class(self, registry):
        """Test eager registration."""
        assert registry.register(Person) is Person
        assert registry.all_entities() == [Person]

    def test_clear(self, registry):
        """Test dropping cached metadata."""
        registry.describe(Person)
        registry.clear()
        assert not registry.is_described(Person)
        assert registry.all_entities() == []

    def test_registries_are_independent(self):
        """Test that registries do not share caches."""
        first = MetadataRegistry()
        second = MetadataRegistry()
        first.describe(Person)
        assert not second.is_described(Person)

    def test_default_settings(self, registry):
        """Test the default configuration."""
        assert registry.config == MapperConfig()
        assert registry.config.secondary_index_prefix == "$"

    def test_custom_converters(self):
        """Test registries with their own converter table."""
        converter = FloatConverter()
        converters = ConverterRegistry()
        converters.register(Temperature, converter)
        registry = MetadataRegistry(converters=converters)
        assert registry.describe(Reading).get_property("value").converter is converter
        assert MetadataRegistry().describe(Reading).get_property("value").converter is not converter

    def test_unresolvable_annotations(self, registry):
        """Test annotations that cannot be evaluated."""
        with pytest.raises(MetadataError, match="Cannot resolve type annotations") as info:
            registry.describe(Unresolvable)
        assert isinstance(info.value.__cause__, NameError)

    def test_unexpected_errors_are_wrapped(self, registry):
        """Test that any build failure surfaces as MetadataError."""
        with pytest.raises(MetadataError, match="Failed to describe") as info:
            registry.describe(BadIndex)
        assert isinstance(info.value.__cause__, RuntimeError)
        assert isinstance(info.value, EntityManagerError)
        assert not registry.is_described(BadIndex)

    def test_debug_logging(self, registry, debug_logs):
        """Test metadata builds and cache hits are logged at debug level."""
        registry.describe(Person)
        registry.describe(Person)
        messages = [record.getMessage() for record in debug_logs.records]
        assert any("Building metadata" in message for message in messages)
        assert any("Described entity" in message for message in messages)
        assert any("cache hit" in message for message in messages)


class TestGlobalRegistry:
    """Tests for the process-wide registry helpers."""

    def test_describe_uses_global_registry(self):
        """Test the module-level describe()."""
        assert describe(Person) is metadata_registry.describe(Person)

    def test_register_entity_decorator(self):
        """Test @register_entity."""

        @register_entity
        class Tag:
            id: Annotated[str, Identifier()] = ""

        assert metadata_registry.is_described(Tag)

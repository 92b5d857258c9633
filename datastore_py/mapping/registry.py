"""Cache of structural metadata, one entry per model type."""

from __future__ import annotations

import logging
from typing import TypeVar

from datastore_py.config import MapperConfig
from datastore_py.exceptions import EntityManagerError, MetadataError
from datastore_py.mapping.converters import ConverterRegistry, default_converters
from datastore_py.mapping.introspection import Introspector
from datastore_py.mapping.metadata import EmbeddableMetadata, EntityMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=type)


class MetadataRegistry:
    """
    Registry of entity and embeddable metadata.

    Metadata is built on first use and cached. Concurrent first calls for
    the same type may each build it; the last one stored wins, and every
    caller gets complete metadata.

    Example:
        registry = MetadataRegistry()
        metadata = registry.describe(Person)
        entity = marshal(person, metadata)

    """

    __slots__ = ("_config", "_converters", "_entities", "_embeddables")

    def __init__(
        self,
        config: MapperConfig | None = None,
        converters: ConverterRegistry | None = None,
    ) -> None:
        self._config = config or MapperConfig()
        self._converters = converters or default_converters
        self._entities: dict[type, EntityMetadata] = {}
        self._embeddables: dict[type, EmbeddableMetadata] = {}

    @property
    def config(self) -> MapperConfig:
        return self._config

    @property
    def converters(self) -> ConverterRegistry:
        return self._converters

    def describe(self, entity_type: type) -> EntityMetadata:
        """
        Get the metadata of an entity type, building it on first use.

        Args:
            entity_type: The entity class

        Returns:
            The cached metadata

        Raises:
            MetadataError: If the class cannot be mapped

        """
        metadata = self._entities.get(entity_type)
        if metadata is not None:
            logger.debug("Metadata cache hit for %s", entity_type.__qualname__)
            return metadata
        metadata = self._build(entity_type, embeddable=False)
        self._entities[entity_type] = metadata
        return metadata

    def describe_embeddable(self, embeddable_type: type) -> EmbeddableMetadata:
        """Get the metadata of an embeddable type, building it on first use."""
        metadata = self._embeddables.get(embeddable_type)
        if metadata is not None:
            return metadata
        metadata = self._build(embeddable_type, embeddable=True)
        self._embeddables[embeddable_type] = metadata
        return metadata

    def register(self, entity_type: T) -> T:
        """
        Describe an entity type eagerly, failing fast on mapping errors.

        Returns:
            The class unchanged

        """
        self.describe(entity_type)
        return entity_type

    def is_described(self, entity_type: type) -> bool:
        return entity_type in self._entities

    def all_entities(self) -> list[type]:
        """Get all described entity types."""
        return list(self._entities)

    def clear(self) -> None:
        """Drop all cached metadata."""
        self._entities.clear()
        self._embeddables.clear()

    def _build(self, cls: type, embeddable: bool) -> EntityMetadata | EmbeddableMetadata:
        logger.debug("Building metadata for %r", cls)
        introspector = Introspector(self._converters, self._config)
        try:
            if embeddable:
                return introspector.introspect_embeddable(cls)
            return introspector.introspect_entity(cls)
        except EntityManagerError:
            raise
        except Exception as e:
            raise MetadataError(f"Failed to describe {cls!r}: {e}") from e


# Global metadata registry instance
metadata_registry = MetadataRegistry()


def describe(entity_type: type) -> EntityMetadata:
    """Describe an entity type with the global registry."""
    return metadata_registry.describe(entity_type)


def register_entity(entity_type: T) -> T:
    """
    Describe an entity type with the global registry at import time.

    Usage:
        @register_entity
        @entity(kind="people")
        class Person:
            ...

    Returns:
        The class unchanged

    """
    return metadata_registry.register(entity_type)

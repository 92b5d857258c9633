"""Shared pytest fixtures for tests."""

import logging

import pytest

from datastore_py.config import MapperConfig
from datastore_py.mapping import MetadataRegistry


@pytest.fixture
def registry() -> MetadataRegistry:
    """A fresh metadata registry with default settings."""
    return MetadataRegistry()


@pytest.fixture
def make_registry():
    """Factory for registries with custom settings."""

    def make(**settings) -> MetadataRegistry:
        return MetadataRegistry(MapperConfig(**settings))

    return make


@pytest.fixture
def debug_logs(caplog):
    """Capture debug records of the mapping engine."""
    caplog.set_level(logging.DEBUG, logger="datastore_py")
    return caplog

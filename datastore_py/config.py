"""Configuration for the mapping engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MapperConfig:
    """Settings shared by every metadata build of one registry."""

    secondary_index_prefix: str = "$"
    default_set_type: type = set
    validate_pydantic: bool = True

"""Custom exceptions for datastore-py."""


class DatastorePyError(Exception):
    """Base exception for datastore-py."""


class EntityManagerError(DatastorePyError):
    """Outward-facing error raised by describe, marshal and unmarshal.

    The original failure, when there is one, is available as ``__cause__``.
    """


class MetadataError(EntityManagerError):
    """A model type cannot be described (bad declaration, unsupported type)."""


class NoAccessorMethodError(MetadataError):
    """An explicitly declared field has no usable reader or writer."""


class MappingError(DatastorePyError):
    """A single value could not be translated to or from its native form."""


class UnsupportedTypeError(MappingError):
    """A field or collection element has no converter."""

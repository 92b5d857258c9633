"""Value converters between host types and native Values."""

from __future__ import annotations

import collections.abc
import types
import typing
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Any, get_args, get_origin
from uuid import UUID

from datastore_py.exceptions import MappingError, UnsupportedTypeError
from datastore_py.mapping.keys import DatastoreKey
from datastore_py.native.types import LONG_MAX, LONG_MIN, Timestamp, Value, ValueType

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MICROSECOND = timedelta(microseconds=1)


def expect_kind(value: Value, *expected: ValueType) -> None:
    """Raise MappingError unless ``value`` is one of the expected kinds."""
    if value.type not in expected:
        names = " or ".join(t.name for t in expected)
        raise MappingError(f"Expecting {names}, but found {value.type.name}")


def expect_host(value: Any, *expected: type) -> None:
    if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
        names = " or ".join(t.__name__ for t in expected)
        raise MappingError(f"Expecting {names}, but found {type(value).__name__}")


class Converter(ABC):
    """
    Codec between one host type and the native value representation.

    ``to_native(None)`` always yields a NULL value and ``to_host`` of a NULL
    value always yields ``None``.

    Attributes:
        native_type: The kind produced for non-null values, when fixed

    """

    __slots__ = ()

    native_type: typing.ClassVar[ValueType | None] = None

    @abstractmethod
    def to_native(self, value: Any) -> Value:
        """Convert a host value to a native Value."""

    @abstractmethod
    def to_host(self, value: Value) -> Any:
        """Convert a native Value to a host value."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


# --- Scalar converters ---


class StringConverter(Converter):
    __slots__ = ()
    native_type = ValueType.STRING

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, str)
        return Value.string(value)

    def to_host(self, value: Value) -> str | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.STRING)
        return value.get()


class IntegerConverter(Converter):
    __slots__ = ()
    native_type = ValueType.LONG

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, int)
        if not LONG_MIN <= value <= LONG_MAX:
            raise MappingError(f"Value {value} is out of range for long type")
        return Value.long(value)

    def to_host(self, value: Value) -> int | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.LONG)
        return value.get()


class BooleanConverter(Converter):
    __slots__ = ()
    native_type = ValueType.BOOLEAN

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, bool)
        return Value.boolean(value)

    def to_host(self, value: Value) -> bool | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.BOOLEAN)
        return value.get()


class FloatConverter(Converter):
    __slots__ = ()
    native_type = ValueType.DOUBLE

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, float, int)
        return Value.double(float(value))

    def to_host(self, value: Value) -> float | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.DOUBLE)
        return value.get()


class BytesConverter(Converter):
    """Binary data; ``bytearray`` fields get a fresh bytearray back."""

    __slots__ = ("_host_type",)
    native_type = ValueType.BLOB

    def __init__(self, host_type: type = bytes) -> None:
        self._host_type = host_type

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, bytes, bytearray, memoryview)
        return Value.blob(value)

    def to_host(self, value: Value) -> bytes | bytearray | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.BLOB)
        return self._host_type(value.get())


class DateTimeConverter(Converter):
    """
    Timestamps, stored with microsecond resolution.

    The zone is not stored. Values read back are aware datetimes in the
    local system zone; naive datetimes are taken to be local time on write.
    """

    __slots__ = ()
    native_type = ValueType.TIMESTAMP

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, datetime)
        if value.tzinfo is None:
            value = value.astimezone()
        delta = value - _EPOCH
        seconds = delta.days * 86400 + delta.seconds
        return Value.timestamp(Timestamp.from_epoch(seconds, delta.microseconds * 1000))

    def to_host(self, value: Value) -> datetime | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.TIMESTAMP)
        timestamp: Timestamp = value.get()
        return (_EPOCH + timestamp.microseconds * _ONE_MICROSECOND).astimezone()


class DateConverter(Converter):
    """Calendar dates as ISO-8601 strings (``YYYY-MM-DD``)."""

    __slots__ = ()
    native_type = ValueType.STRING

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        if isinstance(value, datetime):
            raise MappingError("Expecting date, but found datetime")
        expect_host(value, date)
        return Value.string(value.isoformat())

    def to_host(self, value: Value) -> date | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.STRING)
        try:
            return date.fromisoformat(value.get())
        except ValueError as e:
            raise MappingError(f"Invalid date {value.get()!r}") from e


class DecimalConverter(Converter):
    """
    Decimal numbers.

    Without a scale the exact decimal string is stored. With ``precision``
    and ``scale`` the value is rounded half-up to ``scale`` places and stored
    as its unscaled long, which keeps it sortable in the store.
    """

    __slots__ = ("precision", "scale")

    def __init__(self, precision: int | None = None, scale: int | None = None) -> None:
        if (precision is None) != (scale is None):
            raise ValueError("precision and scale must be given together")
        if precision is not None and scale is not None:
            if not 1 <= precision <= 18:
                raise ValueError(f"precision must be within [1, 18], got {precision}")
            if not 0 <= scale <= precision:
                raise ValueError(f"scale must be within [0, {precision}], got {scale}")
        self.precision = precision
        self.scale = scale

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, Decimal)
        if self.scale is None:
            return Value.string(str(value))
        rounded = value.quantize(Decimal(1).scaleb(-self.scale), rounding=ROUND_HALF_UP)
        if len(rounded.as_tuple().digits) > self.precision:
            raise MappingError(
                f"Value {value} does not fit precision {self.precision}, scale {self.scale}"
            )
        return Value.long(int(rounded.scaleb(self.scale)))

    def to_host(self, value: Value) -> Decimal | None:
        if value.is_null:
            return None
        if self.scale is None:
            expect_kind(value, ValueType.STRING)
            return Decimal(value.get())
        expect_kind(value, ValueType.LONG)
        return Decimal(value.get()).scaleb(-self.scale)

    def __repr__(self) -> str:
        return f"DecimalConverter(precision={self.precision}, scale={self.scale})"


class UUIDConverter(Converter):
    __slots__ = ()
    native_type = ValueType.STRING

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, UUID)
        return Value.string(str(value))

    def to_host(self, value: Value) -> UUID | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.STRING)
        return UUID(value.get())


class EnumConverter(Converter):
    """Enum members stored by name."""

    __slots__ = ("enum_type",)
    native_type = ValueType.STRING

    def __init__(self, enum_type: type[Enum]) -> None:
        self.enum_type = enum_type

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, self.enum_type)
        return Value.string(value.name)

    def to_host(self, value: Value) -> Enum | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.STRING)
        try:
            return self.enum_type[value.get()]
        except KeyError:
            raise MappingError(
                f"{value.get()!r} is not a member of {self.enum_type.__name__}"
            ) from None

    def __repr__(self) -> str:
        return f"EnumConverter({self.enum_type.__name__})"


class KeyConverter(Converter):
    """Key references; the native key is wrapped and unwrapped untouched."""

    __slots__ = ()
    native_type = ValueType.KEY

    def to_native(self, value: Any) -> Value:
        if value is None:
            return Value.null()
        expect_host(value, DatastoreKey)
        return Value.key(value.native_key())

    def to_host(self, value: Value) -> DatastoreKey | None:
        if value.is_null:
            return None
        expect_kind(value, ValueType.KEY)
        return DatastoreKey(value.get())


# --- Registry ---

# Produces the converter for one declared type
ConverterFactory = Callable[[type], Converter]

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)


def unwrap_annotation(annotation: Any) -> Any:
    """Strip ``Annotated[...]`` and ``Optional[...]`` from a type annotation."""
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    origin = get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return unwrap_annotation(members[0])
    return annotation


class ConverterRegistry:
    """
    Dispatch table from host types to converters.

    Scalar converters are shared singletons. Types registered as element
    types may also appear inside lists, sets and maps; collection
    converters dispatch each element against this same table.

    Example:
        registry = ConverterRegistry()
        registry.register(Path, PathConverter())
        converter = registry.resolve(list[str])

    """

    __slots__ = ("_factories", "_element_types", "_element_by_native")

    def __init__(self) -> None:
        self._factories: dict[type, ConverterFactory] = {}
        self._element_types: dict[type, Converter] = {}
        self._element_by_native: dict[ValueType, Converter] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register the built-in converters."""
        self.register(str, StringConverter(), element=True)
        self.register(int, IntegerConverter(), element=True)
        self.register(bool, BooleanConverter(), element=True)
        self.register(float, FloatConverter(), element=True)
        self.register(DatastoreKey, KeyConverter(), element=True)
        self.register(bytes, BytesConverter(bytes))
        self.register(bytearray, BytesConverter(bytearray))
        self.register(datetime, DateTimeConverter())
        self.register(date, DateConverter())
        self.register(Decimal, DecimalConverter())
        self.register(UUID, UUIDConverter())

    def register(
        self,
        python_type: type,
        converter: Converter | ConverterFactory,
        *,
        element: bool = False,
    ) -> None:
        """
        Register a converter for a host type.

        Args:
            python_type: The declared host type
            converter: A shared Converter instance, or a factory called with
                the declared type to build one converter per field
            element: Whether the type may appear inside collections; only
                shared instances with a fixed ``native_type`` qualify

        """
        if isinstance(converter, Converter):
            shared = converter
            self._factories[python_type] = lambda _declared: shared
            if element:
                if shared.native_type is None:
                    raise ValueError(f"{shared!r} has no fixed native type")
                self._element_types[python_type] = shared
                self._element_by_native[shared.native_type] = shared
        else:
            if element:
                raise ValueError("Element types require a shared Converter instance")
            self._factories[python_type] = converter

    def get(self, python_type: type) -> Converter | None:
        """Return the converter for a plain type, walking its MRO."""
        for candidate in python_type.__mro__:
            if candidate is object:
                break
            factory = self._factories.get(candidate)
            if factory is not None:
                return factory(python_type)
        return None

    def is_element_type(self, python_type: Any) -> bool:
        if python_type is Any:
            return True
        return isinstance(python_type, type) and any(
            candidate in self._element_types for candidate in python_type.__mro__
        )

    def resolve(self, annotation: Any, *, default_set_type: type = set) -> Converter:
        """
        Resolve the converter for a declared field type.

        Raises:
            UnsupportedTypeError: If the type has no converter

        """
        from datastore_py.mapping.containers import ListConverter, MapConverter, SetConverter

        annotation = unwrap_annotation(annotation)
        origin = get_origin(annotation)
        args = get_args(annotation)
        container = origin if origin is not None else annotation

        if origin is None and isinstance(annotation, type):
            if issubclass(annotation, Enum):
                return EnumConverter(annotation)
            converter = self.get(annotation)
            if converter is not None:
                return converter

        if isinstance(container, type):
            if issubclass(container, collections.abc.Set):
                self._check_elements(args[:1], annotation, "Set")
                return SetConverter(self, container, default_set_type)
            if issubclass(container, collections.abc.Mapping):
                if args and args[0] is not str:
                    raise UnsupportedTypeError(f"Unsupported map key type in {annotation!r}")
                self._check_elements(args[1:2], annotation, "Map")
                return MapConverter(self)
            if container in _SEQUENCE_ORIGINS or issubclass(container, list):
                self._check_elements(args[:1], annotation, "List")
                return ListConverter(self)

        raise UnsupportedTypeError(f"Unsupported type {annotation!r}")

    def _check_elements(self, args: tuple[Any, ...], annotation: Any, container: str) -> None:
        for arg in args:
            if not self.is_element_type(unwrap_annotation(arg)):
                raise UnsupportedTypeError(
                    f"Unsupported type {arg!r} in {container} ({annotation!r})"
                )

    # --- Element dispatch used by collection converters ---

    def element_to_native(self, item: Any, container: str) -> Value:
        """Convert one collection element, dispatching on its runtime type."""
        if item is None:
            return Value.null()
        for candidate in type(item).__mro__:
            converter = self._element_types.get(candidate)
            if converter is not None:
                return converter.to_native(item)
        raise UnsupportedTypeError(f"Unsupported type in {container}: {type(item).__name__}")

    def element_to_host(self, value: Value, container: str) -> Any:
        """Convert one native collection element, dispatching on its kind."""
        if value.is_null:
            return None
        converter = self._element_by_native.get(value.type)
        if converter is None:
            raise UnsupportedTypeError(f"Unsupported type in {container}: {value.type.name}")
        return converter.to_host(value)


# Default converter registry
default_converters = ConverterRegistry()

"""Tests for value converters, collection converters and indexers."""

import collections.abc
from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import UUID

import pytest

from datastore_py.exceptions import MappingError, UnsupportedTypeError
from datastore_py.mapping import (
    BooleanConverter,
    BytesConverter,
    ConverterRegistry,
    DatastoreKey,
    DateConverter,
    DateTimeConverter,
    DecimalConverter,
    EnumConverter,
    FloatConverter,
    Identifier,
    IntegerConverter,
    KeyConverter,
    ListConverter,
    LowerCaseStringIndexer,
    LowerCaseStringListIndexer,
    MapConverter,
    Property,
    SetConverter,
    StringConverter,
    UpperCaseStringIndexer,
    UUIDConverter,
    default_converters,
    marshal,
    unmarshal,
)
from datastore_py.mapping.converters import unwrap_annotation
from datastore_py.native import LONG_MAX, Key, Timestamp, Value, ValueType


class Color(Enum):
    RED = 1
    GREEN = 2


class SortedTags(set):
    """A concrete set type with its own constructor."""


class Tagged:
    id: Annotated[int, Identifier()] = 0
    tags: list[str | None] = []


class TestScalarConverters:
    """Tests for the built-in scalar converters."""

    @pytest.mark.parametrize(
        "converter",
        [
            StringConverter(),
            IntegerConverter(),
            BooleanConverter(),
            FloatConverter(),
            BytesConverter(),
            DateTimeConverter(),
            DateConverter(),
            DecimalConverter(),
            UUIDConverter(),
            EnumConverter(Color),
            KeyConverter(),
        ],
    )
    def test_null_round_trip(self, converter):
        """Test that None maps to NULL and back."""
        assert converter.to_native(None).is_null
        assert converter.to_host(Value.null()) is None

    def test_string(self):
        """Test string conversion."""
        converter = StringConverter()
        assert converter.to_native("Ada") == Value.string("Ada")
        assert converter.to_host(Value.string("Ada")) == "Ada"

    def test_string_rejects_wrong_host_type(self):
        """Test that a non-string host value fails."""
        with pytest.raises(MappingError, match="Expecting str, but found int"):
            StringConverter().to_native(1)

    def test_string_rejects_wrong_native_kind(self):
        """Test that a non-string native value fails."""
        with pytest.raises(MappingError, match="Expecting STRING, but found LONG"):
            StringConverter().to_host(Value.long(1))

    def test_integer(self):
        """Test integer conversion."""
        converter = IntegerConverter()
        assert converter.to_native(42) == Value.long(42)
        assert converter.to_host(Value.long(42)) == 42

    def test_integer_out_of_range(self):
        """Test that integers beyond 64 bits fail."""
        with pytest.raises(MappingError, match="out of range for long type"):
            IntegerConverter().to_native(LONG_MAX + 1)

    def test_integer_rejects_bool(self):
        """Test that bools are not integers here."""
        with pytest.raises(MappingError, match="Expecting int"):
            IntegerConverter().to_native(True)

    def test_boolean(self):
        """Test boolean conversion."""
        converter = BooleanConverter()
        assert converter.to_native(False) == Value.boolean(False)
        assert converter.to_host(Value.boolean(True)) is True

    def test_float_accepts_int(self):
        """Test that integral values are stored as doubles."""
        assert FloatConverter().to_native(2) == Value.double(2.0)
        assert FloatConverter().to_host(Value.double(2.5)) == 2.5

    def test_bytes(self):
        """Test binary conversion keeps the exact bytes."""
        value = BytesConverter().to_native(b"\x00\x01")
        assert value.type is ValueType.BLOB
        assert BytesConverter().to_host(value) == b"\x00\x01"

    def test_bytearray(self):
        """Test that bytearray fields read back a bytearray."""
        converter = BytesConverter(bytearray)
        result = converter.to_host(converter.to_native(bytearray(b"ab")))
        assert isinstance(result, bytearray)
        assert result == bytearray(b"ab")

    def test_date(self):
        """Test dates are stored as ISO strings."""
        converter = DateConverter()
        assert converter.to_native(date(2024, 2, 29)) == Value.string("2024-02-29")
        assert converter.to_host(Value.string("2024-02-29")) == date(2024, 2, 29)

    def test_date_rejects_datetime(self):
        """Test that datetimes are not silently truncated to dates."""
        with pytest.raises(MappingError, match="found datetime"):
            DateConverter().to_native(datetime(2024, 1, 1))

    def test_invalid_date_string(self):
        """Test reading a malformed date."""
        with pytest.raises(MappingError, match="Invalid date"):
            DateConverter().to_host(Value.string("not-a-date"))

    def test_uuid(self):
        """Test UUIDs are stored as strings."""
        uid = UUID("12345678-1234-5678-1234-567812345678")
        value = UUIDConverter().to_native(uid)
        assert value == Value.string(str(uid))
        assert UUIDConverter().to_host(value) == uid

    def test_enum(self):
        """Test enums are stored by member name."""
        converter = EnumConverter(Color)
        assert converter.to_native(Color.GREEN) == Value.string("GREEN")
        assert converter.to_host(Value.string("RED")) is Color.RED

    def test_enum_unknown_member(self):
        """Test reading a name that is not a member."""
        with pytest.raises(MappingError, match="not a member of Color"):
            EnumConverter(Color).to_host(Value.string("BLUE"))

    def test_key(self):
        """Test key references pass through untouched."""
        key = DatastoreKey.of("Person", 7)
        value = KeyConverter().to_native(key)
        assert value == Value.key(Key.of("Person", 7))
        assert KeyConverter().to_host(value) == key


class TestDateTimeConverter:
    """Tests for timestamp conversion and its documented loss."""

    def test_round_trip_is_same_instant(self):
        """Test that the instant survives the round trip."""
        original = datetime(2024, 5, 17, 8, 30, 15, 123456, tzinfo=UTC)
        converter = DateTimeConverter()
        result = converter.to_host(converter.to_native(original))
        assert result == original

    def test_zone_is_local_on_read(self):
        """Test that the zone is reconstituted from the local system zone."""
        original = datetime(2024, 5, 17, 8, 30, tzinfo=timezone(timedelta(hours=9)))
        converter = DateTimeConverter()
        result = converter.to_host(converter.to_native(original))
        assert result == original
        assert result.utcoffset() == original.astimezone().utcoffset()

    def test_naive_is_local_time(self):
        """Test that naive values are taken as local time."""
        naive = datetime(2024, 5, 17, 12, 0, 0)
        converter = DateTimeConverter()
        result = converter.to_host(converter.to_native(naive))
        assert result.replace(tzinfo=None) == naive

    def test_microsecond_storage(self):
        """Test the stored timestamp resolution."""
        original = datetime(1970, 1, 1, 0, 0, 1, 5, tzinfo=UTC)
        value = DateTimeConverter().to_native(original)
        assert value.get() == Timestamp(1_000_005)

    def test_sub_microsecond_truncation(self):
        """Test that nanoseconds beyond microseconds are dropped on the way in."""
        value = Value.timestamp(Timestamp.from_epoch(1, 999))
        result = DateTimeConverter().to_host(value)
        assert result == datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)


class TestDecimalConverter:
    """Tests for decimal conversion."""

    def test_string_storage(self):
        """Test the exact string form without a scale."""
        value = DecimalConverter().to_native(Decimal("3.14159"))
        assert value == Value.string("3.14159")
        assert DecimalConverter().to_host(value) == Decimal("3.14159")

    def test_scaled_storage(self):
        """Test unscaled long storage with rounding half up."""
        converter = DecimalConverter(precision=10, scale=2)
        assert converter.to_native(Decimal("12.345")) == Value.long(1235)
        assert converter.to_host(Value.long(1235)) == Decimal("12.35")

    def test_precision_overflow(self):
        """Test that values beyond the precision fail."""
        with pytest.raises(MappingError, match="does not fit"):
            DecimalConverter(precision=3, scale=1).to_native(Decimal("1234.5"))

    def test_invalid_settings(self):
        """Test precision and scale validation."""
        with pytest.raises(ValueError):
            DecimalConverter(precision=19, scale=2)
        with pytest.raises(ValueError):
            DecimalConverter(precision=5)


class TestCollectionConverters:
    """Tests for list, set and map conversion."""

    def test_list(self):
        """Test list conversion in order."""
        converter = ListConverter(default_converters)
        value = converter.to_native(["a", 1, True])
        assert value.type is ValueType.LIST
        assert value.get() == (Value.string("a"), Value.long(1), Value.boolean(True))
        assert converter.to_host(value) == ["a", 1, True]

    def test_list_unsupported_element(self):
        """Test that elements without a converter fail."""
        with pytest.raises(UnsupportedTypeError, match="Unsupported type in List: object"):
            ListConverter(default_converters).to_native([object()])

    def test_list_rejects_string(self):
        """Test that a string is not taken as a list of characters."""
        with pytest.raises(MappingError, match="Expecting a list"):
            ListConverter(default_converters).to_native("abc")

    def test_list_null_elements(self):
        """Test that null elements keep their position."""
        converter = default_converters.resolve(list[str | None])
        value = converter.to_native(["a", None, "b"])
        assert value.get() == (Value.string("a"), Value.null(), Value.string("b"))
        assert converter.to_host(value) == ["a", None, "b"]

    def test_list_null_elements_in_model(self, registry):
        """Test a model field holding null list elements."""
        metadata = registry.describe(Tagged)
        tagged = Tagged()
        tagged.id = 1
        tagged.tags = ["a", None]
        native = marshal(tagged, metadata)
        assert native.get_value("tags").get() == (Value.string("a"), Value.null())
        assert unmarshal(native, metadata).tags == ["a", None]

    def test_set_round_trip_into_concrete_type(self):
        """Test that a set comes back as the declared concrete type."""
        converter = default_converters.resolve(SortedTags)
        value = converter.to_native({"a", "b", "c"})
        assert value.type is ValueType.LIST
        assert len(value.get()) == 3
        assert all(item.type is ValueType.STRING for item in value.get())
        result = converter.to_host(value)
        assert type(result) is SortedTags
        assert result == {"a", "b", "c"}

    def test_abstract_set_gets_default(self):
        """Test that abstract declarations are rebuilt with the default set type."""
        converter = default_converters.resolve(
            collections.abc.Set[str], default_set_type=frozenset
        )
        assert converter.set_type is frozenset
        result = converter.to_host(Value.list_of([Value.string("x")]))
        assert result == frozenset({"x"})

    def test_map(self):
        """Test string-keyed maps become keyless entities."""
        converter = MapConverter(default_converters)
        value = converter.to_native({"a": 1, "b": None})
        assert value.type is ValueType.ENTITY
        assert value.get().key is None
        assert value.get().get_value("b").is_null
        assert converter.to_host(value) == {"a": 1, "b": None}

    def test_map_rejects_non_string_keys(self):
        """Test map key type check."""
        with pytest.raises(MappingError, match="Map keys must be str"):
            MapConverter(default_converters).to_native({1: "a"})


class TestConverterRegistry:
    """Tests for converter resolution."""

    def test_resolve_scalars(self):
        """Test resolving built-in scalar types."""
        assert isinstance(default_converters.resolve(str), StringConverter)
        assert isinstance(default_converters.resolve(bool), BooleanConverter)
        assert isinstance(default_converters.resolve(datetime), DateTimeConverter)

    def test_resolve_strips_annotated_and_optional(self):
        """Test that markers and Optional do not affect resolution."""
        assert isinstance(
            default_converters.resolve(Annotated[Optional[int], Property()]), IntegerConverter
        )
        assert isinstance(default_converters.resolve(str | None), StringConverter)

    def test_resolve_enum(self):
        """Test that each enum gets its own converter."""
        converter = default_converters.resolve(Color)
        assert isinstance(converter, EnumConverter)
        assert converter.enum_type is Color

    def test_resolve_collections(self):
        """Test container resolution."""
        assert isinstance(default_converters.resolve(list[str]), ListConverter)
        assert isinstance(default_converters.resolve(collections.abc.Sequence[int]), ListConverter)
        assert isinstance(default_converters.resolve(set[str]), SetConverter)
        assert isinstance(default_converters.resolve(dict[str, Any]), MapConverter)

    def test_unsupported_element_type(self):
        """Test that unsupported declared elements are rejected up front."""
        with pytest.raises(UnsupportedTypeError, match="in List"):
            default_converters.resolve(list[date])

    def test_unsupported_map_key(self):
        """Test that maps need string keys."""
        with pytest.raises(UnsupportedTypeError, match="map key"):
            default_converters.resolve(dict[int, str])

    def test_unsupported_type(self):
        """Test an unknown type."""
        with pytest.raises(UnsupportedTypeError):
            default_converters.resolve(complex)

    def test_register_custom_type(self):
        """Test registering a converter for a new type."""

        class Celsius(float):
            pass

        registry = ConverterRegistry()
        converter = FloatConverter()
        registry.register(Celsius, converter)
        assert registry.resolve(Celsius) is converter

    def test_register_factory(self):
        """Test per-field converter factories."""
        registry = ConverterRegistry()
        registry.register(Decimal, lambda declared: DecimalConverter(precision=12, scale=4))
        assert registry.resolve(Decimal).scale == 4

    def test_subclass_uses_base_converter(self):
        """Test MRO lookup."""

        class Name(str):
            pass

        assert isinstance(default_converters.resolve(Name), StringConverter)

    def test_element_registration_requires_instance(self):
        """Test that factories cannot be element types."""
        with pytest.raises(ValueError, match="shared Converter"):
            ConverterRegistry().register(Decimal, lambda declared: DecimalConverter(), element=True)

    def test_unwrap_annotation(self):
        """Test annotation unwrapping."""
        assert unwrap_annotation(Annotated[int, Property()]) is int
        assert unwrap_annotation(Optional[str]) is str
        assert unwrap_annotation(int | str) == int | str


class TestIndexers:
    """Tests for secondary indexers."""

    def test_lower_case(self):
        """Test lower-case indexing."""
        assert LowerCaseStringIndexer().index(Value.string("AbC")) == Value.string("abc")

    def test_upper_case(self):
        """Test upper-case indexing."""
        assert UpperCaseStringIndexer().index(Value.string("AbC")) == Value.string("ABC")

    def test_null_passes_through(self):
        """Test null values."""
        assert LowerCaseStringIndexer().index(Value.null()).is_null
        assert LowerCaseStringListIndexer().index(Value.null()).is_null

    def test_wrong_kind(self):
        """Test indexing a non-string."""
        with pytest.raises(MappingError, match="expects STRING"):
            LowerCaseStringIndexer().index(Value.long(1))

    def test_string_list(self):
        """Test lower-casing every list element."""
        value = Value.list_of([Value.string("A"), Value.string("b")])
        result = LowerCaseStringListIndexer().index(value)
        assert result == Value.list_of([Value.string("a"), Value.string("b")])

"""Tests for the native value and entity model."""

import pytest

from datastore_py.native import LONG_MAX, LONG_MIN, Entity, Key, Timestamp, Value, ValueType


class TestValue:
    """Tests for Value builders and flags."""

    def test_builders_tag_kind(self):
        """Test that each builder produces its own kind."""
        assert Value.null().type is ValueType.NULL
        assert Value.string("a").type is ValueType.STRING
        assert Value.long(1).type is ValueType.LONG
        assert Value.boolean(True).type is ValueType.BOOLEAN
        assert Value.double(1.5).type is ValueType.DOUBLE
        assert Value.blob(b"x").type is ValueType.BLOB
        assert Value.timestamp(Timestamp(0)).type is ValueType.TIMESTAMP
        assert Value.key(Key.of("K", 1)).type is ValueType.KEY
        assert Value.list_of([]).type is ValueType.LIST
        assert Value.entity(Entity()).type is ValueType.ENTITY

    def test_null(self):
        """Test the null marker."""
        value = Value.null()
        assert value.is_null
        assert value.get() is None

    def test_long_range(self):
        """Test that longs are limited to 64 bits."""
        assert Value.long(LONG_MAX).get() == LONG_MAX
        assert Value.long(LONG_MIN).get() == LONG_MIN
        with pytest.raises(ValueError, match="out of range"):
            Value.long(LONG_MAX + 1)

    def test_long_rejects_bool(self):
        """Test that bool is not accepted as a long."""
        with pytest.raises(TypeError):
            Value.long(True)

    def test_string_rejects_other_types(self):
        """Test string builder type check."""
        with pytest.raises(TypeError, match="Expecting str"):
            Value.string(1)

    def test_blob_is_a_copy(self):
        """Test that blobs copy their input."""
        data = bytearray(b"abc")
        value = Value.blob(data)
        data[0] = ord("z")
        assert value.get() == b"abc"
        assert isinstance(value.get(), bytes)

    def test_list_holds_values(self):
        """Test list builder."""
        value = Value.list_of([Value.string("a"), Value.long(1)])
        assert value.get() == (Value.string("a"), Value.long(1))

    def test_list_rejects_raw_items(self):
        """Test that list elements must be Values."""
        with pytest.raises(TypeError, match="must be Values"):
            Value.list_of(["a"])

    def test_exclude_from_indexes(self):
        """Test setting the index exclusion flag."""
        value = Value.string("a").with_exclude_from_indexes(True)
        assert value.exclude_from_indexes
        assert value.get() == "a"
        assert not value.with_exclude_from_indexes(False).exclude_from_indexes

    def test_list_cannot_be_excluded(self):
        """Test that list values keep default indexing."""
        value = Value.list_of([Value.string("a")])
        with pytest.raises(ValueError, match="cannot be excluded"):
            value.with_exclude_from_indexes(True)
        assert value.with_exclude_from_indexes(False) is value

    def test_supports_index_exclusion(self):
        """Test the per-kind exclusion capability."""
        assert ValueType.STRING.supports_index_exclusion
        assert ValueType.ENTITY.supports_index_exclusion
        assert not ValueType.LIST.supports_index_exclusion


class TestTimestamp:
    """Tests for Timestamp."""

    def test_from_epoch_truncates_nanos(self):
        """Test that sub-microsecond nanos are truncated, not rounded."""
        ts = Timestamp.from_epoch(10, 123_456_999)
        assert ts.microseconds == 10_123_456
        assert ts.seconds == 10
        assert ts.nanos == 123_456_000

    def test_negative_epoch(self):
        """Test instants before the epoch."""
        ts = Timestamp.from_epoch(-1, 500_000_000)
        assert ts.microseconds == -500_000
        assert ts.seconds == -1
        assert ts.nanos == 500_000_000

    def test_invalid_nanos(self):
        """Test the nanos range check."""
        with pytest.raises(ValueError, match="nanos"):
            Timestamp.from_epoch(0, 1_000_000_000)

    def test_ordering(self):
        """Test that timestamps compare by instant."""
        assert Timestamp(1) < Timestamp(2)


class TestKey:
    """Tests for Key."""

    def test_of_name_or_id(self):
        """Test Key.of picks name or id from the argument type."""
        assert Key.of("Person", "ada").name == "ada"
        assert Key.of("Person", 7).id == 7
        assert Key.of("Person", 7).name_or_id == 7

    def test_incomplete(self):
        """Test keys without identity."""
        key = Key("Person")
        assert not key.is_complete
        assert key.name_or_id is None
        assert Key.of("Person", 1).is_complete

    def test_name_and_id_exclusive(self):
        """Test that a key cannot have both a name and an id."""
        with pytest.raises(ValueError, match="not both"):
            Key("Person", name="a", id=1)

    def test_ancestors(self):
        """Test the parent chain."""
        root = Key.of("Country", "fr")
        city = Key.of("City", "paris", parent=root)
        street = Key.of("Street", 1, parent=city)
        assert street.ancestors() == [city, root]
        assert root.ancestors() == []


class TestEntity:
    """Tests for Entity and EntityBuilder."""

    def test_builder(self):
        """Test building an entity."""
        key = Key.of("Person", 1)
        entity = Entity.new_builder(key).set("name", Value.string("Ada")).build()
        assert entity.key == key
        assert entity.contains("name")
        assert "name" in entity
        assert entity.get_value("name") == Value.string("Ada")
        assert entity.names() == ["name"]
        assert len(entity) == 1

    def test_missing_property(self):
        """Test reading an absent property."""
        with pytest.raises(KeyError, match="No such property"):
            Entity().get_value("name")

    def test_get_long(self):
        """Test typed long access."""
        entity = Entity(properties={"v": Value.long(3), "s": Value.string("x")})
        assert entity.get_long("v") == 3
        with pytest.raises(TypeError, match="not LONG"):
            entity.get_long("s")

    def test_builder_rejects_raw_values(self):
        """Test that builders only accept Values."""
        with pytest.raises(TypeError, match="must be a Value"):
            Entity.new_builder().set("name", "Ada")

    def test_properties_are_read_only(self):
        """Test that entity properties cannot be mutated."""
        entity = Entity(properties={"a": Value.long(1)})
        with pytest.raises(TypeError):
            entity.properties["a"] = Value.long(2)

    def test_new_builder_from_copies(self):
        """Test that the copy builder leaves the source untouched."""
        source = Entity(Key.of("K", 1), {"a": Value.long(1)})
        copy = Entity.new_builder_from(source).set("a", Value.long(2)).remove("b").build()
        assert source.get_long("a") == 1
        assert copy.get_long("a") == 2
        assert copy.key == source.key

    def test_equality(self):
        """Test value equality of entities."""
        a = Entity(Key.of("K", 1), {"x": Value.string("1")})
        b = Entity(Key.of("K", 1), {"x": Value.string("1")})
        assert a == b
        assert hash(a) == hash(b)
        assert a != Entity(Key.of("K", 2), {"x": Value.string("1")})

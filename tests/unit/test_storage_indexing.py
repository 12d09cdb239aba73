"""Tests for composite secondary indexes."""

import pytest

from carledger.errors import ConfigurationError, EncodingError, MalformedKeyError
from carledger.storage.accessor import StateAccessor
from carledger.storage.composite import create_composite_key
from carledger.storage.indexing import (
    COLOR_OWNER_INDEX,
    INDEX_SENTINEL,
    IndexDefinition,
    IndexManager,
)
from carledger.storage.state import InMemoryStateStore


class _Car:
    def __init__(self, id, color, owner_id):
        self.id = id
        self.color = color
        self.owner_id = owner_id


class TestIndexManager:
    """Test index maintenance."""

    @pytest.fixture
    def store(self):
        return InMemoryStateStore()

    @pytest.fixture
    def index(self, store):
        return IndexManager(StateAccessor(store))

    def test_default_definition(self, index):
        """Test that the color~owner~ID layout is registered."""
        definition = index.get_definition(COLOR_OWNER_INDEX)

        assert definition.fields == ("color", "owner", "id")
        assert definition.part_count == 3

    def test_unknown_definition(self, index):
        """Test lookup of an unregistered index."""
        with pytest.raises(ConfigurationError) as exc_info:
            index.get_definition("nope")

        assert exc_info.value.config_value == "nope"

    def test_register_requires_fields(self, index):
        """Test that empty layouts are refused."""
        with pytest.raises(ConfigurationError):
            index.register(IndexDefinition("empty", ()))

    def test_entry_stored_with_sentinel(self, index, store):
        """Test that an entry maps its key to the sentinel byte."""
        index.index_color_owner("blue", "person1", "car1")

        key = "\x00color~owner~ID\x00blue\x00person1\x00car1\x00"
        assert store.get(key) == INDEX_SENTINEL
        assert index.stats.entries_added == 1

    def test_remove_entry(self, index, store):
        """Test deindexing."""
        index.index_color_owner("blue", "person1", "car1")
        index.deindex_color_owner("blue", "person1", "car1")

        assert len(store) == 0
        assert index.stats.entries_removed == 1

    def test_remove_absent_entry_is_noop(self, index, store):
        """Test that removing a missing entry leaves others untouched."""
        index.index_color_owner("blue", "person1", "car1")

        index.deindex_color_owner("person1", "person1", "car1")

        assert index.scan_by_color("blue") == ["car1"]

    def test_build_key_part_count(self, index):
        """Test that registered layouts enforce their part count."""
        with pytest.raises(EncodingError):
            index.build_key(COLOR_OWNER_INDEX, ("blue", "person1"))

    def test_build_key_unregistered_index(self, index):
        """Test that unregistered indexes accept any part count."""
        assert index.build_key("adhoc", ("a",)) == create_composite_key("adhoc", ["a"])

    def test_split_key(self, index):
        """Test decoding an entry key."""
        key = index.color_owner_key("red", "person2", "car2")

        assert index.split_key(key) == (COLOR_OWNER_INDEX, ["red", "person2", "car2"])

    def test_split_key_wrong_part_count(self, index):
        """Test that an entry with the wrong arity is malformed."""
        key = create_composite_key(COLOR_OWNER_INDEX, ["red", "car2"])

        with pytest.raises(MalformedKeyError):
            index.split_key(key)

    def test_scan_by_color_ordering(self, index):
        """Test that color scans order by owner then id."""
        index.index_color_owner("blue", "person2", "car2")
        index.index_color_owner("blue", "person1", "car9")
        index.index_color_owner("blue", "person1", "car3")
        index.index_color_owner("red", "person1", "car1")

        assert index.scan_by_color("blue") == ["car3", "car9", "car2"]

    def test_scan_by_color_exact_match(self, index):
        """Test that a color does not match longer colors it prefixes."""
        index.index_color_owner("blue", "person1", "car1")
        index.index_color_owner("bluegreen", "person1", "car2")

        assert index.scan_by_color("blue") == ["car1"]

    def test_scan_by_color_and_owner(self, index):
        """Test color and owner scans."""
        index.index_color_owner("blue", "person1", "car1")
        index.index_color_owner("blue", "person2", "car2")

        assert index.scan_by_color_and_owner("blue", "person2") == ["car2"]
        assert index.scan_by_color_and_owner("blue", "person3") == []

    def test_scan_prefix_too_long(self, index):
        """Test that a prefix longer than the layout is refused."""
        with pytest.raises(EncodingError):
            index.scan(COLOR_OWNER_INDEX, ("a", "b", "c", "d"))

    def test_scan_ignores_records(self, index, store):
        """Test that primary records do not appear in index scans."""
        store.put("car1", b"{}")
        index.index_color_owner("blue", "person1", "car1")

        assert index.scan(COLOR_OWNER_INDEX) == [["blue", "person1", "car1"]]

    def test_illegal_part(self, index):
        """Test that separator characters are refused."""
        with pytest.raises(EncodingError):
            index.index_color_owner("bl\x00ue", "person1", "car1")


class TestIndexAudit:
    """Test audits and repair."""

    @pytest.fixture
    def index(self):
        return IndexManager(StateAccessor(InMemoryStateStore()))

    def test_consistent(self, index):
        """Test an index matching its records."""
        cars = [_Car("car1", "blue", "person1")]
        index.index_color_owner("blue", "person1", "car1")

        audit = index.audit_color_owner(cars)

        assert audit.is_consistent
        assert audit.to_dict()["consistent"] is True

    def test_missing_and_orphaned(self, index):
        """Test detection of missing and stale entries."""
        cars = [_Car("car1", "blue", "person1"), _Car("car2", "red", "person2")]
        index.index_color_owner("blue", "person1", "car1")
        index.index_color_owner("green", "person2", "car2")

        audit = index.audit_color_owner(cars)

        assert audit.missing == {("red", "person2", "car2")}
        assert audit.orphaned == {("green", "person2", "car2")}
        assert not audit.is_consistent
        assert audit.to_dict()["missing"] == [["red", "person2", "car2"]]

    def test_repair(self, index):
        """Test that repair brings the index in line with the records."""
        cars = [_Car("car1", "blue", "person1"), _Car("car2", "red", "person2")]
        index.index_color_owner("green", "person2", "car2")

        before = index.repair_color_owner(cars)

        assert not before.is_consistent
        assert index.audit_color_owner(cars).is_consistent
        assert index.scan_by_color("green") == []
        assert index.scan_by_color("red") == ["car2"]

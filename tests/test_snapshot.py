"""Unit tests for tables, relations and snapshot validation."""

import pytest

from configdiff.errors import DuplicateKeyError, SchemaError
from configdiff.snapshot import Column, Relation, Table, build_snapshot, dependency_order

GROUP = Table("Group", (Column("Group"), Column("Owner")), ("Group",))
ITEM = Table("Item", (Column("Group"), Column("Item", int), Column("Value")), ("Group", "Item"))
GROUP_ITEM = Relation("GroupItem", "Group", ("Group",), "Item", ("Group",))


class TestTable:
    """Tests for Table construction and accessors."""

    def test_duplicate_key_raises(self) -> None:
        """Two rows with the same key tuple are rejected."""
        with pytest.raises(DuplicateKeyError) as info:
            GROUP.with_rows([("X", "a"), ("X", "b")])
        assert info.value.table == "Group"
        assert info.value.key == ("X",)

    def test_null_and_empty_keys_are_duplicates(self) -> None:
        with pytest.raises(DuplicateKeyError):
            GROUP.with_rows([(None, "a"), ("", "b")])

    def test_row_width_mismatch_raises(self) -> None:
        with pytest.raises(SchemaError):
            GROUP.with_rows([("X",)])

    def test_unknown_key_column_raises(self) -> None:
        with pytest.raises(SchemaError):
            Table("T", (Column("a"),), ("b",))

    def test_duplicate_column_raises(self) -> None:
        with pytest.raises(SchemaError):
            Table("T", (Column("a"), Column("a")))

    def test_missing_key_uses_all_columns(self) -> None:
        """A value list without a declared key is keyed by every column."""
        table = Table("Values", (Column("a"), Column("b")), (), [("1", "2"), ("1", "3")])
        assert table.primary_key == ("a", "b")
        assert table.key_of(("1", "2")) == ("1", "2")

    def test_accessors(self) -> None:
        row = ("X", 1, "v")
        assert ITEM.column_names == ("Group", "Item", "Value")
        assert ITEM.column_index("Value") == 2
        assert ITEM.key_indexes == (0, 1)
        assert ITEM.key_of(row) == ("X", 1)
        assert ITEM.project(row, ["Value", "Group"]) == ("v", "X")
        assert ITEM.has_column("Item")
        assert not ITEM.has_column("Missing")

    def test_column_index_unknown_raises(self) -> None:
        with pytest.raises(SchemaError):
            ITEM.column_index("Missing")


class TestBuildSnapshot:
    """Tests for build_snapshot validation."""

    def test_valid_snapshot(self) -> None:
        snap = build_snapshot([GROUP, ITEM], [GROUP_ITEM])
        assert snap.table_index("Item") == 1
        assert snap.children_of("Group") == [GROUP_ITEM]
        assert snap.parent_relation("Item") == GROUP_ITEM
        assert snap.parent_relation("Group") is None

    def test_duplicate_table_raises(self) -> None:
        with pytest.raises(SchemaError):
            build_snapshot([GROUP, GROUP])

    def test_relation_to_unknown_table_raises(self) -> None:
        rel = Relation("Bad", "Group", ("Group",), "Missing", ("Group",))
        with pytest.raises(SchemaError):
            build_snapshot([GROUP, ITEM], [rel])

    def test_relation_parent_columns_must_be_primary_key(self) -> None:
        rel = Relation("Bad", "Group", ("Owner",), "Item", ("Group",))
        with pytest.raises(SchemaError):
            build_snapshot([GROUP, ITEM], [rel])

    def test_relation_unknown_child_column_raises(self) -> None:
        rel = Relation("Bad", "Group", ("Group",), "Item", ("Missing",))
        with pytest.raises(SchemaError):
            build_snapshot([GROUP, ITEM], [rel])

    def test_second_parent_relation_raises(self) -> None:
        other = Table("Other", (Column("Group"),), ("Group",))
        rel = Relation("OtherItem", "Other", ("Group",), "Item", ("Group",))
        with pytest.raises(SchemaError):
            build_snapshot([GROUP, other, ITEM], [GROUP_ITEM, rel])

    def test_cycle_raises(self) -> None:
        a = Table("A", (Column("a"), Column("b_ref")), ("a",))
        b = Table("B", (Column("b"), Column("a_ref")), ("b",))
        relations = [
            Relation("AB", "A", ("a",), "B", ("a_ref",)),
            Relation("BA", "B", ("b",), "A", ("b_ref",)),
        ]
        with pytest.raises(SchemaError):
            build_snapshot([a, b], relations)


def test_dependency_order_puts_parents_first() -> None:
    """Parents precede children; unrelated tables keep declaration order."""
    assert dependency_order(["Item", "Misc", "Group"], [GROUP_ITEM]) == ["Misc", "Group", "Item"]


def test_with_rows_returns_new_snapshot() -> None:
    snap = build_snapshot([GROUP, ITEM], [GROUP_ITEM])
    filled = snap.with_rows("Group", [("X", "me")])
    assert filled.table("Group").rows == (("X", "me"),)
    assert snap.table("Group").rows == ()
    assert filled.shape() == snap.shape()
    assert filled.empty().table("Group").rows == ()


def test_shape_differs_on_column_type() -> None:
    changed = Table("Item", (Column("Group"), Column("Item"), Column("Value")), ("Group", "Item"))
    assert build_snapshot([GROUP, ITEM]).shape() != build_snapshot([GROUP, changed]).shape()

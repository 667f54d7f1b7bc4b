"""Unit tests for print directives and header shapes."""

import pytest

from configdiff.errors import PrintModelError
from configdiff.printmodel import (
    HeaderCell,
    PrintDirective,
    PrintModel,
    default_directives,
    header_from_labels,
    simple_settings_header,
)
from configdiff.snapshot import Column, Table, build_snapshot

SNAP = build_snapshot(
    [
        Table("A", (Column("x"), Column("y"), Column("z")), ("x",)),
        Table("B", (Column("k"),), ("k",)),
    ]
)


class TestFromMapping:
    """Tests for PrintModel.from_mapping."""

    def test_aliases(self) -> None:
        model = PrintModel.from_mapping(
            {
                "directives": [{"table": 0, "column": 1, "hidden": True, "sort_order": 2}],
                "header": [{"row": 0, "column": 0, "label": "All", "col_span": 3}],
            }
        )
        assert model.directives == (PrintDirective(0, 1, hidden=True, sort_order=2),)
        assert model.header == (HeaderCell(0, 0, "All", col_span=3),)

    def test_unknown_field_raises(self) -> None:
        with pytest.raises(PrintModelError):
            PrintModel.from_mapping({"directives": [{"table": 0, "column": 0, "colour": "red"}]})

    def test_empty_mapping(self) -> None:
        model = PrintModel.from_mapping({})
        assert model.directives == ()
        assert model.header == ()


class TestDirectives:
    """Tests for directive lookups."""

    model = PrintModel(
        (
            PrintDirective(0, 2, sort_order=0),
            PrintDirective(0, 0, sort_order=1, change_ignored=True),
            PrintDirective(0, 1, hidden=True, sort_order=0),
            PrintDirective(1, 0),
        )
    )

    def test_sort_columns_ties_break_by_column(self) -> None:
        assert self.model.sort_columns(0) == [1, 2, 0]
        assert self.model.sort_columns(1) == []

    def test_visible_and_ignored(self) -> None:
        assert self.model.visible_columns(0) == [0, 2]
        assert self.model.ignored_columns(0) == frozenset({0})

    def test_directive_lookup(self) -> None:
        assert self.model.directive(0, 1).hidden is True
        with pytest.raises(PrintModelError):
            self.model.directive(2, 0)

    def test_validate_accepts_complete_model(self) -> None:
        self.model.validate(SNAP)
        default_directives(SNAP).validate(SNAP)

    def test_validate_missing_directive(self) -> None:
        model = PrintModel(self.model.directives[:-1])
        with pytest.raises(PrintModelError, match="missing"):
            model.validate(SNAP)

    def test_validate_duplicate_directive(self) -> None:
        model = PrintModel(self.model.directives + (PrintDirective(1, 0),))
        with pytest.raises(PrintModelError, match="duplicate"):
            model.validate(SNAP)

    def test_validate_out_of_range(self) -> None:
        with pytest.raises(PrintModelError):
            PrintModel(self.model.directives + (PrintDirective(1, 5),)).validate(SNAP)
        with pytest.raises(PrintModelError):
            PrintModel(self.model.directives + (PrintDirective(3, 0),)).validate(SNAP)

    def test_validate_bookmark_out_of_range(self) -> None:
        directives = (PrintDirective(0, 0, bookmark_index=7),) + self.model.directives[:1] + self.model.directives[2:]
        with pytest.raises(PrintModelError, match="bookmark"):
            PrintModel(directives).validate(SNAP)


def test_default_directives_cover_every_column() -> None:
    model = default_directives(SNAP)
    assert len(model.directives) == 4
    assert model.visible_columns(0) == [0, 1, 2]
    assert all(d.sort_order == -1 for d in model.directives)


class TestHeaderShape:
    """Tests for multi-row header validation."""

    # Attribute | Type | Precedence (spanning 5)
    #           |      | Rank | Connector | Object Type | Attribute | Mapping
    two_rows = PrintModel(
        (),
        (
            HeaderCell(0, 0, "Attribute", row_span=2),
            HeaderCell(0, 1, "Type", row_span=2),
            HeaderCell(0, 2, "Precedence", col_span=5),
            HeaderCell(1, 0, "Rank"),
            HeaderCell(1, 1, "Connector"),
            HeaderCell(1, 2, "Object Type"),
            HeaderCell(1, 3, "Attribute"),
            HeaderCell(1, 4, "Mapping"),
        ),
    )

    def test_row_spans_are_carried_down(self) -> None:
        self.two_rows.validate_header(7)

    def test_width_mismatch_raises(self) -> None:
        with pytest.raises(PrintModelError):
            self.two_rows.validate_header(6)

    def test_header_rows_grouped_and_ordered(self) -> None:
        rows = self.two_rows.header_rows()
        assert [len(r) for r in rows] == [3, 5]
        assert [c.label for c in rows[1]] == ["Rank", "Connector", "Object Type", "Attribute", "Mapping"]

    def test_non_positive_span_raises(self) -> None:
        with pytest.raises(PrintModelError):
            PrintModel((), (HeaderCell(0, 0, "Bad", col_span=0),)).validate_header(0)


def test_simple_settings_header_with_title() -> None:
    header = simple_settings_header({"Setting": 40, "Value": 60}, title="Options")
    assert header[0] == HeaderCell(0, 0, "Options", 1, 2, 100)
    assert header[1:] == (HeaderCell(1, 0, "Setting", width=40), HeaderCell(1, 1, "Value", width=60))
    PrintModel((), header).validate_header(2)


def test_simple_settings_header_without_title() -> None:
    header = simple_settings_header({"Setting": 40, "Value": 60})
    assert [c.row_index for c in header] == [0, 0]


def test_header_from_labels() -> None:
    assert header_from_labels(["a", "b"]) == (HeaderCell(0, 0, "a"), HeaderCell(0, 1, "b"))

"""
printmodel
==========

Declarative rendering metadata for a report section.

The print model never changes diff semantics except for one flag:
``change_ignored`` columns are carried through for display but left out of the
equality test that decides ``Modified`` vs ``Unchanged``.

Two shapes are supported:

- a *directive table*: one :class:`PrintDirective` per (table, column) pair
  controlling visibility, sort priority and bookmark wiring;
- a *header shape*: a list of :class:`HeaderCell` records describing a
  (possibly multi-row) header whose grouping differs from the physical columns.

Example (two-row header, the top cell spanning five detail columns)::

    Attribute | Type | Precedence
              |      | Rank | Connector | Object Type | Attribute | Mapping
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import PrintModelError
from .snapshot import Snapshot


@dataclass(frozen=True)
class PrintDirective:
    """Rendering control record for one column of one table.

    Attributes:
        table_index: Position of the table in its snapshot.
        column_index: Position of the column in its table.
        hidden: Suppress the column entirely (header and cells).
        sort_order: Sort priority, lowest first; ``-1`` leaves the column unordered.
        bookmark_index: Index of the column holding the identifier used to build
            an anchor around this cell; ``-1`` for none.
        jump_to_bookmark_index: Index of the column holding the identifier this
            cell links to; ``-1`` for none.
        change_ignored: Exclude the column from the Modified/Unchanged test.
    """

    table_index: int
    column_index: int
    hidden: bool = False
    sort_order: int = -1
    bookmark_index: int = -1
    jump_to_bookmark_index: int = -1
    change_ignored: bool = False


@dataclass(frozen=True)
class HeaderCell:
    """One header cell; ``column_index`` is the cell's position within its row."""

    row_index: int
    column_index: int
    label: str
    row_span: int = 1
    col_span: int = 1
    width: int = 0


_DIRECTIVE_KEYS = {
    "table": "table_index",
    "table_index": "table_index",
    "column": "column_index",
    "column_index": "column_index",
    "hidden": "hidden",
    "sort_order": "sort_order",
    "bookmark_index": "bookmark_index",
    "jump_to_bookmark_index": "jump_to_bookmark_index",
    "change_ignored": "change_ignored",
}

_HEADER_KEYS = {
    "row": "row_index",
    "row_index": "row_index",
    "column": "column_index",
    "column_index": "column_index",
    "label": "label",
    "row_span": "row_span",
    "col_span": "col_span",
    "width": "width",
}


def _rename(item: Mapping[str, Any], keys: Mapping[str, str], what: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in item.items():
        if k not in keys:
            raise PrintModelError(f"unknown {what} field {k!r}")
        out[keys[k]] = v
    return out


@dataclass(frozen=True)
class PrintModel:
    """Directive table plus an optional header shape."""

    directives: Tuple[PrintDirective, ...]
    header: Tuple[HeaderCell, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "directives", tuple(self.directives))
        object.__setattr__(self, "header", tuple(self.header))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PrintModel":
        """Build a model from plain ``directives`` / ``header`` lists of dicts."""
        directives = [PrintDirective(**_rename(d, _DIRECTIVE_KEYS, "directive")) for d in data.get("directives") or []]
        header = [HeaderCell(**_rename(h, _HEADER_KEYS, "header")) for h in data.get("header") or []]
        return cls(tuple(directives), tuple(header))

    def with_header(self, header: Iterable[HeaderCell]) -> "PrintModel":
        return PrintModel(self.directives, tuple(header))

    def directive(self, table_index: int, column_index: int) -> PrintDirective:
        for d in self.directives:
            if d.table_index == table_index and d.column_index == column_index:
                return d
        raise PrintModelError(f"no print directive for table {table_index}, column {column_index}")

    def directives_for(self, table_index: int) -> List[PrintDirective]:
        """Directives of one table ordered by column index."""
        return sorted((d for d in self.directives if d.table_index == table_index), key=lambda d: d.column_index)

    def sort_columns(self, table_index: int) -> List[int]:
        """Column indexes to sort by, highest priority first."""
        keyed = [d for d in self.directives_for(table_index) if d.sort_order >= 0]
        return [d.column_index for d in sorted(keyed, key=lambda d: (d.sort_order, d.column_index))]

    def visible_columns(self, table_index: int) -> List[int]:
        return [d.column_index for d in self.directives_for(table_index) if not d.hidden]

    def ignored_columns(self, table_index: int) -> frozenset:
        return frozenset(d.column_index for d in self.directives_for(table_index) if d.change_ignored)

    def header_rows(self) -> List[List[HeaderCell]]:
        """Header cells grouped by row, each row ordered by cell position."""
        rows: Dict[int, List[HeaderCell]] = {}
        for cell in self.header:
            rows.setdefault(cell.row_index, []).append(cell)
        return [sorted(rows[r], key=lambda c: c.column_index) for r in sorted(rows)]

    def validate(self, snapshot: Snapshot) -> None:
        """Check that every column of every table has exactly one directive.

        Raises
        ------
        PrintModelError
            A directive is missing, duplicated, out of range, or points its
            bookmark at a column that does not exist.
        """
        seen = set()
        for d in self.directives:
            pair = (d.table_index, d.column_index)
            if pair in seen:
                raise PrintModelError(f"duplicate print directive for table {pair[0]}, column {pair[1]}")
            seen.add(pair)
            if not 0 <= d.table_index < len(snapshot.tables):
                raise PrintModelError(f"print directive refers to unknown table {d.table_index}")
            width = len(snapshot.tables[d.table_index].columns)
            if not 0 <= d.column_index < width:
                raise PrintModelError(
                    f"print directive refers to unknown column {d.column_index} of table {d.table_index}"
                )
            for target in (d.bookmark_index, d.jump_to_bookmark_index):
                if target != -1 and not 0 <= target < width:
                    raise PrintModelError(
                        f"bookmark column {target} out of range for table {d.table_index}"
                    )

        for t_index, table in enumerate(snapshot.tables):
            for c_index, col in enumerate(table.columns):
                if (t_index, c_index) not in seen:
                    raise PrintModelError(f"missing print directive for {table.name}.{col.name}")

    def validate_header(self, column_count: int) -> None:
        """Check that every header row covers exactly *column_count* columns.

        Cells spanning several rows count towards each row they cover.
        """
        carried: Dict[int, int] = {}
        for pos, row in enumerate(self.header_rows()):
            width = carried.pop(pos, 0)
            for cell in row:
                if cell.row_span < 1 or cell.col_span < 1:
                    raise PrintModelError(f"header cell {cell.label!r} has a non-positive span")
                width += cell.col_span
                for below in range(pos + 1, pos + cell.row_span):
                    carried[below] = carried.get(below, 0) + cell.col_span
            if width != column_count:
                raise PrintModelError(
                    f"header row {pos} spans {width} column(s); table renders {column_count}"
                )


def default_directives(snapshot: Snapshot) -> PrintModel:
    """Every column visible, unordered, compared and without bookmarks."""
    return PrintModel(
        tuple(
            PrintDirective(t_index, c_index)
            for t_index, table in enumerate(snapshot.tables)
            for c_index in range(len(table.columns))
        )
    )


def simple_settings_header(columns: Mapping[str, int], title: Optional[str] = None) -> Tuple[HeaderCell, ...]:
    """Header shape for a plain settings table.

    ``columns`` maps labels to width percentages, in display order. With a
    *title*, a first header row holds one cell spanning every column.
    """
    cells: List[HeaderCell] = []
    row = 0
    if title is not None:
        cells.append(HeaderCell(0, 0, title, 1, max(len(columns), 1), 100))
        row = 1
    for pos, (label, width) in enumerate(columns.items()):
        cells.append(HeaderCell(row, pos, label, 1, 1, int(width)))
    return tuple(cells)


def header_from_labels(labels: Sequence[str]) -> Tuple[HeaderCell, ...]:
    """Single-row header with one unsized cell per label."""
    return tuple(HeaderCell(0, pos, label) for pos, label in enumerate(labels))

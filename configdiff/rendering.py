"""
rendering
=========

HTML table rendering of a sorted diffgram.

:func:`render` is a pure function of the diffgram, its print model, the header
shape and the report mode. It walks the root table and the chain of child
relations below it (for example group -> subgroup -> condition) and emits one
``<tr>`` per leaf line, merging each parent's cells over its group with
``rowspan`` instead of repeating them.

Cell rules
----------
- hidden columns are suppressed entirely, header included;
- ``Added`` and ``Deleted`` rows are styled with their status as class; a
  line takes the status of its outermost row, nested rows style their cells;
- ``Modified`` cells that actually differ show the new value followed by the
  struck-through old value (``changeIgnored`` columns never do);
- bookmark columns become anchors (and TOC entries), jump columns become links.
"""

from __future__ import annotations

import enum
import html
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from .bookmarks import TocEntry, bookmark_id, bookmark_markup, jump_markup
from .diffing import ChangeStatus, Diffgram, DiffRow, DiffTable
from .printmodel import HeaderCell, PrintModel, header_from_labels
from .snapshot import Relation
from .utils import cell_text
from .visibility import NO_HIDE, ReportMode, annotate, table_visibility_class


class TableSize(enum.Enum):
    """Width class of a rendered table."""

    STANDARD = "Standard"
    LARGE = "Large"
    HUGE = "Huge"


@dataclass
class _Cell:
    content: str
    css: str = ""
    rowspan: int = 1

    def markup(self) -> str:
        attrs = ""
        if self.css:
            attrs += f' class="{self.css}"'
        if self.rowspan > 1:
            attrs += f' rowspan="{self.rowspan}"'
        return f"<td{attrs}>{self.content}</td>"


@dataclass
class _Line:
    cells: List[_Cell]
    rows: List[DiffRow] = field(default_factory=list)

    def hideable(self) -> bool:
        return all(r.visibility != NO_HIDE for r in self.rows)

    def css(self) -> str:
        # the outermost row owns the line; nested rows style their own cells
        owner = self.rows[0]
        token = owner.visibility if self.hideable() else NO_HIDE
        return " ".join(c for c in (owner.status.value, token) if c)


@dataclass(frozen=True)
class _Level:
    table_index: int
    table: DiffTable
    relation: Optional[Relation]
    columns: Tuple[int, ...]


def table_chain(diffgram: Diffgram, table_index: int = 0) -> List[Tuple[int, Optional[Relation]]]:
    """Table indexes from *table_index* down its first child relation at each level."""
    chain: List[Tuple[int, Optional[Relation]]] = [(table_index, None)]
    name = diffgram.tables[table_index].name
    while True:
        children = diffgram.children_of(name)
        if not children:
            return chain
        if len(children) > 1:
            logger.debug("Table {!r} has {} child relations; rendering {!r}", name, len(children), children[0].name)
        relation = children[0]
        chain.append((diffgram.table_index(relation.child_table), relation))
        name = relation.child_table


class _TableRenderer:
    def __init__(self, diffgram: Diffgram, model: PrintModel, table_index: int) -> None:
        self.diffgram = diffgram
        self.model = model
        self.levels = [
            _Level(t, diffgram.tables[t], rel, tuple(model.visible_columns(t)))
            for t, rel in table_chain(diffgram, table_index)
        ]
        self.toc: List[TocEntry] = []

    @property
    def column_count(self) -> int:
        return sum(len(level.columns) for level in self.levels)

    def labels(self) -> List[str]:
        return [level.table.columns[c].name for level in self.levels for c in level.columns]

    def lines(self) -> List[_Line]:
        out: List[_Line] = []
        for row in self.levels[0].table.rows:
            out.extend(self._lines(0, row))
        return out

    def _lines(self, depth: int, row: DiffRow) -> List[_Line]:
        level = self.levels[depth]
        cells = self._cells(level, row)
        children: List[DiffRow] = []
        if depth + 1 < len(self.levels):
            children = self.diffgram.child_rows(self.levels[depth + 1].relation, row)

        if not children:
            blanks = [_Cell("") for deeper in self.levels[depth + 1:] for _ in deeper.columns]
            return [_Line(cells + blanks, [row])]

        lines: List[_Line] = []
        for child in children:
            lines.extend(self._lines(depth + 1, child))
        for cell in cells:
            cell.rowspan = len(lines)
        lines[0].cells[:0] = cells
        lines[0].rows.insert(0, row)
        return lines

    def _cells(self, level: _Level, row: DiffRow) -> List[_Cell]:
        ignored = self.model.ignored_columns(level.table_index)
        changed = set(row.changed_columns(ignored)) if row.status is ChangeStatus.MODIFIED else set()
        cells = []
        for col in level.columns:
            directive = self.model.directive(level.table_index, col)
            text = cell_text(row.new_values[col])
            content = html.escape(text)

            if directive.bookmark_index >= 0:
                identifier = cell_text(row.new_values[directive.bookmark_index])
                if identifier:
                    content = bookmark_markup(text, identifier, row.status)
                    self.toc.append(TocEntry(bookmark_id(identifier, row.status), text, row.status.value))
            elif directive.jump_to_bookmark_index >= 0:
                identifier = cell_text(row.new_values[directive.jump_to_bookmark_index])
                if identifier:
                    content = jump_markup(text, identifier, row.status)

            css = ""
            if row.status in (ChangeStatus.ADDED, ChangeStatus.DELETED):
                css = row.status.value
            elif col in changed:
                css = ChangeStatus.MODIFIED.value
                content += f"<br/><del>{html.escape(cell_text(row.old_values[col]))}</del>"
            cells.append(_Cell(content, css))
        return cells


def _th(cell: HeaderCell) -> str:
    attrs = ""
    if cell.row_span > 1:
        attrs += f' rowspan="{cell.row_span}"'
    if cell.col_span > 1:
        attrs += f' colspan="{cell.col_span}"'
    if cell.width > 0:
        attrs += f' style="width:{cell.width}%"'
    return f"<th{attrs}>{html.escape(cell.label)}</th>"


def render_header(header: Sequence[HeaderCell], column_count: int) -> str:
    """Render a header shape as ``<thead>``; raises if it does not fit the table."""
    shape = PrintModel((), tuple(header))
    shape.validate_header(column_count)
    rows = ["<tr>" + "".join(_th(c) for c in row) + "</tr>" for row in shape.header_rows()]
    return "<thead>\n" + "\n".join(rows) + "\n</thead>\n"


def render(
    diffgram: Diffgram,
    model: PrintModel,
    header: Optional[Sequence[HeaderCell]] = None,
    mode: ReportMode = ReportMode.COLLAPSIBLE,
    table_index: int = 0,
    size: TableSize = TableSize.STANDARD,
) -> Tuple[str, List[TocEntry]]:
    """Render one table of *diffgram* (with its child chain) as HTML.

    Parameters
    ----------
    diffgram:
        Reconciled and sorted diffgram.
    model:
        Print directives for every column of every table.
    header:
        Header shape; defaults to ``model.header`` and, when that is empty too,
        to one header cell per visible column.
    mode:
        Report mode deciding the visibility tokens.
    table_index:
        Root table to render.
    size:
        Width class of the table.

    Returns
    -------
    tuple
        ``(html, toc_entries)``; an empty root table renders as ``("", [])``.
    """
    diffgram = annotate(diffgram, mode)
    renderer = _TableRenderer(diffgram, model, table_index)
    if not renderer.levels[0].table.rows:
        return "", []

    shape = tuple(header) if header is not None else model.header
    if not shape:
        shape = header_from_labels(renderer.labels())
    thead = render_header(shape, renderer.column_count)

    lines = renderer.lines()
    body = []
    for line in lines:
        css = line.css()
        attrs = f' class="{css}"' if css else ""
        body.append(f"<tr{attrs}>" + "".join(c.markup() for c in line.cells) + "</tr>")

    has_visible = any(not line.hideable() for line in lines)
    table_class = " ".join(c for c in (size.value, table_visibility_class(mode, has_visible)) if c)
    out = f'<table class="{table_class}">\n' + thead + "<tbody>\n" + "\n".join(body) + "\n</tbody>\n</table>\n"
    return out, renderer.toc

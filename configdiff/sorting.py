"""
sorting
=======

Reorder the rows of a diffgram by the print model's sort directives.

Each table is sorted on its own with a stable sort, so rows that tie on every
sort column keep their reconciliation order. Relations are resolved by key
values, not by row position, so parent/child grouping survives any order.
"""

from __future__ import annotations

from numbers import Number
from typing import Any, List, Tuple

from .diffing import Diffgram, DiffRow, DiffTable
from .printmodel import PrintModel


def sort_value(value: Any) -> Tuple[int, Any]:
    """Return an ordering key for one cell value.

    Missing values sort first, then numbers (numerically), then text
    (case-insensitively).
    """
    if value is None or value == "":
        return (0, 0)
    if isinstance(value, Number) and not isinstance(value, bool):
        return (1, value)
    return (2, str(value).casefold())


def sort_rows(rows: List[DiffRow], columns: List[int]) -> List[DiffRow]:
    """Stable-sort *rows* by the given column indexes (highest priority first)."""
    if not columns:
        return list(rows)
    return sorted(rows, key=lambda row: tuple(sort_value(row.new_values[c]) for c in columns))


def sort_table(table: DiffTable, columns: List[int]) -> DiffTable:
    return table.with_rows(sort_rows(list(table.rows), columns))


def sort_snapshot(diffgram: Diffgram, model: PrintModel) -> Diffgram:
    """Return a new diffgram with each table's rows ordered by its sort directives.

    Tables without any directive ``sort_order >= 0`` keep reconciliation order.
    """
    tables = [sort_table(table, model.sort_columns(pos)) for pos, table in enumerate(diffgram.tables)]
    return diffgram.replace_tables(tables)

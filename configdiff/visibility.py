"""
visibility
==========

Per-row "render or suppress" tokens.

In :attr:`ReportMode.ALWAYS_SHOW` every row is rendered. In
:attr:`ReportMode.COLLAPSIBLE` ``Unchanged`` rows carry the ``CanHide`` class,
which the report's "only show changes" toggle hides on the client.

A parent row is forced visible when any of its descendants is visible, so a
changed detail row never loses the parent it belongs to. An ``Unchanged``
child of a ``Modified`` parent stays collapsible.
"""

from __future__ import annotations

import enum
from typing import Dict, List, Tuple

from .diffing import ChangeStatus, Diffgram, DiffRow, DiffTable, with_visibility
from .snapshot import dependency_order
from .utils import normalize_value

CAN_HIDE = "CanHide"
NO_HIDE = ""


class ReportMode(enum.Enum):
    """How unchanged rows are presented."""

    ALWAYS_SHOW = "always"
    COLLAPSIBLE = "collapsible"


def visibility_token(status: ChangeStatus, mode: ReportMode) -> str:
    """Return the visibility token for a row of the given status."""
    if mode is ReportMode.COLLAPSIBLE and status is ChangeStatus.UNCHANGED:
        return CAN_HIDE
    return NO_HIDE


def table_visibility_class(mode: ReportMode, has_visible_rows: bool = False) -> str:
    """Class for the ``<table>`` element itself.

    A collapsible table is hideable as a whole only when none of its rows is.
    """
    if mode is ReportMode.COLLAPSIBLE and not has_visible_rows:
        return CAN_HIDE
    return NO_HIDE


def annotate(diffgram: Diffgram, mode: ReportMode) -> Diffgram:
    """Return a new diffgram whose rows carry visibility tokens."""
    stamped: Dict[str, List[DiffRow]] = {
        t.name: [with_visibility(r, visibility_token(r.status, mode)) for r in t.rows] for t in diffgram.tables
    }
    if mode is ReportMode.ALWAYS_SHOW or not diffgram.relations:
        return diffgram.replace_tables(t.with_rows(stamped[t.name]) for t in diffgram.tables)

    # Children before parents, so a visible grandchild reaches the root.
    order = dependency_order([t.name for t in diffgram.tables], diffgram.relations)
    for name in reversed(order):
        relation = diffgram.parent_relation(name)
        if relation is None:
            continue
        child = diffgram.table(name)
        parent = diffgram.table(relation.parent_table)
        visible_keys = {
            _key(child, r, relation.child_columns) for r in stamped[name] if r.visibility == NO_HIDE
        }
        stamped[parent.name] = [
            with_visibility(r, NO_HIDE) if _key(parent, r, relation.parent_columns) in visible_keys else r
            for r in stamped[parent.name]
        ]

    return diffgram.replace_tables(t.with_rows(stamped[t.name]) for t in diffgram.tables)


def _key(table: DiffTable, row: DiffRow, names) -> Tuple:
    return tuple(normalize_value(v) for v in table.project(row.new_values, names))

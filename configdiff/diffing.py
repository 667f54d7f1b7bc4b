"""
diffing
=======

Relational diff of two same-shaped snapshots.

This module contains:
- the :class:`ChangeStatus` of a reconciled row
- the merged, change-annotated snapshot (the *diffgram*)
- :func:`reconcile`, the outer join of Pilot and Production rows by key
- :func:`create_diffgram_table` for sections whose statuses come from a
  pending change set rather than from a comparison

Pilot is the proposed configuration, Production the live one: a key found only
in Pilot is ``Added``, a key found only in Production is ``Deleted``.

"""

from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .errors import SchemaError, ShapeMismatch
from .printmodel import PrintModel
from .snapshot import Column, Relation, Row, Snapshot, Table, dependency_order
from .utils import normalize_value


class ChangeStatus(enum.Enum):
    """Change status of one reconciled row."""

    UNCHANGED = "Unchanged"
    ADDED = "Added"
    DELETED = "Deleted"
    MODIFIED = "Modified"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DiffRow:
    """Reconciliation result for one primary key.

    Attributes:
        key: Primary-key tuple.
        new_values: Pilot values; for ``Deleted`` rows a copy of ``old_values``
            so deleted content still renders.
        old_values: Production values; ``None`` for ``Added`` rows.
        status: The row's :class:`ChangeStatus`.
        visibility: Visibility token stamped by :mod:`configdiff.visibility`.
    """

    key: Tuple[Any, ...]
    new_values: Row
    old_values: Optional[Row]
    status: ChangeStatus
    visibility: str = ""

    def changed_columns(self, ignored: FrozenSet[int] = frozenset()) -> List[int]:
        """Indexes of columns whose old and new values differ."""
        if self.old_values is None:
            return []
        return [
            pos
            for pos, (new, old) in enumerate(zip(self.new_values, self.old_values))
            if pos not in ignored and normalize_value(new) != normalize_value(old)
        ]


@dataclass(frozen=True)
class DiffTable:
    """A table of :class:`DiffRow` objects sharing one schema."""

    name: str
    columns: Tuple[Column, ...]
    primary_key: Tuple[str, ...]
    rows: Tuple[DiffRow, ...] = ()

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def column_index(self, name: str) -> int:
        for pos, col in enumerate(self.columns):
            if col.name == name:
                return pos
        raise SchemaError(f"column {name!r} not found in table {self.name!r}")

    def project(self, values: Sequence[Any], names: Sequence[str]) -> Tuple[Any, ...]:
        return tuple(values[self.column_index(n)] for n in names)

    def with_rows(self, rows: Iterable[DiffRow]) -> "DiffTable":
        return DiffTable(self.name, self.columns, self.primary_key, tuple(rows))

    def counts(self) -> Dict[str, int]:
        counter = Counter(row.status for row in self.rows)
        return {status.value: counter.get(status, 0) for status in ChangeStatus}


@dataclass(frozen=True)
class Diffgram:
    """The merged, change-annotated snapshot of one report section."""

    tables: Tuple[DiffTable, ...]
    relations: Tuple[Relation, ...] = ()
    _children: Dict[str, Dict[Tuple[Any, ...], List[DiffRow]]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def table(self, name: str) -> DiffTable:
        for t in self.tables:
            if t.name == name:
                return t
        raise SchemaError(f"table {name!r} not found in diffgram")

    def table_index(self, name: str) -> int:
        for pos, t in enumerate(self.tables):
            if t.name == name:
                return pos
        raise SchemaError(f"table {name!r} not found in diffgram")

    def children_of(self, name: str) -> List[Relation]:
        return [r for r in self.relations if r.parent_table == name]

    def parent_relation(self, name: str) -> Optional[Relation]:
        for r in self.relations:
            if r.child_table == name:
                return r
        return None

    def replace_tables(self, tables: Iterable[DiffTable]) -> "Diffgram":
        return Diffgram(tuple(tables), self.relations)

    def child_rows(self, relation: Relation, parent_row: DiffRow) -> List[DiffRow]:
        """Rows of the relation's child table belonging to *parent_row*, in table order."""
        groups = self._children.get(relation.name)
        if groups is None:
            child = self.table(relation.child_table)
            groups = {}
            for row in child.rows:
                groups.setdefault(_parent_key(child, row.new_values, relation.child_columns), []).append(row)
            self._children[relation.name] = groups
        parent = self.table(relation.parent_table)
        return list(groups.get(_parent_key(parent, parent_row.new_values, relation.parent_columns), ()))

    def is_empty(self) -> bool:
        return all(not t.rows for t in self.tables)

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Status counts per table name."""
        return {t.name: t.counts() for t in self.tables}


def _parent_key(table: DiffTable, values: Sequence[Any], names: Sequence[str]) -> Tuple[Any, ...]:
    return tuple(normalize_value(v) for v in table.project(values, names))


def check_shape(pilot: Snapshot, production: Snapshot) -> None:
    """Raise :class:`ShapeMismatch` unless both snapshots declare the same shape."""
    pilot_names = [t.name for t in pilot.tables]
    production_names = [t.name for t in production.tables]
    if pilot_names != production_names:
        raise ShapeMismatch(f"tables differ: pilot={pilot_names} production={production_names}")

    for p, q in zip(pilot.tables, production.tables):
        if p.column_names != q.column_names:
            raise ShapeMismatch(
                f"table {p.name!r}: columns differ: pilot={list(p.column_names)} production={list(q.column_names)}"
            )
        if p.shape() != q.shape():
            raise ShapeMismatch(f"table {p.name!r}: column types or primary key differ")

    if pilot.relations != production.relations:
        raise ShapeMismatch("relations differ between pilot and production")


def _normalized(key: Tuple[Any, ...]) -> Tuple[Any, ...]:
    return tuple(normalize_value(v) for v in key)


def _merge_table(pilot: Table, production: Table, ignored: FrozenSet[int]) -> List[DiffRow]:
    key_positions = set(pilot.key_indexes)
    compared = [pos for pos in range(len(pilot.columns)) if pos not in key_positions and pos not in ignored]

    old_by_key: Dict[Tuple[Any, ...], Row] = {_normalized(production.key_of(r)): r for r in production.rows}
    merged: List[DiffRow] = []
    for row in pilot.rows:
        key = pilot.key_of(row)
        old = old_by_key.get(_normalized(key))
        if old is None:
            merged.append(DiffRow(key, row, None, ChangeStatus.ADDED))
            continue
        differs = any(normalize_value(row[pos]) != normalize_value(old[pos]) for pos in compared)
        merged.append(DiffRow(key, row, old, ChangeStatus.MODIFIED if differs else ChangeStatus.UNCHANGED))

    pilot_keys = {_normalized(pilot.key_of(r)) for r in pilot.rows}
    for row in production.rows:
        key = production.key_of(row)
        if _normalized(key) not in pilot_keys:
            merged.append(DiffRow(key, row, row, ChangeStatus.DELETED))
    return merged


def _drop_orphans(rows: List[DiffRow], child: DiffTable, parent: DiffTable, relation: Relation) -> List[DiffRow]:
    parent_keys = {_parent_key(parent, r.new_values, relation.parent_columns) for r in parent.rows}
    kept = []
    for row in rows:
        candidates = [row.new_values] if row.old_values is None else [row.new_values, row.old_values]
        if any(_parent_key(child, values, relation.child_columns) in parent_keys for values in candidates):
            kept.append(row)
    if len(kept) != len(rows):
        logger.debug(
            "Dropped {} orphan row(s) of {!r} without a parent in {!r}",
            len(rows) - len(kept),
            child.name,
            parent.name,
        )
    return kept


def reconcile(pilot: Snapshot, production: Snapshot, model: Optional[PrintModel] = None) -> Diffgram:
    """Merge two same-shaped snapshots into a diffgram.

    Parameters
    ----------
    pilot:
        The proposed configuration.
    production:
        The live configuration.
    model:
        Optional print model; its ``change_ignored`` columns are excluded from
        the Modified/Unchanged equality test.

    Returns
    -------
    Diffgram
        One :class:`DiffTable` per input table, in declaration order. Rows are
        Pilot rows in Pilot order followed by Production-only rows. Child rows
        whose parent key matches no reconciled parent row are dropped.

    Raises
    ------
    ShapeMismatch
        The snapshots disagree on tables, columns, keys or relations.
    """
    check_shape(pilot, production)

    merged: Dict[str, DiffTable] = {}
    for name in dependency_order([t.name for t in pilot.tables], pilot.relations):
        p = pilot.table(name)
        q = production.table(name)
        ignored = model.ignored_columns(pilot.table_index(name)) if model is not None else frozenset()
        table = DiffTable(p.name, p.columns, p.primary_key)
        rows = _merge_table(p, q, ignored)

        relation = pilot.parent_relation(name)
        if relation is not None:
            rows = _drop_orphans(rows, table, merged[relation.parent_table], relation)

        merged[name] = table.with_rows(rows)
        logger.debug("Reconciled table {!r}: {}", name, merged[name].counts())

    return Diffgram(tuple(merged[t.name] for t in pilot.tables), pilot.relations)


def create_diffgram_table(
    table: Table,
    entries: Iterable[Tuple[ChangeStatus, Optional[Sequence[Any]], Optional[Sequence[Any]]]],
) -> Diffgram:
    """Build a one-table diffgram from rows whose status is already known.

    Each entry is ``(status, new_values, old_values)``. ``Deleted`` entries
    without new values mirror their old values; ``Added`` entries drop any old
    values.

    Raises
    ------
    SchemaError
        A row has the wrong width or a status is missing the values it needs.
    """
    rows: List[DiffRow] = []
    for status, new, old in entries:
        if status is ChangeStatus.DELETED:
            if old is None:
                raise SchemaError(f"deleted row in {table.name!r} has no old values")
            new = old if new is None else new
        if new is None:
            raise SchemaError(f"{status.value.lower()} row in {table.name!r} has no new values")
        if status is ChangeStatus.ADDED:
            old = None
        elif old is None:
            old = new
        new = tuple(new)
        old = tuple(old) if old is not None else None
        for values in (new, old):
            if values is not None and len(values) != len(table.columns):
                raise SchemaError(f"row {values!r} does not match the columns of {table.name!r}")
        rows.append(DiffRow(table.key_of(new), new, old, status))
    return Diffgram((DiffTable(table.name, table.columns, table.primary_key, tuple(rows)),))


def with_visibility(row: DiffRow, token: str) -> DiffRow:
    """Return *row* stamped with a visibility token."""
    return replace(row, visibility=token)

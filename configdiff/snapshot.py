"""
snapshot
========

In-memory relational snapshots of one configuration side.

A :class:`Snapshot` is a small collection of typed tables plus the
parent -> child :class:`Relation` objects linking them (for example
rule -> condition group -> condition). Snapshots are built fresh for every
report section by the extraction layer and never mutated afterwards; every
"change" produces a new object.

Primary API
-----------
- :class:`Column`, :class:`Table`, :class:`Relation`, :class:`Snapshot`
- :func:`build_snapshot`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import DuplicateKeyError, SchemaError
from .utils import normalize_value

Row = Tuple[Any, ...]


@dataclass(frozen=True)
class Column:
    """A named, typed table column.

    Attributes:
        name: Column name, unique within its table.
        dtype: Value type (``str``, ``int`` or ``bool``). Used by producers to
            coerce raw values and by the sorter to order numbers numerically.
    """

    name: str
    dtype: type = str


@dataclass(frozen=True)
class Relation:
    """A parent -> child key linkage between two tables of one snapshot.

    ``parent_columns`` are the parent's primary-key columns; ``child_columns``
    are the matching columns of the child table (not unique on the child side).
    """

    name: str
    parent_table: str
    parent_columns: Tuple[str, ...]
    child_table: str
    child_columns: Tuple[str, ...]


@dataclass(frozen=True)
class Table:
    """An immutable table: ordered columns, a primary key and ordered rows."""

    name: str
    columns: Tuple[Column, ...]
    primary_key: Tuple[str, ...] = ()
    rows: Tuple[Row, ...] = ()
    _index: Dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "rows", tuple(tuple(r) for r in self.rows))

        index: Dict[str, int] = {}
        for pos, col in enumerate(self.columns):
            if col.name in index:
                raise SchemaError(f"duplicate column {col.name!r} in table {self.name!r}")
            index[col.name] = pos
        object.__setattr__(self, "_index", index)

        key = tuple(self.primary_key) or tuple(c.name for c in self.columns)
        for name in key:
            if name not in index:
                raise SchemaError(f"primary key column {name!r} not found in table {self.name!r}")
        object.__setattr__(self, "primary_key", key)

        seen = set()
        for row in self.rows:
            if len(row) != len(self.columns):
                raise SchemaError(
                    f"row {row!r} has {len(row)} value(s); table {self.name!r} has {len(self.columns)} column(s)"
                )
            k = self.key_of(row)
            # None and "" are the same key value
            normalized = tuple(normalize_value(v) for v in k)
            if normalized in seen:
                raise DuplicateKeyError(self.name, k)
            seen.add(normalized)

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    @property
    def key_indexes(self) -> Tuple[int, ...]:
        return tuple(self._index[name] for name in self.primary_key)

    def has_column(self, name: str) -> bool:
        return name in self._index

    def column_index(self, name: str) -> int:
        """Return the position of column *name*; raise ``SchemaError`` if absent."""
        try:
            return self._index[name]
        except KeyError:
            raise SchemaError(f"column {name!r} not found in table {self.name!r}") from None

    def key_of(self, row: Sequence[Any]) -> Tuple[Any, ...]:
        """Return the primary-key tuple of *row*."""
        return tuple(row[self._index[name]] for name in self.primary_key)

    def project(self, row: Sequence[Any], names: Sequence[str]) -> Tuple[Any, ...]:
        """Return the values of *row* for the given column names."""
        return tuple(row[self.column_index(name)] for name in names)

    def with_rows(self, rows: Iterable[Sequence[Any]]) -> "Table":
        """Return a copy of this table holding *rows* instead."""
        return Table(self.name, self.columns, self.primary_key, tuple(tuple(r) for r in rows))

    def shape(self) -> Tuple[Any, ...]:
        return (self.name, tuple((c.name, c.dtype.__name__) for c in self.columns), self.primary_key)


@dataclass(frozen=True)
class Snapshot:
    """Tables plus relations for one configuration side (Pilot or Production)."""

    tables: Tuple[Table, ...]
    relations: Tuple[Relation, ...] = ()

    def table(self, name: str) -> Table:
        for t in self.tables:
            if t.name == name:
                return t
        raise SchemaError(f"table {name!r} not found in snapshot")

    def table_index(self, name: str) -> int:
        for pos, t in enumerate(self.tables):
            if t.name == name:
                return pos
        raise SchemaError(f"table {name!r} not found in snapshot")

    def children_of(self, name: str) -> List[Relation]:
        """Relations whose parent is table *name*, in declaration order."""
        return [r for r in self.relations if r.parent_table == name]

    def parent_relation(self, name: str) -> Optional[Relation]:
        """The relation whose child is table *name*, if any."""
        for r in self.relations:
            if r.child_table == name:
                return r
        return None

    def dependency_order(self) -> List[str]:
        """Table names ordered parents before children.

        Ties keep declaration order. Raises ``SchemaError`` on a cycle.
        """
        return dependency_order([t.name for t in self.tables], self.relations)

    def shape(self) -> Tuple[Any, ...]:
        """A hashable signature of tables, columns, keys and relations."""
        return (tuple(t.shape() for t in self.tables), tuple(self.relations))

    def with_rows(self, name: str, rows: Iterable[Sequence[Any]]) -> "Snapshot":
        """Return a new snapshot where table *name* holds *rows*."""
        pos = self.table_index(name)
        tables = list(self.tables)
        tables[pos] = tables[pos].with_rows(rows)
        return Snapshot(tuple(tables), self.relations)

    def empty(self) -> "Snapshot":
        """Return a snapshot of the same shape without any rows."""
        return Snapshot(tuple(t.with_rows(()) for t in self.tables), self.relations)


def dependency_order(names: Sequence[str], relations: Sequence[Relation]) -> List[str]:
    """Topologically order *names* so that parents precede their children."""
    parents: Dict[str, List[str]] = {n: [] for n in names}
    for r in relations:
        parents[r.child_table].append(r.parent_table)

    ordered: List[str] = []
    done = set()
    remaining = list(names)
    while remaining:
        ready = [n for n in remaining if all(p in done for p in parents[n])]
        if not ready:
            raise SchemaError(f"relation cycle between tables: {', '.join(remaining)}")
        for n in ready:
            ordered.append(n)
            done.add(n)
        remaining = [n for n in remaining if n not in done]
    return ordered


def build_snapshot(tables: Iterable[Table], relations: Iterable[Relation] = ()) -> Snapshot:
    """Validate *tables* and *relations* and return a :class:`Snapshot`.

    Raises
    ------
    SchemaError
        Table names are not unique, a relation refers to an unknown table or
        column, its parent columns are not the parent's primary key, a table
        has more than one parent, or the relations form a cycle.
    """
    tables = tuple(tables)
    relations = tuple(
        Relation(r.name, r.parent_table, tuple(r.parent_columns), r.child_table, tuple(r.child_columns))
        for r in relations
    )

    by_name: Dict[str, Table] = {}
    for t in tables:
        if t.name in by_name:
            raise SchemaError(f"duplicate table {t.name!r} in snapshot")
        by_name[t.name] = t

    names = set()
    children = set()
    for r in relations:
        if r.name in names:
            raise SchemaError(f"duplicate relation {r.name!r}")
        names.add(r.name)
        for table_name in (r.parent_table, r.child_table):
            if table_name not in by_name:
                raise SchemaError(f"relation {r.name!r} refers to unknown table {table_name!r}")
        parent = by_name[r.parent_table]
        child = by_name[r.child_table]
        if set(r.parent_columns) != set(parent.primary_key) or len(r.parent_columns) != len(parent.primary_key):
            raise SchemaError(
                f"relation {r.name!r}: parent columns {list(r.parent_columns)} must be the primary key "
                f"{list(parent.primary_key)} of {parent.name!r}"
            )
        if len(r.child_columns) != len(r.parent_columns):
            raise SchemaError(f"relation {r.name!r}: parent and child column counts differ")
        for name in r.child_columns:
            child.column_index(name)
        if r.child_table in children:
            raise SchemaError(f"table {r.child_table!r} has more than one parent relation")
        children.add(r.child_table)

    dependency_order([t.name for t in tables], relations)
    return Snapshot(tables, relations)

"""
sources
=======

Generic producer of report sections from YAML (and CSV) files.

The engine itself never parses product configuration exports; it only
receives tables. This module is the plain-data producer used by the CLI: each
section definition declares its tables, relations and print model, and gives
the Pilot and Production rows inline or as CSV files.

Example ``sections.yml``::

    sections:
      - title: Metaverse Object Types
        level: 3
        size: Huge
        tables:
          - name: ObjectType
            columns: [Attribute, Type]
            key: [Attribute]
          - name: Precedence
            columns: [Attribute, {name: Rank, type: int}, Connector]
            key: [Attribute, Connector]
        relations:
          - name: ObjectTypePrecedence
            parent: ObjectType
            parent_columns: [Attribute]
            child: Precedence
            child_columns: [Attribute]
        directives:
          - {table: 0, column: 0, sort_order: 0}
        simple_header:
          columns: {Attribute: 30, Type: 20, Rank: 10, Connector: 40}
        pilot:
          ObjectType: [[mail, String]]
          Precedence: {csv: data/pilot_precedence.csv}
        production:
          ObjectType: [[mail, String]]

A section may instead list ``changes`` (``status``/``new``/``old`` entries) for
its first table, when the change status comes from a pending change set.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import yaml

from .diffing import ChangeStatus, create_diffgram_table
from .errors import SourceError
from .printmodel import PrintModel, default_directives, simple_settings_header
from .rendering import TableSize
from .reporting import Section
from .snapshot import Column, Relation, Snapshot, Table, build_snapshot

_TYPES = {"str": str, "string": str, "int": int, "integer": int, "bool": bool, "boolean": bool}
_TRUE = {"true", "yes", "1", "y"}
_FALSE = {"false", "no", "0", "n"}


def read_csv(input_path: Path, delimiter: str = ",", encoding: str = "utf-8") -> List[Dict[str, Any]]:
    """Read a CSV file with a header row into a list of dictionaries.

    Raises
    ------
    SourceError
        If the file doesn't exist.
    """
    if not input_path.exists():
        raise SourceError(f"CSV file not found: {input_path}")
    with input_path.open("r", newline="", encoding=encoding) as handle:
        return list(csv.DictReader(handle, delimiter=delimiter))


def coerce(value: Any, dtype: type) -> Any:
    """Convert a raw YAML/CSV value to the column type; blanks become ``None``."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    if dtype is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise SourceError(f"not a boolean: {value!r}")
    if dtype is int:
        if isinstance(value, bool):
            raise SourceError(f"not an integer: {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise SourceError(f"not an integer: {value!r}") from None
    return value if isinstance(value, str) else str(value)


def parse_columns(items: Sequence[Any]) -> Tuple[Column, ...]:
    """Columns from plain names or ``{name, type}`` mappings."""
    columns = []
    for item in items:
        if isinstance(item, str):
            columns.append(Column(item))
            continue
        if not isinstance(item, Mapping) or "name" not in item:
            raise SourceError(f"invalid column definition: {item!r}")
        type_name = str(item.get("type", "str")).lower()
        if type_name not in _TYPES:
            raise SourceError(f"unknown column type {type_name!r} for column {item['name']!r}")
        columns.append(Column(str(item["name"]), _TYPES[type_name]))
    return tuple(columns)


def _row(table: Table, raw: Any) -> Tuple[Any, ...]:
    if isinstance(raw, Mapping):
        unknown = set(raw) - set(table.column_names)
        if unknown:
            raise SourceError(f"unknown column(s) {sorted(unknown)} for table {table.name!r}")
        values = [raw.get(c.name) for c in table.columns]
    elif isinstance(raw, (list, tuple)):
        if len(raw) != len(table.columns):
            raise SourceError(f"row {raw!r} does not match the {len(table.columns)} column(s) of {table.name!r}")
        values = list(raw)
    else:
        raise SourceError(f"invalid row for table {table.name!r}: {raw!r}")
    return tuple(coerce(v, c.dtype) for v, c in zip(values, table.columns))


def read_rows(table: Table, source: Any, base_dir: Path) -> List[Tuple[Any, ...]]:
    """Rows for *table* from an inline list or a ``{csv: path}`` reference."""
    if source is None:
        return []
    if isinstance(source, Mapping):
        if "csv" not in source:
            raise SourceError(f"rows for {table.name!r} must be a list or {{csv: path}}")
        records: Iterable[Any] = read_csv(base_dir / source["csv"], delimiter=source.get("delimiter", ","))
    else:
        records = source
    return [_row(table, raw) for raw in records]


def _side(tables: Sequence[Table], relations: Sequence[Relation], data: Any, base_dir: Path) -> Snapshot:
    data = data or {}
    if not isinstance(data, Mapping):
        raise SourceError("pilot/production must map table names to rows")
    unknown = set(data) - {t.name for t in tables}
    if unknown:
        raise SourceError(f"rows given for unknown table(s): {sorted(unknown)}")
    filled = [t.with_rows(read_rows(t, data.get(t.name), base_dir)) for t in tables]
    return build_snapshot(filled, relations)


def _status(value: Any) -> ChangeStatus:
    for status in ChangeStatus:
        if str(value).strip().lower() == status.value.lower():
            return status
    raise SourceError(f"unknown change status {value!r}")


def _model(data: Mapping[str, Any], snapshot: Snapshot) -> PrintModel:
    if data.get("directives"):
        model = PrintModel.from_mapping({"directives": data["directives"], "header": data.get("header")})
    else:
        model = default_directives(snapshot).with_header(PrintModel.from_mapping({"header": data.get("header")}).header)
    simple = data.get("simple_header")
    if simple:
        if model.header:
            raise SourceError("give either header or simple_header, not both")
        model = model.with_header(simple_settings_header(simple.get("columns") or {}, simple.get("title")))
    return model


def parse_section(data: Mapping[str, Any], base_dir: Path) -> Section:
    """Build a :class:`~configdiff.reporting.Section` from one definition."""
    if not isinstance(data, Mapping) or "title" not in data:
        raise SourceError(f"section without title: {data!r}")
    title = str(data["title"])
    try:
        tables = tuple(
            Table(str(t["name"]), parse_columns(t["columns"]), tuple(t.get("key") or ()))
            for t in data.get("tables") or []
        )
        relations = tuple(
            Relation(
                str(r["name"]),
                str(r["parent"]),
                tuple(r["parent_columns"]),
                str(r["child"]),
                tuple(r["child_columns"]),
            )
            for r in data.get("relations") or []
        )
    except (AttributeError, KeyError, TypeError) as e:
        raise SourceError(f"section {title!r}: invalid table or relation definition: {e}") from e
    if not tables:
        raise SourceError(f"section {title!r} declares no tables")

    schema = build_snapshot(tables, relations)
    model = _model(data, schema)
    try:
        size = TableSize(str(data.get("size", "Standard")).capitalize())
    except ValueError:
        raise SourceError(f"section {title!r}: unknown size {data['size']!r}") from None
    status = _status(data["status"]) if data.get("status") else None
    common = dict(
        title=title,
        model=model,
        level=int(data.get("level", 3)),
        identifier=data.get("identifier"),
        status=status,
        table_index=int(data.get("table", 0)),
        size=size,
    )

    if "changes" in data:
        if len(tables) != 1:
            raise SourceError(f"section {title!r}: changes need exactly one table")
        root = tables[0]
        entries = []
        for change in data["changes"] or []:
            new: Optional[Tuple[Any, ...]] = _row(root, change["new"]) if change.get("new") is not None else None
            old: Optional[Tuple[Any, ...]] = _row(root, change["old"]) if change.get("old") is not None else None
            entries.append((_status(change.get("status", "Modified")), new, old))
        diffgram = create_diffgram_table(root, entries)
        return Section(diffgram=diffgram, **common)

    pilot = _side(tables, relations, data.get("pilot"), base_dir)
    production = _side(tables, relations, data.get("production"), base_dir)
    return Section(pilot=pilot, production=production, **common)


def load_sections(path: Path) -> List[Section]:
    """Load every section defined in the YAML file at *path*."""
    if not path.exists():
        raise SourceError(f"section file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SourceError(f"invalid YAML in {path}: {e}") from e
    items = doc.get("sections") if isinstance(doc, Mapping) else doc
    if not isinstance(items, list):
        raise SourceError(f"{path}: expected a list of sections")
    return [parse_section(item, path.parent) for item in items]

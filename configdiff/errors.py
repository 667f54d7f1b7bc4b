"""
errors
======

Exception types raised by the diff/render engine.

Contract violations (schema definitions that do not resolve, snapshots that
disagree on shape, print models that do not cover every column) are
programming errors of the section that supplied them and abort that section.
Data conditions, such as a child row whose parent exists on neither side, are
not errors and never raise.
"""

from __future__ import annotations


class ConfigDiffError(Exception):
    """Base class for every error raised by :mod:`configdiff`."""


class SchemaError(ConfigDiffError, ValueError):
    """A table, relation or snapshot definition is internally inconsistent."""


class DuplicateKeyError(SchemaError):
    """Two rows of the same table share a primary-key tuple."""

    def __init__(self, table: str, key: tuple) -> None:
        super().__init__(f"duplicate primary key {key!r} in table {table!r}")
        self.table = table
        self.key = key


class ShapeMismatch(ConfigDiffError):
    """Pilot and Production snapshots do not declare the same shape."""


class PrintModelError(ConfigDiffError, ValueError):
    """The print directives or header shape do not match the rendered tables."""


class SourceError(ConfigDiffError):
    """A section definition file is malformed."""

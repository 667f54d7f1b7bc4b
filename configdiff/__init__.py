"""
configdiff
==========

Pilot vs Production configuration diff rendered as an HTML report.

The modules are used together via the CLI entry point:

- :mod:`configdiff.cli`

and, as a library, through the section pipeline:

- :mod:`configdiff.snapshot` (tables, relations)
- :mod:`configdiff.diffing` (reconciliation into a diffgram)
- :mod:`configdiff.sorting`, :mod:`configdiff.visibility`
- :mod:`configdiff.rendering`, :mod:`configdiff.bookmarks`
- :mod:`configdiff.reporting` (sections and the report writer)
"""

from .diffing import ChangeStatus, Diffgram, DiffRow, DiffTable, create_diffgram_table, reconcile
from .errors import ConfigDiffError, DuplicateKeyError, PrintModelError, SchemaError, ShapeMismatch, SourceError
from .printmodel import HeaderCell, PrintDirective, PrintModel, default_directives, simple_settings_header
from .rendering import TableSize, render
from .reporting import ReportWriter, Section, SectionResult, run_section
from .snapshot import Column, Relation, Snapshot, Table, build_snapshot
from .sorting import sort_snapshot
from .visibility import ReportMode, annotate

__version__ = "0.1.0"

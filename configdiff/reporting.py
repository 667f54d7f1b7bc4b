"""
reporting
=========

Per-section pipeline and HTML report assembly.

Each report section is described by a :class:`Section` and processed on its
own by :func:`run_section` (reconcile -> sort -> annotate -> render) into a
:class:`SectionResult`. Nothing is shared between sections except the
:class:`ReportWriter`, which holds the two output streams (report body and
table of contents) for the whole report.

Primary API
-----------
- :class:`Section`, :class:`SectionResult`, :func:`run_section`
- :class:`ReportWriter`
- :func:`generate_summary_md`

Notes
-----
The writer streams into temporary files next to the final report and only
moves the assembled document into place when the ``with`` block exits
normally. A failure anywhere leaves no partial report behind.
"""

from __future__ import annotations

import datetime as dt
import html
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple

from loguru import logger

from .bookmarks import TocEntry, section_header, title_anchor, toc_item
from .diffing import ChangeStatus, Diffgram, reconcile
from .errors import SchemaError
from .printmodel import HeaderCell, PrintModel, default_directives
from .rendering import TableSize, render
from .snapshot import Snapshot
from .sorting import sort_snapshot
from .visibility import ReportMode

NO_CONFIGURATION = "No configuration detected."

_STYLE = """
body { font-family: Segoe UI, Arial, sans-serif; font-size: 10pt; }
table { border-collapse: collapse; margin-bottom: 1em; }
table.Standard { width: 60%; }
table.Large { width: 80%; }
table.Huge { width: 100%; }
th, td { border: 1px solid #999; padding: 2px 6px; text-align: left; vertical-align: top; }
th { background: #ddd; }
.Added { background: #d5f5d5; }
.Deleted { background: #f5d5d5; text-decoration: line-through; }
td.Modified { background: #fff3c4; }
del { color: #a00; }
ul.Toc { list-style: none; }
li.TocLevel2 { margin-left: 0; }
li.TocLevel3 { margin-left: 1em; }
li.TocLevel4 { margin-left: 2em; }
li.TocLevel5 { margin-left: 3em; }
li.TocLevel6 { margin-left: 4em; }
""".strip()

_SCRIPT = """
function ToggleVisibility() {
    var x = document.getElementById("OnlyShowChanges");
    var elements = document.getElementsByClassName("CanHide");
    for (var i = 0; i < elements.length; ++i) {
        elements[i].style.display = x.checked ? "none" : "";
    }
}
""".strip()


def write_text(path: Path, content: str) -> None:
    """Write UTF-8 text to *path* with normalized newlines.

    Parameters
    ----------
    path:
        File path to write.
    content:
        Text content.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    path.write_text(content, encoding="utf-8")


@dataclass(frozen=True)
class Section:
    """Inputs of one report section.

    Either ``pilot`` and ``production`` are given and reconciled, or
    ``diffgram`` holds rows whose change status is already known (sections
    driven by a pending change set).

    Attributes:
        title: Section heading.
        pilot: Proposed configuration tables.
        production: Live configuration tables.
        model: Print directives; defaults to every column visible and unordered.
        header: Header shape; defaults to the model's, then to column names.
        level: Heading level.
        identifier: Stable identifier of the documented object, for its anchor.
        status: Change status of the documented object, if known.
        table_index: Root table to render.
        size: Width class of the rendered table.
        diffgram: Pre-reconciled rows, used instead of pilot/production.
    """

    title: str
    pilot: Optional[Snapshot] = None
    production: Optional[Snapshot] = None
    model: Optional[PrintModel] = None
    header: Tuple[HeaderCell, ...] = ()
    level: int = 3
    identifier: Optional[str] = None
    status: Optional[ChangeStatus] = None
    table_index: int = 0
    size: TableSize = TableSize.STANDARD
    diffgram: Optional[Diffgram] = None


@dataclass(frozen=True)
class SectionResult:
    """Outputs of one processed section."""

    section: Section
    diffgram: Diffgram
    html: str
    toc: List[TocEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.diffgram.is_empty()


def run_section(section: Section, mode: ReportMode) -> SectionResult:
    """Reconcile, sort and render one section.

    Raises
    ------
    ShapeMismatch
        Pilot and Production disagree on shape.
    PrintModelError
        The print model does not cover the section's tables.
    SchemaError
        The section has neither snapshots nor a diffgram.
    """
    logger.info("Processing {}.", section.title)

    if section.diffgram is not None:
        diffgram = section.diffgram
        model = section.model or default_directives(diffgram)
        model.validate(diffgram)
    else:
        if section.pilot is None or section.production is None:
            raise SchemaError(f"section {section.title!r} needs pilot and production snapshots or a diffgram")
        model = section.model or default_directives(section.pilot)
        model.validate(section.pilot)
        diffgram = reconcile(section.pilot, section.production, model)

    diffgram = sort_snapshot(diffgram, model)
    markup, toc = render(
        diffgram,
        model,
        header=section.header or None,
        mode=mode,
        table_index=section.table_index,
        size=section.size,
    )
    logger.debug("Section {!r}: {}", section.title, diffgram.summary())
    return SectionResult(section, diffgram, markup, toc)


class ReportWriter:
    """Scoped owner of the report body and table-of-contents streams.

    Usage::

        with ReportWriter(out_path, "MIM Configuration") as writer:
            for section in sections:
                writer.write_section(run_section(section, writer.mode))

    Parameters
    ----------
    out_path:
        Final HTML report path.
    title:
        Report title.
    pilot_label, production_label:
        Names of the compared configurations, shown in the report header.
    mode:
        Report mode; collapsible reports get the "only show changes" toggle.
    """

    def __init__(
        self,
        out_path: Path,
        title: str,
        pilot_label: str = "Pilot",
        production_label: str = "Production",
        mode: ReportMode = ReportMode.COLLAPSIBLE,
    ) -> None:
        self.out_path = Path(out_path)
        self.title = title
        self.pilot_label = pilot_label
        self.production_label = production_label
        self.mode = mode
        self.body_path = self.out_path.with_name(self.out_path.stem + ".tmp.html")
        self.toc_path = self.out_path.with_name(self.out_path.stem + ".TOC.tmp.html")
        self.results: List[SectionResult] = []
        self._body: Optional[TextIO] = None
        self._toc: Optional[TextIO] = None
        self._anchors: Dict[str, int] = {}

    def __enter__(self) -> "ReportWriter":
        self.out_path.parent.mkdir(parents=True, exist_ok=True)
        self._body = self.body_path.open("w", encoding="utf-8")
        try:
            self._toc = self.toc_path.open("w", encoding="utf-8")
        except OSError:
            self._body.close()
            self._discard()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self._close()
            if exc_type is None:
                self._assemble()
            else:
                logger.error("Report generation aborted; nothing written to {}", self.out_path)
        finally:
            self._discard()
        return False

    def _close(self) -> None:
        try:
            if self._body is not None:
                self._body.close()
        finally:
            if self._toc is not None:
                self._toc.close()

    def _discard(self) -> None:
        for path in (self.body_path, self.toc_path):
            if path.exists():
                path.unlink()

    def _streams(self) -> Tuple[TextIO, TextIO]:
        if self._body is None or self._toc is None or self._body.closed:
            raise RuntimeError("ReportWriter is not open; use it as a context manager")
        return self._body, self._toc

    def _unique_anchor(self, anchor: str) -> str:
        count = self._anchors.get(anchor, 0) + 1
        self._anchors[anchor] = count
        return anchor if count == 1 else f"{anchor}-{count}"

    def write_section_header(
        self,
        title: str,
        level: int,
        identifier: Optional[str] = None,
        status: Optional[ChangeStatus] = None,
    ) -> TocEntry:
        """Write a heading to the body and its entry to the table of contents."""
        body, toc = self._streams()
        markup, entry = section_header(title, level, identifier, status)
        if not identifier:
            unique = self._unique_anchor(entry.id)
            if unique != entry.id:
                markup, entry = section_header(title, level, identifier, status, anchor=unique)
        body.write(markup)
        toc.write(toc_item(entry))
        return entry

    def write_paragraph(self, text: str) -> None:
        body, _ = self._streams()
        body.write(f"<p>{html.escape(text)}</p>\n")

    def write_section(self, result: SectionResult) -> None:
        """Write a processed section: heading, table (or a placeholder) and TOC entries."""
        section = result.section
        entry = self.write_section_header(section.title, section.level, section.identifier, section.status)
        body, toc = self._streams()
        if result.html:
            body.write(result.html)
        else:
            self.write_paragraph(NO_CONFIGURATION)
        for bookmark in result.toc:
            toc.write(toc_item(TocEntry(bookmark.id, bookmark.label, bookmark.status, entry.level + 1)))
        body.flush()
        toc.flush()
        self.results.append(result)

    def _assemble(self) -> None:
        body = self.body_path.read_text(encoding="utf-8")
        toc = self.toc_path.read_text(encoding="utf-8")
        now = dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        parts: List[str] = [
            "<!DOCTYPE html>\n",
            '<html>\n<head>\n<meta charset="utf-8"/>\n',
            f"<title>{html.escape(self.title)}</title>\n",
            f"<style>\n{_STYLE}\n</style>\n",
            f"<script>\n{_SCRIPT}\n</script>\n",
            "</head>\n<body>\n",
            f"<h1>{html.escape(self.title)}</h1>\n",
            f"<p>Pilot: <strong>{html.escape(self.pilot_label)}</strong> | "
            f"Production: <strong>{html.escape(self.production_label)}</strong> | "
            f"Generated: {now}</p>\n",
        ]
        if self.mode is ReportMode.COLLAPSIBLE:
            parts.append(
                '<p><label><input type="checkbox" id="OnlyShowChanges" onclick="ToggleVisibility();"/> '
                "Only show changes</label></p>\n"
            )
        if toc:
            parts.append(f'<h2>Contents</h2>\n<ul class="Toc">\n{toc}</ul>\n')
        parts.append(body)
        parts.append("</body>\n</html>\n")

        partial = self.out_path.with_name(self.out_path.name + ".part")
        try:
            write_text(partial, "".join(parts))
            os.replace(partial, self.out_path)
        finally:
            if partial.exists():
                partial.unlink()
        logger.info("Report written to {}", self.out_path)


def generate_summary_md(out_dir: Path, header_lines: List[str], results: List[SectionResult]) -> Path:
    """Generate a Markdown summary of change counts per section.

    Parameters
    ----------
    out_dir:
        Output directory where ``SUMMARY.md`` is written.
    header_lines:
        Bullet-style lines to include near the top (config/labels/mode).
    results:
        Processed sections, in report order.

    Returns
    -------
    pathlib.Path
        The path to the generated ``SUMMARY.md``.
    """
    summary_path = out_dir / "SUMMARY.md"
    now = dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    statuses = [s.value for s in ChangeStatus]

    lines: List[str] = []
    lines.append("# Configuration Diff Summary\n\n")
    lines.append(f"_Generated: {now}_\n\n")

    if header_lines:
        for h in header_lines:
            lines.append(h + "\n")
        lines.append("\n")

    lines.append("## Contents\n")
    for result in results:
        lines.append(f"- [{result.section.title}](#{title_anchor(result.section.title)})\n")
    lines.append("\n")

    for result in results:
        lines.append(f"## {result.section.title}\n\n")
        summary = result.diffgram.summary()
        changed = {
            name: counts for name, counts in summary.items() if counts["Added"] or counts["Deleted"] or counts["Modified"]
        }
        if not changed:
            lines.append("- No differences\n\n")
            continue
        lines.append("| Table | " + " | ".join(statuses) + " |\n")
        lines.append("|---" * (len(statuses) + 1) + "|\n")
        for name, counts in changed.items():
            lines.append(f"| {name} | " + " | ".join(str(counts[s]) for s in statuses) + " |\n")
        lines.append("\n")

    write_text(summary_path, "".join(lines))
    return summary_path

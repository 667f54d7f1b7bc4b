from pathlib import Path

import pytest

from configdiff.diffing import ChangeStatus, create_diffgram_table
from configdiff.errors import PrintModelError, SchemaError
from configdiff.printmodel import PrintDirective, PrintModel
from configdiff.reporting import (
    NO_CONFIGURATION,
    ReportWriter,
    Section,
    generate_summary_md,
    run_section,
    write_text,
)
from configdiff.snapshot import Column, Table, build_snapshot
from configdiff.visibility import ReportMode

SETTINGS = Table("Settings", (Column("Name"), Column("Value")), ("Name",))


def section(title: str, pilot_rows, production_rows, **kwargs) -> Section:
    return Section(
        title,
        pilot=build_snapshot([SETTINGS.with_rows(pilot_rows)]),
        production=build_snapshot([SETTINGS.with_rows(production_rows)]),
        **kwargs,
    )


def test_write_text_normalizes_newlines(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "file.txt"
    write_text(path, "a\r\nb\rc")
    assert path.read_text(encoding="utf-8") == "a\nb\nc"


class TestRunSection:
    """Tests for the per-section pipeline."""

    def test_reconciles_sorts_and_renders(self) -> None:
        model = PrintModel((PrintDirective(0, 0, sort_order=0), PrintDirective(0, 1)))
        result = run_section(section("Options", [("b", "2"), ("a", "1")], [("a", "0")], model=model), ReportMode.COLLAPSIBLE)
        assert [r.key for r in result.diffgram.table("Settings").rows] == [("a",), ("b",)]
        assert result.html.index(">a<") < result.html.index(">b<")
        assert not result.is_empty

    def test_empty_section(self) -> None:
        result = run_section(section("Options", [], []), ReportMode.COLLAPSIBLE)
        assert result.is_empty
        assert result.html == ""

    def test_precomputed_diffgram(self) -> None:
        diffgram = create_diffgram_table(SETTINGS, [(ChangeStatus.ADDED, ("a", "1"), None)])
        result = run_section(Section("Pending", diffgram=diffgram), ReportMode.ALWAYS_SHOW)
        assert '<tr class="Added">' in result.html

    def test_missing_inputs_raise(self) -> None:
        with pytest.raises(SchemaError):
            run_section(Section("Nothing"), ReportMode.COLLAPSIBLE)

    def test_incomplete_model_raises(self) -> None:
        model = PrintModel((PrintDirective(0, 0),))
        with pytest.raises(PrintModelError):
            run_section(section("Options", [("a", "1")], [], model=model), ReportMode.COLLAPSIBLE)


class TestReportWriter:
    """Tests for the scoped report writer."""

    def test_assembles_report(self, tmp_path: Path) -> None:
        out = tmp_path / "out" / "report.html"
        with ReportWriter(out, "MIM Configuration", "Pilot", "Prod") as writer:
            writer.write_section(run_section(section("Options", [("a", "1")], []), writer.mode))
            writer.write_section(run_section(section("Empty", [], []), writer.mode))

        content = out.read_text(encoding="utf-8")
        assert content.startswith("<!DOCTYPE html>")
        assert "<title>MIM Configuration</title>" in content
        assert "<strong>Prod</strong>" in content
        assert 'id="OnlyShowChanges"' in content
        assert '<h3><a id="options">Options</a></h3>' in content
        assert '<li class="TocLevel3"><a href="#empty">Empty</a></li>' in content
        assert f"<p>{NO_CONFIGURATION}</p>" in content
        assert [r.section.title for r in writer.results] == ["Options", "Empty"]
        assert sorted(p.name for p in out.parent.iterdir()) == ["report.html"]

    def test_always_show_has_no_toggle(self, tmp_path: Path) -> None:
        out = tmp_path / "report.html"
        with ReportWriter(out, "Report", mode=ReportMode.ALWAYS_SHOW) as writer:
            writer.write_paragraph("hello")
        content = out.read_text(encoding="utf-8")
        assert "OnlyShowChanges" not in content.split("<body>")[1]
        assert "<p>hello</p>" in content

    def test_bookmarks_are_listed_below_their_section(self, tmp_path: Path) -> None:
        table = Table("Agents", (Column("Guid"), Column("Name")), ("Guid",))
        model = PrintModel((PrintDirective(0, 0, hidden=True), PrintDirective(0, 1, bookmark_index=0)))
        agents = Section(
            "Agents",
            pilot=build_snapshot([table.with_rows([("{AB}", "HR")])]),
            production=build_snapshot([table]),
            model=model,
            level=2,
        )
        out = tmp_path / "report.html"
        with ReportWriter(out, "Report") as writer:
            writer.write_section(run_section(agents, writer.mode))
        content = out.read_text(encoding="utf-8")
        assert '<li class="TocLevel3"><a href="#ab_Added" class="Added">HR</a></li>' in content

    def test_duplicate_titles_get_unique_anchors(self, tmp_path: Path) -> None:
        out = tmp_path / "report.html"
        with ReportWriter(out, "Report") as writer:
            first = writer.write_section_header("Options", 3)
            second = writer.write_section_header("Options", 3)
        assert first.id == "options"
        assert second.id == "options-2"

    def test_error_leaves_no_report(self, tmp_path: Path) -> None:
        """A failure inside the block writes nothing and removes temp files."""
        out = tmp_path / "report.html"
        with pytest.raises(RuntimeError, match="boom"):
            with ReportWriter(out, "Report") as writer:
                writer.write_paragraph("partial")
                raise RuntimeError("boom")
        assert list(tmp_path.iterdir()) == []

    def test_failed_write_removes_partial_report(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A disk error while writing the document leaves no .part file behind."""

        def failing_write(path: Path, content: str) -> None:
            path.write_text(content[:10], encoding="utf-8")
            raise OSError("disk full")

        monkeypatch.setattr("configdiff.reporting.write_text", failing_write)
        out = tmp_path / "report.html"
        with pytest.raises(OSError, match="disk full"):
            with ReportWriter(out, "Report") as writer:
                writer.write_paragraph("content")
        assert list(tmp_path.iterdir()) == []

    def test_write_outside_context_raises(self, tmp_path: Path) -> None:
        writer = ReportWriter(tmp_path / "report.html", "Report")
        with pytest.raises(RuntimeError):
            writer.write_paragraph("too early")


def test_generate_summary_md_counts_changes(tmp_path: Path) -> None:
    changed = run_section(section("Options", [("a", "1"), ("b", "2")], [("a", "0")]), ReportMode.COLLAPSIBLE)
    same = run_section(section("Same", [("a", "1")], [("a", "1")]), ReportMode.COLLAPSIBLE)

    summary_path = generate_summary_md(tmp_path, ["- Pilot: Pilot"], [changed, same])
    content = summary_path.read_text(encoding="utf-8")

    assert summary_path.name == "SUMMARY.md"
    assert "- [Options](#options)" in content
    assert "| Settings | 0 | 1 | 0 | 1 |" in content
    assert "## Same\n\n- No differences" in content

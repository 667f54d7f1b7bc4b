"""
cli
===

``configdiff`` console entry point.

Usage::

    configdiff --config config.yml
    configdiff --config config.yml --mode always --out out/
    configdiff --config config.yml --include 'Metaverse%' --exclude 're:^Run Profile'

Sections are processed one at a time, in file order, and written into a
single HTML report. Any error aborts the run without leaving a report behind.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from .config import ReportOptions, SectionFilter, load_config, read_options, read_section_filter
from .errors import ConfigDiffError
from .logger import setup_logger
from .reporting import ReportWriter, Section, generate_summary_md, run_section
from .sources import load_sections
from .utils import filter_names


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="configdiff",
        description="Pilot vs Production configuration diff as an HTML report with YAML config + section filters.",
    )
    ap.add_argument("--config", default="config.yml", help="Path to config.yml (default: config.yml)")
    ap.add_argument("--out", default=None, help="Override out_dir from config")
    ap.add_argument("--mode", default=None, choices=["always", "collapsible"], help="Override report mode")
    ap.add_argument(
        "--include",
        action="append",
        default=[],
        help="Include section title pattern (repeatable). SQL LIKE (%% _) or regex via re:...",
    )
    ap.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Exclude section title pattern (repeatable). SQL LIKE (%% _) or regex via re:...",
    )
    ap.add_argument("--verbose", action="store_true", help="Log debug details (diff counts, dropped orphans)")
    return ap


def select_sections(sections: Sequence[Section], section_filter: SectionFilter) -> List[Section]:
    """Sections whose titles pass the include/exclude patterns, in file order."""
    kept = set(filter_names([s.title for s in sections], section_filter.include, section_filter.exclude))
    return [s for s in sections if s.title in kept]


def generate_report(options: ReportOptions, sections: Sequence[Section]) -> Tuple[Path, Path]:
    """Run every section, write the report and its Markdown summary.

    Returns
    -------
    tuple
        ``(report_path, summary_path)``.
    """
    with ReportWriter(
        options.report_path,
        options.title,
        options.pilot_label,
        options.production_label,
        options.mode,
    ) as writer:
        for section in sections:
            writer.write_section(run_section(section, options.mode))

    header = [
        f"- Pilot: {options.pilot_label}",
        f"- Production: {options.production_label}",
        f"- Mode: {options.mode.value}",
        f"- Report: `{options.report_path.name}`",
    ]
    summary_path = generate_summary_md(options.out_dir, header, writer.results)
    return options.report_path, summary_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI entry-point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    cfg_path = Path(args.config).resolve()
    cfg = load_config(cfg_path)
    options = read_options(cfg, args, cfg_path.parent)
    setup_logger(options.log_level, options.log_file)

    try:
        sections: List[Section] = []
        for path in options.sections:
            sections.extend(load_sections(path))
        selected = select_sections(sections, read_section_filter(cfg, args))
        logger.info("{} of {} section(s) selected", len(selected), len(sections))
        report_path, summary_path = generate_report(options, selected)
    except (ConfigDiffError, OSError) as e:
        logger.error("{}: {}", type(e).__name__, e)
        return 1

    print(f"Report : {report_path}")
    print(f"Summary: {summary_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

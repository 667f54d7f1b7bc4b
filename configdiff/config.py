"""
config
======

YAML configuration for a report run.

Example ``config.yml``::

    title: MIM Configuration
    out_dir: out
    report_name: null
    mode: collapsible          # or "always"

    pilot:
      label: Pilot
    production:
      label: Production

    section_filter:
      include: ["Metaverse%"]
      exclude: ["re:^Run Profile"]

    log:
      level: INFO
      file: null

    sections:
      - sections/metaverse.yml
      - sections/connectors.yml

Values are resolved with the precedence environment variable
(``CONFIGDIFF_<FIELD>``) > CLI flag > config file > default.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .utils import safe_name
from .visibility import ReportMode

ENV_PREFIX = "CONFIGDIFF"


@dataclass(frozen=True)
class SectionFilter:
    """Include/exclude patterns for section titles."""

    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReportOptions:
    """Resolved settings for one report run.

    Attributes:
        title: Report title.
        out_dir: Directory receiving the report.
        report_name: File name of the report; derived from the labels when unset.
        mode: Report mode.
        pilot_label: Name of the proposed configuration.
        production_label: Name of the live configuration.
        log_level: loguru level name.
        log_file: Optional log file.
        sections: Section definition files.
    """

    title: str
    out_dir: Path
    report_name: Optional[str]
    mode: ReportMode
    pilot_label: str
    production_label: str
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    sections: List[Path] = field(default_factory=list)

    @property
    def report_path(self) -> Path:
        name = self.report_name or (
            f"{safe_name(self.pilot_label)}_vs_{safe_name(self.production_label)}_report.html"
        )
        return self.out_dir / name


def load_config(path: Path) -> Dict[str, Any]:
    """Load a YAML config file; an empty file yields ``{}``."""
    if not path.exists():
        raise SystemExit(f"ERROR: config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def deep_get(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    """Safely get nested dict value with default."""
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def get_env_var(field_name: str) -> Optional[str]:
    """Return ``CONFIGDIFF_<FIELD>`` from the environment, if set."""
    return os.environ.get(f"{ENV_PREFIX}_{field_name.upper()}")


def _pick(field_name: str, cli_value: Any, cfg_value: Any, default: Any) -> Any:
    env = get_env_var(field_name)
    if env:
        return env
    if cli_value not in (None, ""):
        return cli_value
    if cfg_value not in (None, ""):
        return cfg_value
    return default


def parse_mode(value: str) -> ReportMode:
    """Return the :class:`ReportMode` named by *value*."""
    try:
        return ReportMode(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in ReportMode)
        raise SystemExit(
            f"ERROR: invalid mode {value!r}; expected one of: {choices}. "
            f"Set mode in config, pass --mode, or set {ENV_PREFIX}_MODE."
        ) from None


def read_section_filter(cfg: Dict[str, Any], args: argparse.Namespace) -> SectionFilter:
    """Config patterns extended by repeatable ``--include``/``--exclude`` flags."""
    include = list(deep_get(cfg, ["section_filter", "include"], []) or [])
    exclude = list(deep_get(cfg, ["section_filter", "exclude"], []) or [])
    include += list(getattr(args, "include", None) or [])
    exclude += list(getattr(args, "exclude", None) or [])
    return SectionFilter(include, exclude)


def read_options(cfg: Dict[str, Any], args: argparse.Namespace, base_dir: Path = Path(".")) -> ReportOptions:
    """Resolve :class:`ReportOptions` from config, CLI arguments and environment.

    Parameters
    ----------
    cfg:
        Parsed config file.
    args:
        CLI namespace (``out``, ``mode``, ``verbose`` may be absent).
    base_dir:
        Directory relative section paths are resolved against (the config
        file's directory).
    """
    mode = parse_mode(_pick("mode", getattr(args, "mode", None), cfg.get("mode"), ReportMode.COLLAPSIBLE.value))
    out_dir = Path(_pick("out_dir", getattr(args, "out", None), cfg.get("out_dir"), "out"))

    level = _pick("log_level", None, deep_get(cfg, ["log", "level"]), "INFO")
    if getattr(args, "verbose", False):
        level = "DEBUG"
    log_file = deep_get(cfg, ["log", "file"])

    sections = cfg.get("sections") or []
    if isinstance(sections, str):
        sections = [sections]

    return ReportOptions(
        title=str(cfg.get("title") or "Configuration Report"),
        out_dir=out_dir,
        report_name=cfg.get("report_name"),
        mode=mode,
        pilot_label=str(deep_get(cfg, ["pilot", "label"], "Pilot")),
        production_label=str(deep_get(cfg, ["production", "label"], "Production")),
        log_level=str(level).upper(),
        log_file=Path(log_file) if log_file else None,
        sections=[base_dir / s for s in sections],
    )

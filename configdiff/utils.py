"""
utils
=====

Small, shared utilities used across the codebase.

This module intentionally contains only low-level helpers that are safe to
import from anywhere (no rendering, no file output).

Functions
---------
- :func:`normalize_value`:
  Treat missing values as the empty string for comparisons.
- :func:`safe_name`:
  Convert an arbitrary identifier into a filename or anchor component.
- :func:`matches_pattern` / :func:`filter_names`:
  Include/exclude selection using SQL LIKE or ``re:`` patterns.
"""

from __future__ import annotations

import fnmatch
import re
from typing import Any, List, Sequence


def normalize_value(value: Any) -> Any:
    """Return *value* with ``None`` mapped to ``""``.

    Missing and empty cells compare equal everywhere in the engine.

    >>> normalize_value(None)
    ''
    >>> normalize_value(3)
    3
    """
    return "" if value is None else value


def cell_text(value: Any) -> str:
    """Return the display text of a cell value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def safe_name(value: str) -> str:
    """Return a filesystem- and anchor-safe version of *value*.

    Parameters
    ----------
    value:
        The input string to sanitize (e.g., a section title or object GUID).

    Returns
    -------
    str
        A sanitized string containing only ``[A-Za-z0-9._-]`` plus underscores,
        with surrounding underscores removed. Returns ``"unnamed"`` if the
        result would otherwise be empty.

    Examples
    --------
    >>> safe_name("Metaverse Object Types")
    'Metaverse_Object_Types'
    >>> safe_name("")
    'unnamed'
    """
    out = re.sub(r"[^A-Za-z0-9._-]+", "_", value).strip("_")
    return out or "unnamed"


def sql_like_to_fnmatch(pattern: str) -> str:
    """Convert SQL LIKE patterns (% and _) to fnmatch syntax (* and ?)."""
    return pattern.replace("%", "*").replace("_", "?")


def matches_pattern(name: str, pattern: str) -> bool:
    """Return True if name matches pattern (LIKE by default, regex via ``re:``)."""
    if pattern.startswith("re:"):
        return re.search(pattern[3:], name) is not None
    return fnmatch.fnmatchcase(name, sql_like_to_fnmatch(pattern))


def filter_names(names: Sequence[str], include: Sequence[str], exclude: Sequence[str]) -> List[str]:
    """Filter names based on include/exclude patterns, keeping input order.

    Parameters
    ----------
    names:
        Candidate names (e.g., report section titles).
    include:
        Keep only names matching any include pattern (if non-empty).
    exclude:
        Drop names matching any exclude pattern.
    """
    kept = list(names)
    if include:
        kept = [n for n in kept if any(matches_pattern(n, p) for p in include)]
    if exclude:
        kept = [n for n in kept if not any(matches_pattern(n, p) for p in exclude)]
    return kept

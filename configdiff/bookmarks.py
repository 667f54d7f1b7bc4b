"""
bookmarks
=========

Anchor ids, jump links and table-of-contents entries.

A bookmark correlates a summary row with the detail section documenting the
same object. Anchors are built from a stable identifier (typically an object
GUID) plus the change status of the row, and both anchors and links carry the
status as their class so they are colour-coded in the report.

Primary API
-----------
- :class:`TocEntry`
- :func:`bookmark_id`, :func:`bookmark_markup`, :func:`jump_markup`
- :func:`section_header`, :func:`toc_item`, :func:`render_toc`
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from .diffing import ChangeStatus
from .utils import safe_name

Status = Union[ChangeStatus, str, None]


@dataclass(frozen=True)
class TocEntry:
    """One table-of-contents entry pointing at an anchor in the report body."""

    id: str
    label: str
    status: str = ""
    level: int = 0


def _status_text(status: Status) -> str:
    if status is None:
        return ""
    return status.value if isinstance(status, ChangeStatus) else str(status)


def title_anchor(title: str) -> str:
    """Create an anchor slug from a section title."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") or "section"


def bookmark_id(identifier: str, status: Status = None) -> str:
    """Return the anchor id for *identifier* (and *status*, when given).

    >>> bookmark_id("{6F1C2A3B-0000-4000-8000-00000000ABCD}", ChangeStatus.ADDED)
    '6f1c2a3b-0000-4000-8000-00000000abcd_Added'
    """
    base = safe_name(str(identifier).strip().strip("{}").lower())
    suffix = _status_text(status)
    return f"{base}_{suffix}" if suffix else base


def _class_attr(status: Status) -> str:
    text = _status_text(status)
    return f' class="{html.escape(text)}"' if text else ""


def bookmark_markup(text: str, identifier: str, status: Status = None) -> str:
    """Wrap *text* in an anchor that other rows and the TOC can jump to."""
    return f'<a id="{html.escape(bookmark_id(identifier, status))}"{_class_attr(status)}>{html.escape(text)}</a>'


def jump_markup(text: str, identifier: str, status: Status = None) -> str:
    """Render *text* as a link to the bookmark of *identifier*."""
    target = html.escape(bookmark_id(identifier, status))
    return f'<a href="#{target}"{_class_attr(status)} title="{html.escape(text)}">{html.escape(text)}</a>'


def section_header(
    title: str,
    level: int,
    identifier: Optional[str] = None,
    status: Status = None,
    anchor: Optional[str] = None,
) -> Tuple[str, TocEntry]:
    """Return the heading markup for a report section and its TOC entry.

    Parameters
    ----------
    title:
        Heading text.
    level:
        Heading level (1-6).
    identifier:
        Stable identifier of the documented object; when omitted the anchor is
        derived from the title.
    status:
        Change status of the documented object, if any.
    anchor:
        Explicit anchor id, overriding both of the above.
    """
    level = min(max(int(level), 1), 6)
    if anchor is None:
        anchor = bookmark_id(identifier, status) if identifier else title_anchor(title)
    entry = TocEntry(anchor, title, _status_text(status), level)
    markup = (
        f'<h{level}><a id="{html.escape(anchor)}"{_class_attr(status)}>{html.escape(title)}</a></h{level}>\n'
    )
    return markup, entry


def toc_item(entry: TocEntry) -> str:
    """Render one TOC entry as a list item indented by its level class."""
    return (
        f'<li class="TocLevel{entry.level}"><a href="#{html.escape(entry.id)}"{_class_attr(entry.status)}>'
        f"{html.escape(entry.label)}</a></li>\n"
    )


def render_toc(entries: Iterable[TocEntry]) -> str:
    """Render TOC entries as one list; an empty list renders as ``""``."""
    items = "".join(toc_item(e) for e in entries)
    return f'<ul class="Toc">\n{items}</ul>\n' if items else ""

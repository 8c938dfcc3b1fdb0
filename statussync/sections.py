"""
Section extraction for issue-form bodies.

GitHub issue forms render each field as a ``### <Label>`` heading followed
by the submitted value. These helpers pull one field's text back out.
"""

from __future__ import annotations

import re
from typing import Optional

# Any heading line ends the current section
_HEADING_LINE_RE = re.compile(r"^###\s", re.MULTILINE)


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def extract_section(body: Optional[str], heading: str) -> str:
    """
    Return the trimmed text under ``### <heading>``.

    The heading match is case-insensitive and exact after trimming; the
    section runs until the next ``###`` heading or the end of the body.
    Returns an empty string when the body or the heading is missing.
    """
    if not body or not heading.strip():
        return ""

    text = _normalize_newlines(body)
    pattern = re.compile(
        r"^###\s+" + re.escape(heading.strip()) + r"[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
    )
    match = pattern.search(text)
    if match is None:
        return ""

    rest = text[match.end():]
    next_heading = _HEADING_LINE_RE.search(rest)
    if next_heading is not None:
        rest = rest[: next_heading.start()]
    return rest.strip()


def first_line(text: str) -> str:
    """First non-blank line of ``text``, trimmed."""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""

"""
Note content parsing for notesync.

Extracts a title, a summary and keywords from raw note text with a single
line-classification pass.
"""

import os
from typing import Any

from .models import ParsedNote
from .utils import (
    COMMENT_PATTERN,
    KEYWORDS_DIRECTIVE_PATTERN,
    TITLE_DIRECTIVE_PATTERN,
    condense_whitespace,
    parse_frontmatter,
)


def _frontmatter_text(value: Any) -> str | None:
    """Flatten a front matter value (scalar or list) to one line of text."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = " ".join(str(v) for v in value if v is not None)
    return condense_whitespace(str(value))


def parse_note_content(text: str) -> ParsedNote:
    """Extract (title, summary, keywords) from note text.

    Lines are classified from the top:

    - ``#+TITLE:`` sets the title; the first occurrence wins.
    - ``#+KEYWORDS:`` / ``#+FILETAGS:`` set the keywords; the first occurrence wins.
    - Any other line starting with ``#`` is a comment and is skipped, as are blank lines.
    - The scan stops at the first remaining line. If no title is set yet, that
      line becomes the title and everything after it is the summary, comment
      and directive lines included. Otherwise that line and everything after
      it is the summary.

    A leading YAML front matter block may supply ``title`` and ``tags`` or
    ``keywords``; the line scan then runs on the rest of the text.
    """
    frontmatter, body = parse_frontmatter(text)

    title = _frontmatter_text(frontmatter.get("title"))
    title_found = title is not None
    keywords = _frontmatter_text(frontmatter.get("keywords", frontmatter.get("tags")))
    keywords_found = keywords is not None
    summary = None

    lines = body.splitlines(keepends=True)
    for idx, raw_line in enumerate(lines):
        line = raw_line.rstrip("\r\n")

        match = TITLE_DIRECTIVE_PATTERN.match(line)
        if match:
            if not title_found:
                title = match.group(1).strip() or None
                title_found = True
            continue

        match = KEYWORDS_DIRECTIVE_PATTERN.match(line)
        if match:
            if not keywords_found:
                keywords = match.group(1).strip() or None
                keywords_found = True
            continue

        if COMMENT_PATTERN.match(line) or not line.strip():
            continue

        if not title_found:
            title = line.strip()
            summary = condense_whitespace("".join(lines[idx + 1:]))
        else:
            summary = condense_whitespace("".join(lines[idx:]))
        break

    return ParsedNote(title=title, summary=summary, keywords=keywords)


def make_blob(
    path: str | os.PathLike,
    title: str | None,
    keywords: str | None,
    summary: str | None,
) -> str:
    """Concatenate path, title, keywords and summary into the searchable blob."""
    parts = [os.fspath(path), title, keywords, summary]
    return " ".join(part for part in parts if part)

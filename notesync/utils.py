"""
Utility functions and compiled regex patterns for notesync.

Contains the exception hierarchy, front matter parsing, path helpers, and
pre-compiled patterns.
"""

import os
import re
from collections.abc import Iterable
from pathlib import Path

import yaml

# Pre-compiled regex patterns for performance
FRONTMATTER_PATTERN = re.compile(r'^---\s*\n(.*?)\n---\s*(?:\n|$)', re.DOTALL)
TITLE_DIRECTIVE_PATTERN = re.compile(r'^#\+TITLE:[ \t]*(.*)$', re.IGNORECASE)
KEYWORDS_DIRECTIVE_PATTERN = re.compile(r'^#\+(?:KEYWORDS|FILETAGS):[ \t]*(.*)$', re.IGNORECASE)
COMMENT_PATTERN = re.compile(r'^#')
WHITESPACE_PATTERN = re.compile(r'\s+')
UNSAFE_CHARS_PATTERN = re.compile(r'[^\w\s-]')


# ============== Exceptions ==============

class NoteSyncError(Exception):
    """Base class for notesync errors."""
    pass


class ConfigError(NoteSyncError):
    """Raised when a root specification cannot be evaluated."""
    pass


class OperationError(NoteSyncError):
    """Raised when a file-management operation cannot be carried out."""
    pass


class PathValidationError(OperationError):
    """Raised when a path falls outside every note root."""
    pass


class SearchIndexError(NoteSyncError):
    """Raised when the full-text search index is unusable."""
    pass


# ============== Helper Functions ==============

def normalize_path(path: str | os.PathLike) -> Path:
    """Return an absolute, user-expanded path without resolving symlinks."""
    return Path(os.path.abspath(os.path.expanduser(os.fspath(path))))


def parse_frontmatter(content: str) -> tuple[dict, str]:
    """Extract YAML frontmatter and body from note content."""
    frontmatter = {}
    body = content

    match = FRONTMATTER_PATTERN.match(content)
    if match:
        try:
            loaded = yaml.safe_load(match.group(1))
        except yaml.YAMLError:
            loaded = None
        if isinstance(loaded, dict):
            frontmatter = loaded
        body = content[match.end():]

    return frontmatter, body


def condense_whitespace(text: str) -> str | None:
    """Collapse whitespace runs to single spaces; empty results become None."""
    condensed = WHITESPACE_PATTERN.sub(' ', text).strip()
    return condensed or None


# ============== Security Validation ==============

def find_containing_root(path: Path, roots: Iterable[Path]) -> Path | None:
    """Return the first root containing ``path``, or None."""
    for root in roots:
        try:
            path.relative_to(root)
        except ValueError:
            continue
        return root
    return None


def validate_path_within_roots(path: str | os.PathLike, roots: Iterable[Path]) -> Path:
    """Validate that a path lies inside one of the note roots.

    Args:
        path: Absolute path, or a path relative to the first root
        roots: The note roots

    Returns:
        The validated absolute Path

    Raises:
        PathValidationError: If the path is empty or escapes every root
    """
    roots = list(roots)
    path_str = os.fspath(path)

    if not path_str or not path_str.strip():
        raise PathValidationError("Path cannot be empty")

    if not roots:
        raise PathValidationError("No note directories are configured")

    candidate = Path(path_str).expanduser()
    if not candidate.is_absolute():
        candidate = roots[0] / candidate

    # Resolve ".." components before checking containment
    full_path = Path(os.path.normpath(candidate))
    if find_containing_root(full_path, roots) is None:
        raise PathValidationError(f"Path escapes note directories: {path_str}")

    return full_path

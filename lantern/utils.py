"""Utility functions for Lantern.

These include string processing, path handling and output-directory
management shared by the pipeline stages.

Key functions:
    slugify: Convert titles and taxonomy terms to URL slugs.
    excerpt: Extract a plain-text excerpt from rendered HTML.
    is_content_file: Check if a path is a recognized content document.
    output_relpath: Map a content path to its output path.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import html
import re
import shutil
from pathlib import Path, PurePosixPath

CONTENT_EXTENSIONS = (".md", ".markdown")

_TAG_RE = re.compile(r"<[^>]+>")
_PARAGRAPH_RE = re.compile(r"<p>(.*?)</p>", re.DOTALL | re.IGNORECASE)


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated slug.

    Args:
        text: Title or term.

    Returns:
        URL-friendly slug, or an empty string if nothing usable remains.

    Examples:
        >>> slugify("Python Tips")
        'python-tips'

        >>> slugify("!!!")
        ''
    """
    cleaned = re.sub(r"[^\w]+", "-", text.lower(), flags=re.UNICODE)
    return cleaned.replace("_", "-").strip("-")


def excerpt(rendered: str, limit: int = 160) -> str:
    """Extract a plain-text excerpt from an HTML fragment.

    Uses the first ``<p>`` element when there is one, otherwise the whole
    fragment. Tags are stripped, entities unescaped and whitespace
    collapsed; the result is truncated to ``limit`` characters.

    Args:
        rendered: HTML fragment.
        limit: Maximum character length of result.

    Returns:
        Plain-text excerpt.
    """
    match = _PARAGRAPH_RE.search(rendered)
    fragment = match.group(1) if match else rendered
    text = html.unescape(_TAG_RE.sub("", fragment))
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[:limit].rstrip() + "…"


def is_content_file(path: Path) -> bool:
    """Check if a path is a Markdown content document.

    Args:
        path: Path to check.

    Returns:
        True if the file has a recognized extension (case-insensitive).
    """
    return path.suffix.lower() in CONTENT_EXTENSIONS


def output_relpath(rel: Path) -> Path:
    """Map a content path to its output path.

    The directory shape is preserved and the extension becomes ``.html``.

    Examples:
        >>> output_relpath(Path("posts/hello.md"))
        PosixPath('posts/hello.html')
    """
    return rel.with_suffix(".html")


def url_for(rel: Path) -> str:
    """Return the root-relative URL of an output file."""
    return "/" + PurePosixPath(*rel.parts).as_posix()


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.

    Raises:
        OSError: If the directory cannot be removed or created.
    """
    if path.is_dir():
        for item in path.iterdir():
            if item.is_dir() and not item.is_symlink():
                shutil.rmtree(item)
            else:
                item.unlink()
    path.mkdir(parents=True, exist_ok=True)

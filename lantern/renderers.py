"""Markdown rendering for Lantern.

Documents are converted with mistune. Whether extended syntax (tables,
strikethrough, autolinks, footnotes) is enabled is decided once per build
from the site configuration, never per document.

Key classes:
- MarkdownRenderer: Converts a document body to an HTML fragment.
"""

from __future__ import annotations

import re

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .errors import MarkdownError

EXTENDED_PLUGINS = ("strikethrough", "footnotes", "table", "url")


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _HighlightRenderer(mistune.HTMLRenderer):
    """HTML renderer with heading anchors and Pygments code highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with an auto-generated, per-document unique id."""
        base_id = _generate_heading_id(text)
        if not base_id:
            return f"<h{level}>{text}</h{level}>\n"

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block, highlighted when the language is known.

        Args:
            code: The code content.
            info: Info string of the fence (e.g. 'python').

        Returns:
            HTML string with highlighted or escaped code.
        """
        lang = info.split()[0] if info and info.strip() else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = mistune.escape(code)
        lang_class = f' class="language-{mistune.escape(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    A fresh mistune parser is created for every call, so a single instance
    can be shared by all page workers.

    Attributes:
        extended: Whether the extended plugin set is enabled.
    """

    def __init__(self, extended: bool = True):
        self.extended = extended

    @property
    def plugins(self) -> list[str]:
        return list(EXTENDED_PLUGINS) if self.extended else []

    def render(self, content: str) -> str:
        """Render Markdown content to an HTML fragment.

        Args:
            content: Markdown source.

        Returns:
            The complete HTML fragment.

        Raises:
            MarkdownError: If conversion fails; no partial output is returned.
        """
        markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(), plugins=self.plugins
        )
        try:
            html = markdown(content)
        except Exception as exc:
            raise MarkdownError(f"failed to convert Markdown: {exc}") from exc
        if not isinstance(html, str):
            raise MarkdownError("Markdown renderer returned no HTML")
        return html

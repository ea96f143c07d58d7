"""Content discovery and processing for Lantern.

This module finds content documents under the content directory, splits
each into front matter and body, and renders the body to HTML.

Key classes:
- Document: A discovered content file and its raw bytes.
- RenderedPage: Front matter, HTML body and paths of one processed document.
- PageSummary: The slice of a page that taxonomy pages list.
- ContentLoader: Walks the content directory.
- PageBuilder: Turns a Document into a RenderedPage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import FrontMatterError
from .frontmatter import FrontMatter, extract_front_matter
from .renderers import MarkdownRenderer
from .utils import excerpt, is_content_file, output_relpath, url_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """A content file discovered under the content directory.

    Attributes:
        path: Absolute path of the file.
        rel_path: Path relative to the content directory.
        data: Raw file contents.
    """

    path: Path
    rel_path: Path
    data: bytes

    @classmethod
    def read(cls, path: Path, content_dir: Path) -> Document:
        return cls(path=path, rel_path=path.relative_to(content_dir), data=path.read_bytes())


@dataclass(frozen=True)
class PageSummary:
    """Summary of a page as listed on taxonomy term pages.

    Attributes:
        title: Page title.
        description: Page description.
        date: Page date as written in its front matter.
        excerpt: Plain-text excerpt of the rendered body.
        url: Root-relative URL of the page.
    """

    title: str
    description: str
    date: str
    excerpt: str
    url: str


@dataclass(frozen=True)
class RenderedPage:
    """A processed content document ready to be written.

    Attributes:
        front_matter: Page metadata, defaulted when absent or malformed.
        content: Rendered HTML body.
        rel_path: Source path relative to the content directory.
        warnings: Recoverable problems met while processing the document.
    """

    front_matter: FrontMatter
    content: str
    rel_path: Path
    warnings: tuple[str, ...] = field(default=())

    @property
    def output_path(self) -> Path:
        return output_relpath(self.rel_path)

    @property
    def url(self) -> str:
        return url_for(self.output_path)

    def summary(self) -> PageSummary:
        fm = self.front_matter
        return PageSummary(
            title=fm.title,
            description=fm.description,
            date=fm.date,
            excerpt=excerpt(self.content),
            url=self.url,
        )


@dataclass
class Discovery:
    """Result of walking the content directory.

    Attributes:
        documents: Paths of recognized content documents, sorted.
        skipped: Paths of other regular files, sorted.
    """

    documents: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


class ContentLoader:
    """Discovers content files in a directory.

    Attributes:
        content_dir: Directory containing content documents.
        recursive: Whether subdirectories are walked.
    """

    def __init__(self, content_dir: Path, recursive: bool = True):
        self.content_dir = content_dir
        self.recursive = recursive

    def discover(self) -> Discovery:
        """Enumerate content files.

        Returns:
            Discovery of documents and non-page files.

        Raises:
            OSError: If the content directory cannot be read.
        """
        entries = list(self.content_dir.iterdir())
        if self.recursive:
            entries = list(self.content_dir.rglob("*"))

        discovery = Discovery()
        for path in sorted(entries):
            if not path.is_file():
                continue
            if is_content_file(path):
                discovery.documents.append(path)
            else:
                discovery.skipped.append(path)
        return discovery

    def load(self, path: Path) -> Document:
        return Document.read(path, self.content_dir)


class PageBuilder:
    """Builds RenderedPage objects from documents.

    Attributes:
        renderer: Markdown renderer used for every document.
    """

    def __init__(self, renderer: MarkdownRenderer | None = None):
        self.renderer = renderer or MarkdownRenderer()

    def build(self, document: Document) -> RenderedPage:
        """Extract front matter and render the body of a document.

        Malformed front matter is logged and replaced with defaults.

        Raises:
            UnicodeDecodeError: If the document is not valid UTF-8.
            MarkdownError: If the body cannot be converted.
        """
        extraction = extract_front_matter(document.data)
        warnings: tuple[str, ...] = ()
        if extraction.error is not None:
            warnings = (self._warn(document, extraction.error),)

        content = self.renderer.render(extraction.body)
        return RenderedPage(
            front_matter=extraction.front_matter,
            content=content,
            rel_path=document.rel_path,
            warnings=warnings,
        )

    @staticmethod
    def _warn(document: Document, error: FrontMatterError) -> str:
        message = f"Malformed front matter in {document.rel_path.as_posix()}: {error}"
        logger.warning(message)
        return message

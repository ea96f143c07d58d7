"""Taxonomy indexing and rendering for Lantern.

Pages are grouped by the terms they declare for each taxonomy (tags,
categories, ...). Once every page has been rendered, the index is frozen
and two kinds of pages are written:

    <output>/<taxonomy>/index.html          listing of all terms
    <output>/<taxonomy>/<term>/index.html   pages carrying one term

Key classes:
- TaxonomyIndex: Thread-safe accumulator filled by page workers.
- TaxonomySnapshot: Sorted, read-only view of the index.
- TaxonomyRenderer: Writes listing and term pages.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .bindings import TermBinding, TermEntry, TermsBinding
from .config import SiteConfig
from .content import PageSummary, RenderedPage
from .errors import PageRenderError
from .pages import format_error_message, write_output
from .templates import TemplateSet
from .utils import slugify

logger = logging.getLogger(__name__)

TERMS_TEMPLATE = "taxonomy/terms"
INDEX_FILENAME = "index.html"


class TermCollection(Mapping[str, tuple[PageSummary, ...]]):
    """Mapping of term to its page summaries for one taxonomy."""

    def __init__(self, mapping: Mapping[str, Iterable[PageSummary]]):
        self._mapping: dict[str, tuple[PageSummary, ...]] = {}
        for term in sorted(mapping):
            # newest first; ties broken by URL
            by_url = sorted(mapping[term], key=lambda s: s.url)
            self._mapping[term] = tuple(sorted(by_url, key=lambda s: s.date, reverse=True))

    def __getitem__(self, key: str) -> tuple[PageSummary, ...]:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TermCollection({len(self._mapping)} terms)"


class TaxonomySnapshot(Mapping[str, TermCollection]):
    """Mapping of taxonomy name to TermCollection, sorted by name."""

    def __init__(self, mapping: Mapping[str, Mapping[str, Iterable[PageSummary]]]):
        self._mapping = {name: TermCollection(mapping[name]) for name in sorted(mapping)}

    def __getitem__(self, key: str) -> TermCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TaxonomySnapshot({len(self._mapping)} taxonomies)"


def claim_slugs(terms: Mapping[str, tuple[PageSummary, ...]]) -> dict[str, str]:
    """Assign each term page directory to a single term.

    Terms such as ``Python Tips`` and ``python-tips`` share a slug. Only
    terms with pages compete; the first in iteration order owns the slug.

    Returns:
        Mapping of slug to the term that owns it.
    """
    owners: dict[str, str] = {}
    for term, pages in terms.items():
        slug = slugify(term)
        if slug and pages:
            owners.setdefault(slug, term)
    return owners


class TaxonomyIndex:
    """Accumulates page summaries by taxonomy and term.

    Workers call add() concurrently; every update is made under the
    index's lock.
    """

    def __init__(self, taxonomies: Mapping[str, Iterable[str]] | None = None):
        self._terms: dict[str, dict[str, list[PageSummary]]] = {}
        self._lock = threading.Lock()
        for name, terms in (taxonomies or {}).items():
            self.declare(name, terms)

    def declare(self, taxonomy: str, terms: Iterable[str] = ()) -> None:
        """Register a taxonomy and terms that may have no pages yet."""
        with self._lock:
            bucket = self._terms.setdefault(taxonomy, {})
            for term in terms:
                bucket.setdefault(term, [])

    def add(self, page: RenderedPage) -> None:
        """File a page under every term it declares for a known taxonomy."""
        summary = page.summary()
        with self._lock:
            for taxonomy, bucket in self._terms.items():
                for term in dict.fromkeys(page.front_matter.terms(taxonomy)):
                    bucket.setdefault(term, []).append(summary)

    def snapshot(self) -> TaxonomySnapshot:
        with self._lock:
            return TaxonomySnapshot(self._terms)


@dataclass
class TaxonomyReport:
    """Outcome of rendering taxonomy pages.

    Attributes:
        written: Paths of files written.
        errors: Per-page failures.
        skipped: Warnings for pages that were not rendered.
    """

    written: list[Path] = field(default_factory=list)
    errors: list[PageRenderError] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class TaxonomyRenderer:
    """Renders taxonomy listing pages and term pages.

    Attributes:
        site: Site configuration bound into every page.
        templates: Compiled templates.
        output_dir: Root of the output tree.
    """

    def __init__(self, site: SiteConfig, templates: TemplateSet, output_dir: Path):
        self.site = site
        self.templates = templates
        self.output_dir = output_dir

    def render(self, snapshot: Mapping[str, Mapping[str, tuple[PageSummary, ...]]]) -> TaxonomyReport:
        """Render every taxonomy in the snapshot, one at a time.

        A failure on one page is recorded and does not stop its siblings.
        """
        report = TaxonomyReport()
        for taxonomy, terms in snapshot.items():
            owners = claim_slugs(terms)
            self._render_terms_page(taxonomy, terms, owners, report)
            self._render_term_pages(taxonomy, terms, owners, report)
        return report

    def _skip(self, report: TaxonomyReport, message: str) -> None:
        logger.warning(message)
        report.skipped.append(message)

    def _entries(
        self,
        taxonomy: str,
        terms: Mapping[str, tuple[PageSummary, ...]],
        owners: Mapping[str, str],
    ) -> tuple[TermEntry, ...]:
        entries = []
        for term, pages in terms.items():
            slug = slugify(term)
            url = f"/{taxonomy}/{slug}/" if owners.get(slug) == term else ""
            entries.append(TermEntry(name=term, slug=slug, url=url, count=len(pages)))
        return tuple(entries)

    def _render_terms_page(
        self,
        taxonomy: str,
        terms: Mapping[str, tuple[PageSummary, ...]],
        owners: Mapping[str, str],
        report: TaxonomyReport,
    ) -> None:
        if TERMS_TEMPLATE not in self.templates:
            self._skip(report, f"No {TERMS_TEMPLATE} template; skipping {taxonomy} listing")
            return
        target = self.output_dir / taxonomy / INDEX_FILENAME
        entries = self._entries(taxonomy, terms, owners)
        binding = TermsBinding(site=self.site, taxonomy=taxonomy, terms=entries)
        self._write(TERMS_TEMPLATE, binding.as_context(), target, report)

    def _render_term_pages(
        self,
        taxonomy: str,
        terms: Mapping[str, tuple[PageSummary, ...]],
        owners: Mapping[str, str],
        report: TaxonomyReport,
    ) -> None:
        template_name = f"taxonomy/{taxonomy}"
        with_pages = [(term, pages) for term, pages in terms.items() if pages]
        if not with_pages:
            return
        if template_name not in self.templates:
            self._skip(report, f"No {template_name} template; skipping {taxonomy} term pages")
            return

        for term, pages in with_pages:
            slug = slugify(term)
            if not slug:
                self._skip(report, f"Term {term!r} in {taxonomy} has no usable slug; skipping")
                continue
            if owners[slug] != term:
                self._skip(
                    report,
                    f"Term {term!r} in {taxonomy} has the same slug as {owners[slug]!r}; skipping",
                )
                continue
            target = self.output_dir / taxonomy / slug / INDEX_FILENAME
            binding = TermBinding(
                site=self.site, taxonomy=taxonomy, term=term, slug=slug, pages=pages
            )
            self._write(template_name, binding.as_context(), target, report)

    def _write(self, template_name: str, context: dict, target: Path, report: TaxonomyReport) -> None:
        source = target.relative_to(self.output_dir).as_posix()
        try:
            template = self.templates.get(template_name)
            rendered = template.render(context)
            write_output(target, rendered)
        except Exception as exc:
            error = PageRenderError(source, format_error_message(exc), exc)
            logger.error("Failed to render %s: %s", source, error.message)
            report.errors.append(error)
            return
        logger.debug("Wrote %s", target)
        report.written.append(target)

"""Template data bindings for Lantern.

Every template render receives exactly one of these bindings, so the
variables available to a layout are fixed and documented here:

- PageBinding: ``base`` layout, once per content page.
- TermsBinding: ``taxonomy/terms`` layout, once per taxonomy.
- TermBinding: ``taxonomy/<taxonomy>`` layout, once per term with pages.

All bindings expose the site configuration as ``site``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from markupsafe import Markup, escape

from .config import SiteConfig
from .content import PageSummary, RenderedPage


class _Binding:
    def as_context(self) -> dict[str, Any]:
        """Return the binding as template variables."""
        return {f.name: getattr(self, f.name) for f in fields(self)}  # type: ignore[arg-type]


@dataclass(frozen=True)
class PageBinding(_Binding):
    """Variables for rendering one content page.

    ``title`` and ``description`` are escaped when the binding is built, so
    they are safe even in templates that mark them ``|safe``; ``content``
    is the rendered HTML body.
    """

    site: SiteConfig
    title: Markup
    description: Markup
    date: str
    content: Markup
    url: str
    tags: tuple[str, ...]
    categories: tuple[str, ...]

    @classmethod
    def for_page(cls, site: SiteConfig, page: RenderedPage) -> PageBinding:
        fm = page.front_matter
        return cls(
            site=site,
            title=escape(fm.title),
            description=escape(fm.description),
            date=fm.date,
            content=Markup(page.content),
            url=page.url,
            tags=fm.tags,
            categories=fm.categories,
        )


@dataclass(frozen=True)
class TermEntry:
    """A term as shown on a taxonomy listing page.

    Renders as its name, so ``{{ term }}`` works in templates.
    """

    name: str
    slug: str
    url: str
    count: int

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TermsBinding(_Binding):
    """Variables for a taxonomy's listing page."""

    site: SiteConfig
    taxonomy: str
    terms: tuple[TermEntry, ...]


@dataclass(frozen=True)
class TermBinding(_Binding):
    """Variables for one term page."""

    site: SiteConfig
    taxonomy: str
    term: str
    slug: str
    pages: tuple[PageSummary, ...]

"""Template resolution for Lantern.

This module uses Jinja2 to compile a theme's layouts and partials once per
build into a TemplateSet that page and taxonomy workers share read-only.

Theme layout:

    layouts/
        base.html               -> "base"
        list.html               -> "list"
        partials/header.html    -> partial "header"
        taxonomy/terms.html     -> "taxonomy/terms"
        taxonomy/tags.html      -> "taxonomy/tags"

Files under ``taxonomy/`` keep their relative path as their logical name so
each taxonomy can have its own term-page layout; every other layout is
known by its base name.

Key classes:
- TemplateResolver: Discovers and compiles templates into a TemplateSet.
- TemplateSet: Immutable lookup of compiled layouts by logical name.
- PartialBundle: Sources of all partials, compiled on demand.
- PartialCache: Compiles each partial at most once and reuses it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    Template,
    TemplateError,
    pass_context,
    select_autoescape,
)
from jinja2.runtime import Context
from markupsafe import Markup

from .errors import TemplateLoadError, TemplateLookupError

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".html"
PARTIALS_DIR = "partials"
TAXONOMY_DIR = "taxonomy"


class PartialBundle:
    """The theme's partial templates, keyed by name.

    Partials are kept as source and compiled against the shared Jinja2
    environment whenever they are rendered, so every call observes a fresh
    template.

    Attributes:
        env: Jinja2 environment partials are compiled in.
    """

    def __init__(self, env: Environment, sources: Mapping[str, str]):
        self.env = env
        self._sources = MappingProxyType(dict(sources))

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    @property
    def names(self) -> list[str]:
        return sorted(self._sources)

    def compile(self, name: str) -> Template:
        """Compile the named partial.

        Raises:
            TemplateLookupError: If no partial has this name.
        """
        try:
            source = self._sources[name]
        except KeyError:
            raise TemplateLookupError("partial", name) from None
        return self.env.from_string(source)

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        return self.compile(name).render(context)


class PartialCache:
    """Compiles each partial at most once and reuses the compiled form.

    The cache is owned by a TemplateSet and is the only part of it that
    changes after construction, so it carries its own lock.
    """

    def __init__(self, bundle: PartialBundle):
        self._bundle = bundle
        self._compiled: dict[str, Template] = {}
        self._lock = threading.Lock()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._compiled

    def __len__(self) -> int:
        with self._lock:
            return len(self._compiled)

    def get(self, name: str) -> Template:
        with self._lock:
            template = self._compiled.get(name)
            if template is None:
                template = self._bundle.compile(name)
                self._compiled[name] = template
            return template

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        return self.get(name).render(context)


def _partial_context(ctx: Context, overrides: Mapping[str, Any]) -> dict[str, Any]:
    context = dict(ctx.get_all())
    context.update(overrides)
    return context


@dataclass(frozen=True)
class TemplateSet:
    """Compiled layouts keyed by logical name, plus the partials.

    Once returned by TemplateResolver.load() the set is never modified, so
    workers may read it concurrently without locking.

    Attributes:
        templates: Logical name to compiled layout.
        partials: The partial bundle.
        cache: Reusable compiled partials.
    """

    templates: Mapping[str, Template]
    partials: PartialBundle
    cache: PartialCache

    def __contains__(self, name: object) -> bool:
        return name in self.templates

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.templates))

    def get(self, name: str) -> Template:
        """Return the layout registered under ``name``.

        Raises:
            TemplateLookupError: If no layout compiled under this name.
        """
        try:
            return self.templates[name]
        except KeyError:
            raise TemplateLookupError("layout", name) from None


def logical_name(path: Path, layouts_dir: Path) -> str:
    """Derive the logical template name of a layout file.

    Args:
        path: Layout file.
        layouts_dir: Root of the theme's layouts.

    Returns:
        ``taxonomy/<name>`` for files under ``taxonomy/``, otherwise the
        base name without extension.
    """
    rel = path.relative_to(layouts_dir)
    if rel.parts[0] == TAXONOMY_DIR and len(rel.parts) > 1:
        return rel.with_suffix("").as_posix()
    return rel.stem


class TemplateResolver:
    """Discovers and compiles a theme's templates.

    Attributes:
        layouts_dir: Root of the theme's layouts.
        env: Jinja2 environment shared by layouts and partials.
    """

    def __init__(self, layouts_dir: Path):
        self.layouts_dir = layouts_dir
        self.env = Environment(
            loader=FileSystemLoader(str(layouts_dir)),
            autoescape=select_autoescape(["html", "xml"], default_for_string=True),
            keep_trailing_newline=True,
        )

    def load(self) -> TemplateSet:
        """Build the TemplateSet.

        Partials and layouts that fail to compile are skipped with a
        warning; the build continues with whatever compiled.

        Returns:
            The immutable TemplateSet.

        Raises:
            TemplateLoadError: If the layouts directory cannot be read.
        """
        try:
            entries = list(self.layouts_dir.iterdir())
        except OSError as exc:
            raise TemplateLoadError(
                f"could not read layouts directory {self.layouts_dir}: {exc}"
            ) from exc
        logger.debug("Found %d entries in %s", len(entries), self.layouts_dir)

        partials = PartialBundle(self.env, self._load_partials())
        cache = PartialCache(partials)
        self._install_globals(partials, cache)

        templates: dict[str, Template] = {}
        for path in self._iter_layouts():
            name = logical_name(path, self.layouts_dir)
            rel = path.relative_to(self.layouts_dir).as_posix()
            try:
                template = self.env.get_template(rel)
            except (TemplateError, OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping layout %s: %s", rel, exc)
                continue
            if name in templates:
                logger.warning(
                    "Layout %s overrides an earlier layout named %r", rel, name
                )
            templates[name] = template

        logger.info(
            "Loaded %d layouts and %d partials from %s",
            len(templates),
            len(partials),
            self.layouts_dir,
        )
        return TemplateSet(
            templates=MappingProxyType(templates), partials=partials, cache=cache
        )

    def _iter_layouts(self) -> list[Path]:
        layouts = []
        for path in sorted(self.layouts_dir.rglob(f"*{TEMPLATE_SUFFIX}")):
            if not path.is_file():
                continue
            if path.relative_to(self.layouts_dir).parts[0] == PARTIALS_DIR:
                continue
            layouts.append(path)
        return layouts

    def _load_partials(self) -> dict[str, str]:
        partials_dir = self.layouts_dir / PARTIALS_DIR
        sources: dict[str, str] = {}
        if not partials_dir.is_dir():
            logger.debug("No partials directory at %s", partials_dir)
            return sources
        for path in sorted(partials_dir.rglob(f"*{TEMPLATE_SUFFIX}")):
            if not path.is_file():
                continue
            name = path.relative_to(partials_dir).with_suffix("").as_posix()
            try:
                source = path.read_text(encoding="utf-8")
                self.env.parse(source, name=name, filename=str(path))
            except (TemplateError, OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping partial %s: %s", name, exc)
                continue
            sources[name] = source
        return sources

    def _install_globals(self, partials: PartialBundle, cache: PartialCache) -> None:
        """Expose the two partial helpers to every template.

        ``partial`` compiles the named partial on every call;
        ``cached_partial`` goes through the PartialCache. Both render with
        the caller's context, updated with any keyword arguments.
        """

        @pass_context
        def partial(ctx: Context, name: str, **kwargs: Any) -> Markup:
            return Markup(partials.render(name, _partial_context(ctx, kwargs)))

        @pass_context
        def cached_partial(ctx: Context, name: str, **kwargs: Any) -> Markup:
            return Markup(cache.render(name, _partial_context(ctx, kwargs)))

        self.env.globals["partial"] = partial
        self.env.globals["cached_partial"] = cached_partial
